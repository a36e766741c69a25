"""
Status reconciliation — bring recorded app state in line with packages.

For every package-app the declared packages are looked up in one
PackageFacts snapshot and a target is chosen:

    any declared package installed   → installed
    else any declared package known  → uninstalled
    else                             → hidden

Only differences are written. Installed/uninstalled transitions send
an analytics event. An app that becomes installable again after being
hidden is moved back to its shipped category.

Batch refreshes query the package backend once for the union of every
app's packages. A broken app is logged and skipped so the rest of the
batch still converges.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from src.adapters.base import PackageBackend
from src.core.context import AppsContext
from src.core.models.app import (
    HIDDEN_CATEGORY,
    STATUS_INSTALLED,
    STATUS_UNINSTALLED,
    AppDecision,
    PackageRequirement,
    flatten,
)
from src.core.models.packages import PackageFacts
from src.core.persistence.categories import is_hidden_override
from src.core.persistence.status_store import get_app_status, mark_installed, mark_uninstalled
from src.core.services.app_listing import (
    PackagesFileError,
    list_package_apps,
    read_package_requirements,
)
from src.core.services.category_ops import (
    CategoryEditError,
    CategoryEditor,
    hide_app,
    unhide_app,
)

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, app: str, trigger: str) -> None: ...


# ═══════════════════════════════════════════════════════════════════
#  Decisions (pure)
# ═══════════════════════════════════════════════════════════════════


def decide(app: str, requirements: list[PackageRequirement], facts: PackageFacts) -> AppDecision:
    """Target state of ``app`` given its requirements and package facts.

    The first installed package (in declaration order) wins; failing
    that the first available one; failing that the app is hidden.
    """
    packages = flatten(requirements)
    for name in packages:
        if facts.installed(name):
            return AppDecision(app=app, target="installed", package=name)
    for name in packages:
        if facts.available(name):
            return AppDecision(app=app, target="uninstalled", package=name)
    return AppDecision(app=app, target="hidden")


def resolve_required_packages(
    requirements: list[PackageRequirement], facts: PackageFacts,
) -> list[str]:
    """Packages to install to satisfy every requirement.

    Each requirement resolves to its first installed alternative, else
    its first available one. If any requirement has neither, nothing
    can be installed and ``[]`` is returned.
    """
    chosen: list[str] = []
    for req in requirements:
        pick = next((p for p in req.alternatives if facts.installed(p)), None)
        if pick is None:
            pick = next((p for p in req.alternatives if facts.available(p)), None)
        if pick is None:
            logger.debug("No installable alternative for %s", req)
            return []
        if pick not in chosen:
            chosen.append(pick)
    return chosen


# ═══════════════════════════════════════════════════════════════════
#  Results
# ═══════════════════════════════════════════════════════════════════


@dataclass
class RefreshOutcome:
    """What a refresh did to one app."""

    app: str
    target: str | None = None
    package: str | None = None
    previous: str | None = None
    changed: bool = False
    unhidden_to: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        result: dict = {"app": self.app}
        if self.error:
            result["error"] = self.error
            return result
        result.update({
            "target": self.target,
            "package": self.package,
            "previous": self.previous,
            "changed": self.changed,
        })
        if self.unhidden_to is not None:
            result["unhidden_to"] = self.unhidden_to
        return result


@dataclass
class RefreshReport:
    """Aggregate of a batch refresh."""

    outcomes: list[RefreshOutcome] = field(default_factory=list)

    @property
    def changed(self) -> list[RefreshOutcome]:
        return [o for o in self.outcomes if o.ok and o.changed]

    @property
    def failed(self) -> list[RefreshOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def to_dict(self) -> dict:
        return {
            "apps_total": len(self.outcomes),
            "apps_changed": len(self.changed),
            "apps_failed": len(self.failed),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


# ═══════════════════════════════════════════════════════════════════
#  Reconciler
# ═══════════════════════════════════════════════════════════════════


class StatusReconciler:
    """Applies package facts to status files and category overrides."""

    def __init__(
        self,
        ctx: AppsContext,
        backend: PackageBackend,
        categories: CategoryEditor,
        notifier: Notifier,
    ):
        self._ctx = ctx
        self._backend = backend
        self._categories = categories
        self._notifier = notifier

    def refresh_app(self, app: str, package: str | None = None) -> RefreshOutcome:
        """Reconcile one app.

        Args:
            app: App name.
            package: Check only this package. The app is then marked
                installed or uninstalled and never hidden.

        Raises:
            ValueError: Empty app name.
            PackagesFileError: The app's packages file is unusable.
            PackageQueryError: The backend could not be queried.
            CategoryEditError: Hiding/unhiding failed.
        """
        if not app:
            raise ValueError("no app specified")

        if package:
            facts = self._backend.query([package])
            target = "installed" if facts.installed(package) else "uninstalled"
            decision = AppDecision(app=app, target=target, package=package)
        else:
            requirements = read_package_requirements(self._ctx, app)
            facts = self._backend.query(flatten(requirements))
            decision = decide(app, requirements, facts)
        return self.apply(decision)

    def refresh_all(self, apps: list[str] | None = None) -> RefreshReport:
        """Reconcile every package-app (or ``apps``) in one backend query.

        Raises:
            PackageQueryError: The backend could not be queried; nothing
                has been written.
        """
        names = list_package_apps(self._ctx) if apps is None else list(apps)
        report = RefreshReport()

        declared: dict[str, list[PackageRequirement]] = {}
        for app in names:
            try:
                declared[app] = read_package_requirements(self._ctx, app)
            except PackagesFileError as e:
                logger.warning("Skipping %s: %s", app, e)
                report.outcomes.append(RefreshOutcome(app=app, error=str(e)))

        union: dict[str, None] = {}
        for requirements in declared.values():
            for name in flatten(requirements):
                union.setdefault(name, None)

        facts = self._backend.query(list(union))
        logger.info(
            "Refreshing %d package apps (%d packages)", len(declared), len(union),
        )

        for app, requirements in declared.items():
            decision = decide(app, requirements, facts)
            try:
                report.outcomes.append(self.apply(decision))
            except (OSError, CategoryEditError) as e:
                logger.warning("Failed to refresh %s: %s", app, e)
                report.outcomes.append(RefreshOutcome(
                    app=app, target=decision.target, package=decision.package, error=str(e),
                ))

        logger.info(
            "Refresh done: %d changed, %d failed",
            len(report.changed), len(report.failed),
        )
        return report

    def apply(self, decision: AppDecision) -> RefreshOutcome:
        """Persist ``decision``, touching only what differs."""
        app = decision.app
        previous = get_app_status(self._ctx, app)
        outcome = RefreshOutcome(
            app=app, target=decision.target, package=decision.package, previous=previous,
        )

        if decision.target == "hidden":
            if self._categories.get(app) != HIDDEN_CATEGORY:
                logger.debug("Marking %s as hidden", app)
                hide_app(self._categories, app)
                outcome.changed = True
            return outcome

        if decision.target == "installed":
            if previous != STATUS_INSTALLED:
                logger.debug("Marking %s as installed", app)
                mark_installed(self._ctx, app)
                self._notifier.notify(app, "install")
                outcome.changed = True
        elif previous != STATUS_UNINSTALLED:
            logger.debug("Marking %s as uninstalled", app)
            mark_uninstalled(self._ctx, app)
            self._notifier.notify(app, "uninstall")
            outcome.changed = True

        if is_hidden_override(self._ctx, app):
            logger.debug("Unhiding %s, its packages are available again", app)
            outcome.unhidden_to = unhide_app(self._ctx, self._categories, app)
            outcome.changed = True

        return outcome
