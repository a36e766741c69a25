"""
App catalogue — which apps exist, what kind they are, what they need.

An app is a directory under ``apps/``. Package-apps carry a
``packages`` file; standard apps carry install/uninstall scripts.
"""

from __future__ import annotations

import logging
import re

from src.core.context import AppsContext
from src.core.models.app import (
    STATUS_CORRUPTED,
    STATUS_DISABLED,
    STATUS_INSTALLED,
    AppType,
    PackageRequirement,
)
from src.core.persistence.status_store import apps_with_status, apps_with_status_file
from src.core.services.category_ops import hidden_apps, visible_apps

logger = logging.getLogger(__name__)

# Any of these marks a directory under apps/ as an app
_APP_MARKERS = ("install", "packages", "flatpak_packages")

_STANDARD_SCRIPTS = ("install", "install-32", "install-64", "uninstall")

# "foo | bar" is written both with and without spaces
_ALTERNATIVE_SPACING = re.compile(r"\s*\|\s*")


class PackagesFileError(Exception):
    """A packages declaration file is missing, unreadable, or empty."""


def list_local_apps(ctx: AppsContext) -> list[str]:
    """Sorted names of the apps present locally."""
    if not ctx.apps_dir.is_dir():
        return []
    apps = [
        d.name for d in ctx.apps_dir.iterdir()
        if d.is_dir() and any((d / marker).is_file() for marker in _APP_MARKERS)
    ]
    return sorted(apps)


def _apps_with_any(ctx: AppsContext, filenames: tuple[str, ...]) -> list[str]:
    if not ctx.apps_dir.is_dir():
        return []
    return sorted(
        d.name for d in ctx.apps_dir.iterdir()
        if d.is_dir() and any((d / f).is_file() for f in filenames)
    )


def list_package_apps(ctx: AppsContext) -> list[str]:
    """Apps whose install is an alias for OS packages."""
    return _apps_with_any(ctx, ("packages",))


def list_standard_apps(ctx: AppsContext) -> list[str]:
    """Apps with their own install/uninstall scripts."""
    return _apps_with_any(ctx, _STANDARD_SCRIPTS)


def app_type(ctx: AppsContext, app: str) -> AppType:
    """'package' or 'standard'.

    Raises:
        ValueError: Empty name, or the app directory has neither.
    """
    if not app:
        raise ValueError("no app specified")
    app_dir = ctx.app_dir(app)
    if (app_dir / "packages").is_file():
        return "package"
    if any((app_dir / script).is_file() for script in _STANDARD_SCRIPTS):
        return "standard"
    raise ValueError(f"'{app}' is not a valid app type")


def parse_packages(text: str) -> list[PackageRequirement]:
    """Parse packages file content into requirements.

    Words are whitespace separated; ``a|b`` (or ``a | b``) is one word
    listing alternatives.
    """
    collapsed = _ALTERNATIVE_SPACING.sub("|", text.strip())
    requirements = []
    for word in collapsed.split():
        alternatives = [p for p in word.split("|") if p]
        if alternatives:
            requirements.append(PackageRequirement(alternatives=alternatives))
    return requirements


def read_package_requirements(ctx: AppsContext, app: str) -> list[PackageRequirement]:
    """Declared requirements of a package-app.

    Raises:
        PackagesFileError: No packages file, unreadable, or no packages.
    """
    path = ctx.packages_file(app)
    if not path.is_file():
        raise PackagesFileError(f"app '{app}' does not have a packages file")
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PackagesFileError(f"error reading packages file of '{app}': {e}") from e

    requirements = parse_packages(text)
    if not requirements:
        raise PackagesFileError(f"packages file of '{app}' declares no packages")
    return requirements


# ── Filters ──────────────────────────────────────────────────────


def _uninstalled(ctx: AppsContext) -> list[str]:
    installed = set(apps_with_status(ctx, STATUS_INSTALLED))
    return [a for a in list_local_apps(ctx) if a not in installed]


def _missing_status(ctx: AppsContext) -> list[str]:
    have = set(apps_with_status_file(ctx))
    return [a for a in list_local_apps(ctx) if a not in have]


_FILTERS = {
    "local": list_local_apps,
    "package": list_package_apps,
    "standard": list_standard_apps,
    "installed": lambda ctx: apps_with_status(ctx, STATUS_INSTALLED),
    "uninstalled": _uninstalled,
    "disabled": lambda ctx: apps_with_status(ctx, STATUS_DISABLED),
    "corrupted": lambda ctx: apps_with_status(ctx, STATUS_CORRUPTED),
    "have_status": apps_with_status_file,
    "missing_status": _missing_status,
    "hidden": hidden_apps,
    "visible": visible_apps,
}

FILTERS = tuple(_FILTERS)


def list_apps(ctx: AppsContext, filter: str = "local") -> list[str]:
    """List apps matching ``filter`` (see FILTERS).

    Raises:
        ValueError: Unknown filter.
    """
    fn = _FILTERS.get(filter or "local")
    if fn is None:
        raise ValueError(f"unknown app filter '{filter}' (valid: {', '.join(FILTERS)})")
    return fn(ctx)
