"""
App models — declared package requirements and reconciliation targets.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

# Literal status strings persisted in data/status/<app>
STATUS_INSTALLED = "installed"
STATUS_UNINSTALLED = "uninstalled"
STATUS_DISABLED = "disabled"
STATUS_CORRUPTED = "corrupted"

# Pseudo-category for apps with nothing installable
HIDDEN_CATEGORY = "hidden"

# Category used when the original one cannot be recovered
FALLBACK_CATEGORY = "Other"

Target = Literal["installed", "uninstalled", "hidden"]
AppType = Literal["package", "standard"]


class PackageRequirement(BaseModel):
    """One word of a packages file.

    ``foo`` is a plain requirement; ``foo|bar`` means any one of the
    alternatives satisfies it. Order matters: earlier alternatives
    are preferred.
    """

    alternatives: list[str] = Field(min_length=1)

    @property
    def is_alternative(self) -> bool:
        return len(self.alternatives) > 1

    def __str__(self) -> str:
        return "|".join(self.alternatives)


class AppDecision(BaseModel):
    """Target state computed for one app from package facts."""

    app: str
    target: Target
    package: str | None = None   # authoritative package (None when hidden)


def flatten(requirements: list[PackageRequirement]) -> list[str]:
    """Every declared package name, in declaration order, deduplicated."""
    seen: dict[str, None] = {}
    for req in requirements:
        for name in req.alternatives:
            seen.setdefault(name, None)
    return list(seen)
