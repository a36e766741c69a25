"""
Package facts — read-only snapshot of what the package manager knows.

A snapshot is taken once per reconciliation pass and never persisted.
Names missing from the snapshot are reported as neither installed
nor available.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from pydantic import BaseModel


class PackageFact(BaseModel):
    """Install/availability facts for a single package."""

    name: str
    installed: bool = False
    available: bool = False
    candidate: str | None = None           # version apt would install
    installed_version: str | None = None


class PackageFacts:
    """Immutable mapping of package name → PackageFact."""

    def __init__(self, facts: Iterable[PackageFact] = ()):
        self._facts: dict[str, PackageFact] = {f.name: f for f in facts}

    def get(self, name: str) -> PackageFact:
        return self._facts.get(name) or PackageFact(name=name)

    def installed(self, name: str) -> bool:
        return self.get(name).installed

    def available(self, name: str) -> bool:
        return self.get(name).available

    def names(self) -> list[str]:
        return list(self._facts)

    def __contains__(self, name: object) -> bool:
        return name in self._facts

    def __iter__(self) -> Iterator[PackageFact]:
        return iter(self._facts.values())

    def __len__(self) -> int:
        return len(self._facts)

    def __repr__(self) -> str:
        installed = sum(1 for f in self._facts.values() if f.installed)
        return f"<PackageFacts packages={len(self._facts)} installed={installed}>"
