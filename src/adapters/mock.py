"""
Static backend — in-memory test double for package queries.

Answers from a fixed set of facts instead of touching dpkg/apt.
Records every query so tests can assert on batching.
"""

from __future__ import annotations

from collections.abc import Iterable

from src.adapters.base import PackageBackend, PackageQueryError
from src.core.models.packages import PackageFact, PackageFacts


class StaticPackageBackend(PackageBackend):
    """Package backend backed by in-memory facts.

    By default every package is unknown (not installed, not available).
    """

    def __init__(
        self,
        installed: Iterable[str] = (),
        available: Iterable[str] = (),
        backend_name: str = "static",
        arch: str = "arm64",
        present: bool = True,
    ):
        self._name = backend_name
        self._arch = arch
        self._present = present
        self._installed: set[str] = set(installed)
        self._available: set[str] = set(available)
        self._error: str | None = None
        self._call_log: list[list[str]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[list[str]]:
        """Package lists passed to every ``query`` call."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def is_available(self) -> bool:
        return self._present

    def architecture(self) -> str:
        return self._arch

    def set_installed(self, *packages: str) -> None:
        self._installed.update(packages)

    def set_uninstalled(self, *packages: str) -> None:
        self._installed.difference_update(packages)

    def set_available(self, *packages: str) -> None:
        self._available.update(packages)

    def set_unavailable(self, *packages: str) -> None:
        self._available.difference_update(packages)

    def set_failure(self, error: str = "Static backend failure") -> None:
        """Make every following query raise PackageQueryError."""
        self._error = error

    def query(self, packages: Iterable[str]) -> PackageFacts:
        names = list(dict.fromkeys(packages))
        self._call_log.append(names)
        if self._error:
            raise PackageQueryError(self._error)
        return PackageFacts(
            PackageFact(
                name=n,
                installed=n in self._installed,
                available=n in self._available,
                candidate="1.0" if n in self._available else None,
                installed_version="1.0" if n in self._installed else None,
            )
            for n in names
        )
