"""
Package backend base — the capability contract for package managers.

The reconciliation engine only asks two questions of the system:
"is this package installed?" and "could it be installed?". Backends
answer both for a whole batch at once and hand back a PackageFacts
snapshot. Text scraping of dpkg/apt-cache stays inside the backend.

To add a package manager:
    1. Subclass PackageBackend
    2. Implement name, is_available, architecture, query
    3. Register it in the BackendRegistry
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from src.core.models.packages import PackageFacts


class PackageQueryError(Exception):
    """The package manager could not be queried."""


class PackageBackend(ABC):
    """Abstract base class for package-manager backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The backend identifier (e.g., 'apt')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the backend's tools exist on this system.

        Should be fast and never raise.
        """

    @abstractmethod
    def architecture(self) -> str:
        """Native package architecture (e.g., 'arm64').

        Raises:
            PackageQueryError: If it cannot be determined.
        """

    @abstractmethod
    def query(self, packages: Iterable[str]) -> PackageFacts:
        """Install/availability facts for every name in ``packages``.

        Issues a bounded number of invocations regardless of batch size.
        Names the backend knows nothing about are reported as neither
        installed nor available.

        Raises:
            PackageQueryError: If the package manager cannot be invoked.
        """

    def package_installed(self, package: str) -> bool:
        return self.query([package]).installed(package)

    def package_available(self, package: str) -> bool:
        return self.query([package]).available(package)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
