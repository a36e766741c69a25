"""Adapters — package-manager backends and subprocess plumbing.

Public re-exports for convenient access.
"""

from src.adapters.base import PackageBackend, PackageQueryError
from src.adapters.mock import StaticPackageBackend
from src.adapters.registry import BackendRegistry

__all__ = [
    "BackendRegistry",
    "PackageBackend",
    "PackageQueryError",
    "StaticPackageBackend",
]
