"""
Backend registry — picks the package backend for this system.

Services never construct backends themselves; they ask the registry
for one by name, or let it auto-detect the first available backend.
"""

from __future__ import annotations

import logging
from typing import Any

from src.adapters.base import PackageBackend
from src.core.config.loader import ConfigError
from src.core.models.config import AppsConfig

logger = logging.getLogger(__name__)

AUTO = "auto"


class BackendRegistry:
    """Registry of package backends, in detection-priority order."""

    def __init__(self) -> None:
        self._backends: dict[str, PackageBackend] = {}

    def register(self, backend: PackageBackend) -> None:
        """Register a backend (later registrations have lower priority)."""
        name = backend.name
        if name in self._backends:
            logger.warning("Overwriting existing backend: %s", name)
        self._backends[name] = backend
        logger.debug("Registered backend: %s", name)

    def unregister(self, name: str) -> None:
        self._backends.pop(name, None)

    def get(self, name: str) -> PackageBackend | None:
        return self._backends.get(name)

    def list_backends(self) -> list[str]:
        return list(self._backends.keys())

    def backend_status(self) -> dict[str, dict[str, Any]]:
        """Availability of every registered backend."""
        status = {}
        for name, backend in self._backends.items():
            try:
                available = backend.is_available()
            except Exception:
                available = False
            status[name] = {
                "name": name,
                "available": available,
                "type": backend.__class__.__name__,
            }
        return status

    def resolve(self, name: str = AUTO) -> PackageBackend:
        """Return the backend called ``name``, or auto-detect one.

        Raises:
            ConfigError: Unknown name, or no available backend.
        """
        if name != AUTO:
            backend = self._backends.get(name)
            if backend is None:
                raise ConfigError(
                    f"Unknown package backend '{name}' "
                    f"(registered: {', '.join(self._backends) or 'none'})"
                )
            return backend

        for backend in self._backends.values():
            if backend.is_available():
                logger.debug("Auto-detected package backend: %s", backend.name)
                return backend

        raise ConfigError("No supported package manager found on this system")


def default_registry(config: AppsConfig) -> BackendRegistry:
    """Registry with the built-in backends configured from ``config``."""
    from src.adapters.packages.apt import AptPackageBackend

    registry = BackendRegistry()
    registry.register(AptPackageBackend(
        dpkg_status_file=config.dpkg_status_file,
        architecture=config.architecture,
    ))
    return registry
