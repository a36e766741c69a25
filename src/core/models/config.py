"""
AppsConfig — validated settings for one app store installation.

Loaded by ``src.core.config.loader.load_config`` and passed explicitly
to every service. Nothing below the CLI reads the environment.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

DEFAULT_ANALYTICS_URL = "https://analytics.pi-apps.io/pi-apps-{trigger}-{app}/track"


class AppsConfig(BaseModel):
    """Settings for one app store directory."""

    directory: Path
    dpkg_status_file: Path = Path("/var/lib/dpkg/status")
    architecture: str | None = None          # overrides dpkg --print-architecture
    backend: str = "auto"                    # package backend name, or auto-detect
    category_editor: Path | None = None      # external categoryedit script

    analytics_url: str = DEFAULT_ANALYTICS_URL
    analytics_timeout: float = Field(default=10.0, gt=0)

    # Root of the host filesystem (os-release, /proc, ...)
    system_root: Path = Path("/")
