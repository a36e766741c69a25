"""
App store context — the path layout every service works against.

Built once at startup from an ``AppsConfig`` and handed to services
explicitly:

    - CLI:    main.py   → AppsContext.from_config(load_config(...))
    - Tests:  conftest  → AppsContext.from_config(AppsConfig(directory=tmp_path))

Layout under the app store directory::

    apps/<app>/packages          declared packages of a package-app
    data/status/<app>            "installed" (absent = uninstalled)
    data/category-overrides      app|category lines written locally
    data/settings/<name>         one file per user setting
    etc/categories               app|category lines shipped with the store
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from src.core.models.config import AppsConfig


@dataclass(frozen=True)
class AppsContext:
    """Resolved paths plus the config they were derived from."""

    config: AppsConfig

    @classmethod
    def from_config(cls, config: AppsConfig) -> AppsContext:
        return cls(config=config)

    @property
    def directory(self) -> Path:
        return self.config.directory

    @property
    def apps_dir(self) -> Path:
        return self.directory / "apps"

    @property
    def status_dir(self) -> Path:
        return self.directory / "data" / "status"

    @property
    def settings_dir(self) -> Path:
        return self.directory / "data" / "settings"

    @property
    def overrides_file(self) -> Path:
        return self.directory / "data" / "category-overrides"

    @property
    def categories_file(self) -> Path:
        return self.directory / "etc" / "categories"

    @property
    def system_root(self) -> Path:
        return self.config.system_root

    def app_dir(self, app: str) -> Path:
        return self.apps_dir / app

    def packages_file(self, app: str) -> Path:
        return self.apps_dir / app / "packages"

    def status_file(self, app: str) -> Path:
        return self.status_dir / app

    def setting_file(self, name: str) -> Path:
        return self.settings_dir / name
