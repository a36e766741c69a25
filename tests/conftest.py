"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from src.adapters.mock import StaticPackageBackend
from src.core.context import AppsContext
from src.core.models.config import AppsConfig


class FakeStore:
    """Builds a throwaway Pi-Apps directory tree."""

    def __init__(self, root: Path):
        self.root = root
        for sub in ("apps", "data/status", "data/settings", "etc"):
            (root / sub).mkdir(parents=True, exist_ok=True)

    def add_package_app(self, app: str, packages: str, category: str | None = "Internet") -> Path:
        app_dir = self.root / "apps" / app
        app_dir.mkdir(parents=True, exist_ok=True)
        (app_dir / "packages").write_text(packages + "\n")
        if category is not None:
            self.add_global_category(app, category)
        return app_dir

    def add_standard_app(self, app: str, category: str | None = "Tools") -> Path:
        app_dir = self.root / "apps" / app
        app_dir.mkdir(parents=True, exist_ok=True)
        (app_dir / "install").write_text("#!/bin/bash\n")
        (app_dir / "uninstall").write_text("#!/bin/bash\n")
        if category is not None:
            self.add_global_category(app, category)
        return app_dir

    def add_global_category(self, app: str, category: str) -> None:
        path = self.root / "etc" / "categories"
        with path.open("a") as f:
            f.write(f"{app}|{category}\n")

    def set_override(self, app: str, category: str) -> None:
        path = self.root / "data" / "category-overrides"
        with path.open("a") as f:
            f.write(f"{app}|{category}\n")

    def overrides(self) -> str:
        path = self.root / "data" / "category-overrides"
        return path.read_text() if path.is_file() else ""

    def set_status(self, app: str, status: str) -> None:
        (self.root / "data" / "status" / app).write_text(status)

    def status_file(self, app: str) -> Path:
        return self.root / "data" / "status" / app


class RecordingNotifier:
    """Collects notifications instead of sending them."""

    def __init__(self):
        self.events: list[tuple[str, str]] = []

    def notify(self, app: str, trigger: str) -> None:
        self.events.append((app, trigger))


@pytest.fixture
def store(tmp_path: Path) -> FakeStore:
    """An empty app store under tmp_path/pi-apps."""
    return FakeStore(tmp_path / "pi-apps")


@pytest.fixture
def apps_ctx(store: FakeStore) -> AppsContext:
    return AppsContext.from_config(AppsConfig(directory=store.root))


@pytest.fixture
def backend() -> StaticPackageBackend:
    return StaticPackageBackend()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
