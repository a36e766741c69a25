"""
Tests for CLI commands — refresh, status, list, required, category, system.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from PIL import Image

from src.adapters.mock import StaticPackageBackend
from src.adapters.registry import BackendRegistry
from src.main import cli


@pytest.fixture
def static_backend():
    """Route the CLI's package queries to an in-memory backend."""
    backend = StaticPackageBackend(backend_name="apt")
    registry = BackendRegistry()
    registry.register(backend)
    with patch("src.adapters.registry.default_registry", return_value=registry):
        yield backend


def _invoke(store, *args):
    return CliRunner().invoke(cli, ["--dir", str(store.root), *args])


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Pi-Apps status helper" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_missing_directory(self, monkeypatch):
        monkeypatch.delenv("PI_APPS_DIR", raising=False)
        result = CliRunner().invoke(cli, ["list"])
        assert result.exit_code == 1
        assert "PI_APPS_DIR" in result.output

    def test_env_directory(self, store, monkeypatch):
        store.add_package_app("Firefox", "firefox-esr")
        monkeypatch.setenv("PI_APPS_DIR", str(store.root))
        result = CliRunner().invoke(cli, ["list"])
        assert result.exit_code == 0
        assert "Firefox" in result.output


class TestRefreshCommand:
    def test_refresh_all(self, store, static_backend):
        store.add_package_app("Firefox", "firefox-esr")
        store.add_package_app("Gone", "nothing-here")
        static_backend.set_installed("firefox-esr")
        result = _invoke(store, "refresh", "--no-analytics")
        assert result.exit_code == 0, result.output
        assert "Firefox" in result.output
        assert "2 apps, 2 changed, 0 failed" in result.output
        assert store.status_file("Firefox").read_text() == "installed"
        assert "Gone|hidden" in store.overrides()

    def test_refresh_all_json(self, store, static_backend):
        store.add_package_app("Firefox", "firefox-esr")
        static_backend.set_available("firefox-esr")
        result = _invoke(store, "refresh", "--no-analytics", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["apps_total"] == 1
        assert data["outcomes"][0]["target"] == "uninstalled"
        assert data["outcomes"][0]["changed"] is False

    def test_refresh_one(self, store, static_backend):
        store.add_package_app("Firefox", "firefox-esr")
        static_backend.set_installed("firefox-esr")
        result = _invoke(store, "refresh", "Firefox", "--no-analytics", "--json")
        assert result.exit_code == 0
        assert json.loads(result.output)["target"] == "installed"

    def test_refresh_with_package(self, store, static_backend):
        store.add_package_app("Firefox", "firefox-esr firefox")
        result = _invoke(store, "refresh", "Firefox", "--package", "firefox", "--no-analytics")
        assert result.exit_code == 0
        assert static_backend.call_log == [["firefox"]]

    def test_package_requires_app(self, store, static_backend):
        result = _invoke(store, "refresh", "--package", "firefox")
        assert result.exit_code == 1
        assert "--package requires an APP" in result.output

    def test_missing_packages_file(self, store, static_backend):
        store.add_standard_app("Zoom")
        result = _invoke(store, "refresh", "Zoom", "--no-analytics")
        assert result.exit_code == 1
        assert "❌" in result.output

    def test_backend_failure(self, store, static_backend):
        store.add_package_app("Firefox", "firefox-esr")
        static_backend.set_failure("dpkg database is locked")
        result = _invoke(store, "refresh", "--no-analytics")
        assert result.exit_code == 1
        assert "dpkg database is locked" in result.output

    def test_analytics_respect_setting(self, store, static_backend):
        store.add_package_app("Firefox", "firefox-esr")
        (store.root / "data/settings/Enable analytics").write_text("No")
        static_backend.set_installed("firefox-esr")
        with patch("src.core.services.analytics.urllib.request.urlopen") as urlopen, \
             patch("src.core.services.analytics._thread_dispatch", side_effect=lambda fn: fn()):
            result = _invoke(store, "refresh", "Firefox")
        assert result.exit_code == 0
        urlopen.assert_not_called()


class TestQueryCommands:
    def test_status(self, store):
        store.add_package_app("Firefox", "firefox-esr", category="Internet")
        store.set_status("Firefox", "installed")
        result = _invoke(store, "status", "Firefox", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data == {
            "app": "Firefox",
            "status": "installed",
            "type": "package",
            "category": "Internet",
            "hidden": False,
        }

    def test_status_unknown_app(self, store):
        result = _invoke(store, "status", "Nope")
        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_list_filters(self, store):
        store.add_package_app("Firefox", "firefox-esr")
        store.add_standard_app("Zoom")
        result = _invoke(store, "list", "package", "--json")
        assert json.loads(result.output) == ["Firefox"]
        result = _invoke(store, "list")
        assert result.output.split() == ["Firefox", "Zoom"]

    def test_list_unknown_filter(self, store):
        result = _invoke(store, "list", "bogus")
        assert result.exit_code == 1
        assert "unknown app filter" in result.output

    def test_required(self, store, static_backend):
        store.add_package_app("Chromium", "chromium | chromium-browser libwidevine")
        static_backend.set_available("chromium-browser", "libwidevine")
        result = _invoke(store, "required", "Chromium")
        assert result.exit_code == 0
        assert result.output.strip() == "chromium-browser libwidevine"

    def test_required_unsatisfiable(self, store, static_backend):
        store.add_package_app("Chromium", "chromium")
        result = _invoke(store, "required", "Chromium")
        assert result.exit_code == 1
        assert "no installable packages" in result.output

    def test_required_unsatisfiable_json(self, store, static_backend):
        store.add_package_app("Chromium", "chromium")
        result = _invoke(store, "required", "Chromium", "--json")
        assert result.exit_code == 1
        assert json.loads(result.output) == {"app": "Chromium", "packages": []}


class TestCategoryCommands:
    def test_set_and_get(self, store):
        store.add_package_app("Firefox", "firefox-esr", category="Internet")
        result = _invoke(store, "category", "set", "Firefox", "Favorites")
        assert result.exit_code == 0
        result = _invoke(store, "category", "get", "Firefox")
        assert result.output.strip() == "Favorites"

    def test_set_unknown_app(self, store):
        result = _invoke(store, "category", "set", "Nope", "hidden")
        assert result.exit_code == 1

    def test_hidden(self, store):
        store.set_override("Zoom", "hidden")
        result = _invoke(store, "category", "hidden", "--json")
        assert json.loads(result.output) == ["Zoom"]


class TestSystemCommands:
    def test_check_offline_json(self, store, static_backend, tmp_path: Path):
        root = tmp_path / "sysroot"
        (root / "etc").mkdir(parents=True)
        (root / "etc/os-release").write_text("ID=debian\nVERSION_ID=12\nVERSION_CODENAME=bookworm\n")
        (store.root / "piapps.yml").write_text(f"system_root: {root}\n")
        static_backend.set_available("init")
        with patch("src.core.services.system_support.os.geteuid", return_value=1000), \
             patch("src.core.services.system_support.is_musl", return_value=False), \
             patch("src.core.services.system_support.platform.machine", return_value="aarch64"):
            result = _invoke(store, "system", "check", "--offline", "--json")
        data = json.loads(result.output)
        assert data["os_info"]["id"] == "Debian"
        assert data["supported"] is True

    def test_backends(self, store, static_backend):
        result = _invoke(store, "system", "backends", "--json")
        assert result.exit_code == 0
        assert json.loads(result.output)["apt"]["available"] is True


class TestIconsCommand:
    def test_icons(self, store, tmp_path: Path):
        source = tmp_path / "icon.png"
        Image.new("RGB", (128, 128), (0, 0, 255)).save(source)
        result = _invoke(store, "icons", "Firefox", str(source))
        assert result.exit_code == 0
        assert (store.root / "apps/Firefox/icon-64.png").is_file()
