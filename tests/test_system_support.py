"""
Tests for system support heuristics.
"""

import subprocess
from datetime import date
from pathlib import Path
from unittest.mock import patch

import pytest

from src.adapters.mock import StaticPackageBackend
from src.adapters.shell.command import CommandError
from src.core.context import AppsContext
from src.core.models.config import AppsConfig
from src.core.services.system_support import (
    MISSING_INIT_MESSAGE,
    OSInfo,
    check_os_version,
    check_system_support,
    is_android,
    is_musl,
    is_wsl,
    no_eol_data,
    read_os_info,
    version_at_least,
)

BOOKWORM = 'PRETTY_NAME="Debian GNU/Linux 12 (bookworm)"\nID=debian\nVERSION_ID="12"\nVERSION_CODENAME=bookworm\n'


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


def _debian(release: str, codename: str = "", arch: str = "aarch64") -> OSInfo:
    return OSInfo(id="Debian", release=release, codename=codename, architecture=arch)


class TestReadOSInfo:
    def test_parse(self, tmp_path: Path):
        _write(tmp_path / "etc/os-release", BOOKWORM + "ORIGINAL_ID=raspbian\n")
        info = read_os_info(tmp_path)
        assert info.id == "Debian"
        assert info.release == "12"
        assert info.codename == "bookworm"
        assert info.pretty_name == "Debian GNU/Linux 12 (bookworm)"
        assert info.original_id == "raspbian"

    def test_missing(self, tmp_path: Path):
        with pytest.raises(OSError):
            read_os_info(tmp_path)


class TestEnvironmentProbes:
    def test_android_by_kernel(self, tmp_path: Path):
        _write(tmp_path / "proc/version", "Linux version 4.14 (android-build)")
        assert is_android(tmp_path)

    def test_android_by_dirs(self, tmp_path: Path):
        (tmp_path / "system/app").mkdir(parents=True)
        (tmp_path / "system/priv-app").mkdir(parents=True)
        assert is_android(tmp_path)

    def test_not_android(self, tmp_path: Path):
        _write(tmp_path / "proc/version", "Linux version 6.1.0-rpi7")
        assert not is_android(tmp_path)

    def test_wsl_by_kernel(self, tmp_path: Path):
        _write(tmp_path / "proc/version", "Linux version 5.15.90.1-microsoft-standard-WSL2")
        assert is_wsl(tmp_path, environ={})

    def test_wsl_by_env(self, tmp_path: Path):
        assert is_wsl(tmp_path, environ={"WSL_DISTRO_NAME": "Ubuntu"})

    def test_not_wsl(self, tmp_path: Path):
        assert not is_wsl(tmp_path, environ={})


class TestMusl:
    @staticmethod
    def _runner(outputs: dict):
        def run(args, timeout=10, check=False):
            key = args[1]
            if key not in outputs:
                raise CommandError(args, "Command not found: ldd")
            return subprocess.CompletedProcess(args, 0, stdout=outputs[key], stderr="")
        return run

    def test_musl_interpreter(self, tmp_path: Path):
        with patch("src.core.services.system_support.sys.executable", str(tmp_path / "python")):
            (tmp_path / "python").write_text("")
            runner = self._runner({str(tmp_path / "python"): "/lib/ld-musl-aarch64.so.1 (0x7f)"})
            assert is_musl(tmp_path, runner=runner)

    def test_glibc_interpreter(self, tmp_path: Path):
        with patch("src.core.services.system_support.sys.executable", str(tmp_path / "python")):
            (tmp_path / "python").write_text("")
            runner = self._runner({str(tmp_path / "python"): "libc.so.6 => /lib/aarch64-linux-gnu/libc.so.6"})
            assert not is_musl(tmp_path, runner=runner)

    def test_alpine_fallback(self, tmp_path: Path):
        _write(tmp_path / "etc/os-release", "ID=alpine\n")
        with patch("src.core.services.system_support.sys.executable", ""):
            assert is_musl(tmp_path, runner=self._runner({}))

    def test_linker_glob(self, tmp_path: Path):
        _write(tmp_path / "lib/ld-musl-armhf.so.1", "")
        with patch("src.core.services.system_support.sys.executable", ""):
            assert is_musl(tmp_path, runner=self._runner({}))


class TestVersionAtLeast:
    def test_numeric(self):
        assert version_at_least("22.04", "22.04")
        assert version_at_least("24.04", "22.04")
        assert not version_at_least("20.04", "22.04")
        assert version_at_least("22.10", "22.04")

    def test_lengths(self):
        assert version_at_least("12.1", "12")
        assert not version_at_least("12", "12.1")

    def test_non_numeric_falls_back(self):
        assert version_at_least("b", "a")


class TestCheckOSVersion:
    def test_pi_os_buster(self, tmp_path: Path):
        _write(tmp_path / "etc/rpi-issue", "Raspberry Pi reference")
        msg = check_os_version(_debian("10", "buster"), tmp_path, fetch_eol=no_eol_data)
        assert "Pi OS Buster" in msg

    def test_static_debian_floor(self, tmp_path: Path):
        msg = check_os_version(_debian("10", "buster"), tmp_path, fetch_eol=no_eol_data)
        assert "outdated Debian Buster" in msg

    def test_bookworm_supported_offline(self, tmp_path: Path):
        assert check_os_version(_debian("12", "bookworm"), tmp_path, fetch_eol=no_eol_data) == ""

    def test_debian_past_eol(self, tmp_path: Path):
        releases = [{"cycle": "11", "extendedSupport": "2026-08-31"}]
        msg = check_os_version(
            _debian("11", "bullseye"), tmp_path,
            fetch_eol=lambda product: releases, today=date(2026, 12, 1),
        )
        assert "(EOL: 2026-08-31)" in msg

    def test_debian_just_past_eol(self, tmp_path: Path):
        releases = [{"cycle": "11", "extendedSupport": "2026-08-31"}]
        msg = check_os_version(
            _debian("11", "bullseye"), tmp_path,
            fetch_eol=lambda product: releases, today=date(2026, 9, 10),
        )
        assert "reached end-of-life on 2026-08-31" in msg

    def test_debian_eol_soon_warns(self, tmp_path: Path):
        releases = [{"cycle": "12", "extendedSupport": "2028-06-30"}]
        warnings: list[str] = []
        msg = check_os_version(
            _debian("12", "bookworm"), tmp_path,
            fetch_eol=lambda product: releases, today=date(2028, 4, 1), warnings=warnings,
        )
        assert msg == ""
        assert "will reach end-of-life on 2028-06-30" in warnings[0]

    def test_fetch_failure_only_warns(self, tmp_path: Path, caplog):
        def broken(product):
            raise OSError("no network")

        with caplog.at_level("WARNING"):
            msg = check_os_version(_debian("12", "bookworm"), tmp_path, fetch_eol=broken)
        assert msg == ""
        assert "Failed to check Debian EOL status" in caplog.text

    def test_old_ubuntu(self, tmp_path: Path):
        info = OSInfo(id="Ubuntu", release="20.04", codename="focal", architecture="aarch64")
        msg = check_os_version(info, tmp_path, fetch_eol=no_eol_data)
        assert "outdated Ubuntu Focal" in msg

    def test_switchroot_bionic(self, tmp_path: Path):
        _write(tmp_path / "etc/switchroot_version.conf", "")
        info = OSInfo(id="Ubuntu", release="18.04", codename="bionic")
        assert "Switchroot" in check_os_version(info, tmp_path, fetch_eol=no_eol_data)

    def test_manjaro(self, tmp_path: Path):
        info = OSInfo(id="Manjaro-arm", pretty_name="Manjaro ARM")
        assert check_os_version(info, tmp_path, fetch_eol=no_eol_data) == "Pi-Apps is not supported on Manjaro."

    def test_armv6(self, tmp_path: Path):
        msg = check_os_version(_debian("12", "bookworm", arch="armv6l"), tmp_path, fetch_eol=no_eol_data)
        assert "ARMv6" in msg


class TestCheckSystemSupport:
    @pytest.fixture
    def ctx(self, store, tmp_path: Path) -> AppsContext:
        root = tmp_path / "sysroot"
        _write(root / "etc/os-release", BOOKWORM)
        return AppsContext.from_config(AppsConfig(directory=store.root, system_root=root))

    @pytest.fixture(autouse=True)
    def _host(self):
        plenty = type("Usage", (), {"free": 50 * 1024 ** 3})()
        with patch("src.core.services.system_support.os.geteuid", return_value=1000), \
             patch("src.core.services.system_support.is_musl", return_value=False), \
             patch("src.core.services.system_support.shutil.disk_usage", return_value=plenty), \
             patch("src.core.services.system_support.platform.machine", return_value="aarch64"):
            yield

    def test_supported(self, ctx):
        result = check_system_support(ctx, StaticPackageBackend(available=["init"]), fetch_eol=no_eol_data)
        assert result.supported
        assert result.os_info.release == "12"
        assert result.to_dict()["supported"] is True

    def test_root_user(self, ctx):
        with patch("src.core.services.system_support.os.geteuid", return_value=0):
            result = check_system_support(ctx, StaticPackageBackend(available=["init"]), fetch_eol=no_eol_data)
        assert not result.supported
        assert "root" in result.message

    def test_missing_init(self, ctx):
        result = check_system_support(ctx, StaticPackageBackend(), fetch_eol=no_eol_data)
        assert not result.supported
        assert result.message == MISSING_INIT_MESSAGE

    def test_wsl(self, ctx):
        _write(ctx.system_root / "etc/wsl.conf", "")
        result = check_system_support(ctx, StaticPackageBackend(available=["init"]), fetch_eol=no_eol_data)
        assert result.message == "Pi-Apps is not supported on WSL."

    def test_musl_warns(self, ctx):
        with patch("src.core.services.system_support.is_musl", return_value=True):
            result = check_system_support(ctx, StaticPackageBackend(available=["init"]), fetch_eol=no_eol_data)
        assert result.supported
        assert result.warnings
        assert "musl" in result.message

    def test_low_disk_space(self, ctx):
        usage = type("Usage", (), {"free": 100 * 1024 * 1024})()
        with patch("src.core.services.system_support.shutil.disk_usage", return_value=usage):
            result = check_system_support(ctx, StaticPackageBackend(available=["init"]), fetch_eol=no_eol_data)
        assert result.supported
        assert "500MB" in result.message
