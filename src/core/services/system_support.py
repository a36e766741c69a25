"""
System support heuristics — is this machine one the app store targets?

Answers with a SupportStatus: a verdict, the message to show, and any
non-fatal warnings. Checks run in order and the first hard failure
wins:

    root user → Android → WSL → OS version/EOL → missing ``init``

x86, musl and low disk space only add warnings.

All filesystem probes are relative to ``root`` so tests can point
them at a fake tree.
"""

from __future__ import annotations

import calendar
import json
import logging
import os
import platform
import shutil
import sys
import urllib.request
from collections.abc import Callable, Mapping
from dataclasses import asdict, dataclass, field
from datetime import date
from pathlib import Path

from src.adapters.base import PackageBackend
from src.adapters.shell.command import CommandError, run_command
from src.core.context import AppsContext

logger = logging.getLogger(__name__)

EOL_API = "https://endoflife.date/api/{product}.json"

MIN_FREE_SPACE = 500 * 1024 * 1024  # bytes

MISSING_INIT_MESSAGE = (
    "Congratulations, Linux tinkerer, you broke your system. The init package can "
    "not be found, which means you have removed the default debian sources from your "
    "system.\nAll apt based application installs will fail. Unless you have a backup "
    "of your /etc/apt/sources.list /etc/apt/sources.list.d you will need to "
    "reinstall your OS."
)

# product → list of release cycles, as served by endoflife.date
EolFetcher = Callable[[str], list[dict]]


@dataclass(frozen=True)
class OSInfo:
    """Fields of /etc/os-release that matter for support checks."""

    id: str = ""
    release: str = ""
    codename: str = ""
    pretty_name: str = ""
    original_id: str = ""
    architecture: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SupportStatus:
    """Verdict of ``check_system_support``."""

    supported: bool = True
    message: str = ""
    warnings: list[str] = field(default_factory=list)
    os_info: OSInfo | None = None

    def to_dict(self) -> dict:
        return {
            "supported": self.supported,
            "message": self.message,
            "warnings": list(self.warnings),
            "os_info": self.os_info.to_dict() if self.os_info else None,
        }


# ── Probes ──────────────────────────────────────────────────────


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return ""


def read_os_info(root: Path = Path("/")) -> OSInfo:
    """Parse ``etc/os-release`` under ``root``.

    Raises:
        OSError: If the file cannot be read.
    """
    text = (root / "etc/os-release").read_text(encoding="utf-8")
    values: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            values[key.strip()] = value.strip().strip('"')

    os_id = values.get("ID", "")
    return OSInfo(
        id=os_id[:1].upper() + os_id[1:],
        release=values.get("VERSION_ID", ""),
        codename=values.get("VERSION_CODENAME", ""),
        pretty_name=values.get("PRETTY_NAME", ""),
        original_id=values.get("ORIGINAL_ID", ""),
        architecture=platform.machine(),
    )


def is_android(root: Path = Path("/")) -> bool:
    mounts = _read(root / "proc/mounts")
    if "/data/media " in mounts and "Android" in mounts:
        return True
    version = _read(root / "proc/version").lower()
    if "android" in version or "termux" in version:
        return True
    return (root / "system/app").is_dir() and (root / "system/priv-app").is_dir()


def is_wsl(root: Path = Path("/"), environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    if "microsoft" in _read(root / "proc/version").lower():
        return True
    if "wsl" in _read(root / "proc/sys/kernel/osrelease").lower():
        return True
    if (root / "run/WSL").exists() or (root / "etc/wsl.conf").exists():
        return True
    return bool(env.get("WSL_DISTRO_NAME"))


def _ldd_libc(binary: str, runner: Callable) -> bool | None:
    """True for musl, False for glibc, None if ldd cannot tell."""
    try:
        output = runner(["ldd", binary], timeout=10, check=False).stdout
    except CommandError:
        return None
    if "ld-musl-" in output:
        return True
    if "libc.so.6" in output:
        return False
    return None


def is_musl(root: Path = Path("/"), runner: Callable | None = None) -> bool:
    """Whether the system's primary C library is musl.

    Tries, in order: what this interpreter links against, what core
    binaries link against, which dynamic linkers exist, what
    ``ldd --version`` says, and finally ``ID=alpine``.
    """
    run = runner or run_command

    for binary in (sys.executable, *(str(root / b) for b in ("bin/sh", "sbin/init", "usr/bin/ls", "bin/ls"))):
        if not binary or not Path(binary).exists():
            continue
        verdict = _ldd_libc(binary, run)
        if verdict is not None:
            return verdict

    if any(root.glob("lib*/ld-linux-*.so.*")):
        return False
    if any(root.glob("lib/ld-musl-*.so.*")):
        return True

    try:
        result = run(["ldd", "--version"], timeout=10, check=False)
        output = (result.stdout + result.stderr).lower()
    except CommandError:
        output = ""
    if "gnu libc" in output:
        return False
    if "musl" in output:
        return True

    os_release = _read(root / "etc/os-release")
    return "ID=alpine" in os_release or 'ID="alpine"' in os_release


def version_at_least(version: str, minimum: str) -> bool:
    """Dotted numeric ``version >= minimum``; plain string compare if not numeric."""
    a, b = version.split("."), minimum.split(".")
    for x, y in zip(a, b):
        if not (x.isdigit() and y.isdigit()):
            return version >= minimum
        if int(x) != int(y):
            return int(x) > int(y)
    return len(a) >= len(b)


# ── OS version / EOL ────────────────────────────────────────────


def fetch_eol_data(product: str) -> list[dict]:
    """Release cycles of ``product`` from endoflife.date."""
    req = urllib.request.Request(
        EOL_API.format(product=product),
        headers={"User-Agent": "piapps-status/1.0", "Accept": "application/json"},
    )
    with urllib.request.urlopen(req, timeout=10) as resp:
        return json.loads(resp.read().decode("utf-8"))


def no_eol_data(product: str) -> list[dict]:
    """Offline stand-in: no release data, static fallbacks apply."""
    return []


def _add_months(d: date, months: int) -> date:
    month = d.month - 1 + months
    year = d.year + month // 12
    month = month % 12 + 1
    return date(year, month, min(d.day, calendar.monthrange(year, month)[1]))


def _check_eol(
    info: OSInfo,
    product: str,
    eol_field: str,
    fetch_eol: EolFetcher,
    today: date,
    warnings: list[str],
) -> str:
    try:
        releases = fetch_eol(product)
    except Exception as e:
        logger.warning("Failed to check %s EOL status: %s", info.id, e)
        return ""

    name = f"{info.id} {info.codename.title()}"
    for release in releases:
        if release.get("cycle") != info.release:
            continue
        eol_value = release.get(eol_field)
        if not isinstance(eol_value, str):
            return ""
        try:
            eol = date.fromisoformat(eol_value)
        except ValueError:
            logger.warning("Unparseable %s EOL date %r", info.id, eol_value)
            return ""

        if eol < today < _add_months(eol, 1):
            return (
                f"Your {name} operating system reached end-of-life on {eol_value}. "
                "Please upgrade your system before Pi-Apps becomes unsupported."
            )
        if today >= _add_months(eol, 1):
            return (
                f"Pi-Apps is not supported on your outdated {name} operating system "
                f"(EOL: {eol_value}). Expect apps to slowly fail. "
                "Consider installing a newer operating system."
            )
        if eol < _add_months(today, 4):
            msg = (
                f"Your {name} operating system will reach end-of-life on {eol_value}. "
                "Please consider upgrading your system."
            )
            warnings.append(msg)
        return ""
    return ""


def _outdated(info: OSInfo) -> str:
    return (
        f"Pi-Apps is not supported on your outdated {info.id} {info.codename.title()} "
        "operating system. Expect many apps to fail. Consider installing a newer "
        "operating system."
    )


def check_os_version(
    info: OSInfo,
    root: Path = Path("/"),
    fetch_eol: EolFetcher | None = None,
    today: date | None = None,
    warnings: list[str] | None = None,
) -> str:
    """Reason this OS release is unsupported ("" when it is fine).

    EOL data comes from ``fetch_eol`` (default: endoflife.date). A
    failed fetch is only logged and the static version floor applies.
    """
    fetch = fetch_eol or fetch_eol_data
    day = today or date.today()
    notes = warnings if warnings is not None else []

    if info.id in ("Debian", "Raspbian"):
        if info.release == "10" and (root / "etc/rpi-issue").exists():
            return (
                "Pi-Apps is no longer supported on your Pi OS Buster operating system. "
                "Consider installing Pi OS Trixie."
            )
        msg = _check_eol(info, "debian", "extendedSupport", fetch, day, notes)
        if msg:
            return msg
        if info.release.isdigit() and int(info.release) < 11:
            return _outdated(info)

    if info.id == "Ubuntu":
        if info.release == "18.04" and (root / "etc/switchroot_version.conf").exists():
            return (
                "Pi-Apps is no longer supported on your outdated Switchroot Ubuntu Bionic "
                "operating system. Consider installing Switchroot Ubuntu Noble."
            )
        msg = _check_eol(info, "ubuntu", "eol", fetch, day, notes)
        if msg:
            return msg
        if not version_at_least(info.release, "22.04"):
            return _outdated(info)

    if "manjaro" in info.pretty_name.lower():
        return "Pi-Apps is not supported on Manjaro."

    if info.architecture.startswith("armv6"):
        return "Pi-Apps is not supported on ARMv6 Raspberry Pi boards. Expect some apps to fail."

    return ""


# ── Aggregate ───────────────────────────────────────────────────


def check_system_support(
    ctx: AppsContext,
    backend: PackageBackend,
    fetch_eol: EolFetcher | None = None,
) -> SupportStatus:
    """Run every support check against the configured system root.

    Raises:
        OSError: os-release cannot be read.
        PackageQueryError: The backend cannot answer for ``init``.
    """
    root = ctx.system_root
    info = read_os_info(root)
    status = SupportStatus(os_info=info)

    if os.geteuid() == 0:
        status.supported = False
        status.message = "Pi-Apps is not designed to be run as root user."
        return status

    if info.architecture in ("x86_64", "i386", "i686", "amd64"):
        status.message = "Running on x86 architecture. ARM-specific apps will be hidden from the app list."

    if is_musl(root):
        status.warnings.append(
            "You are running a system with a non-glibc C library (like musl). "
            "Many apps, especially Electron-based ones, will fail to run properly."
        )
        status.message = "Running a non-glibc C library, will hide apps that don't support musl."

    if is_android(root):
        status.supported = False
        status.message = "Pi-Apps is not supported on Android. Some apps will work, but others won't."
        return status

    if is_wsl(root):
        status.supported = False
        status.message = "Pi-Apps is not supported on WSL."
        return status

    version_msg = check_os_version(info, root, fetch_eol=fetch_eol, warnings=status.warnings)
    if version_msg:
        status.supported = False
        status.message = version_msg
        return status

    if not backend.package_available("init"):
        status.supported = False
        status.message = MISSING_INIT_MESSAGE
        return status

    try:
        free = shutil.disk_usage(root).free
    except OSError as e:
        logger.warning("Could not check free disk space: %s", e)
    else:
        if free < MIN_FREE_SPACE:
            status.message = (
                'Your system drive has less than 500MB of free space. Watch out for "disk full" errors.'
            )

    for warning in status.warnings:
        logger.warning(warning)
    return status
