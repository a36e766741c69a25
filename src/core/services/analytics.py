"""
Anonymous install/uninstall analytics.

When a package-app flips between installed and uninstalled, one GET is
sent to ``https://analytics.pi-apps.io/pi-apps-<trigger>-<app>/track``.
The request identifies the device only by hashes; raw identifiers
never leave DeviceInfo.

Delivery is fire-and-forget: ``notify`` hands the request to a daemon
thread and returns immediately. Nothing waits for or reports a result,
and a failed request is only logged at DEBUG.
"""

from __future__ import annotations

import hashlib
import logging
import platform
import re
import threading
import urllib.request
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from src.core.context import AppsContext

logger = logging.getLogger(__name__)

ANALYTICS_SETTING = "Enable analytics"

_UNSAFE_APP_CHARS = re.compile(r"[^A-Za-z0-9]")


def analytics_enabled(ctx: AppsContext) -> bool:
    """False only when the setting file says exactly ``No``."""
    path = ctx.setting_file(ANALYTICS_SETTING)
    try:
        return path.read_text(encoding="utf-8").strip() != "No"
    except OSError:
        return True


def sanitize_app_name(app: str) -> str:
    """Keep only ASCII letters and digits (``"Better Chromium"`` → ``BetterChromium``)."""
    return _UNSAFE_APP_CHARS.sub("", app)


def _hash_file(path: Path) -> str:
    try:
        content = path.read_bytes()
    except OSError:
        return ""
    if not content:
        return ""
    return hashlib.sha1(content).hexdigest()


def _cpuinfo_field(line: str, key: str) -> str:
    value = line[len(key):].strip().removeprefix(":").strip()
    return value.strip("\"';")


@dataclass(frozen=True)
class DeviceInfo:
    """Anonymised description of the device for the User-Agent."""

    model: str = ""
    soc: str = ""
    machine_hash: str = ""
    serial_hash: str = ""
    os_name: str = ""
    arch: str = ""

    @classmethod
    def collect(cls, root: Path = Path("/")) -> DeviceInfo:
        model = soc = ""
        try:
            cpuinfo = (root / "proc/cpuinfo").read_text(encoding="utf-8", errors="replace")
        except OSError:
            cpuinfo = ""
        for line in cpuinfo.splitlines():
            if line.startswith("Model"):
                model = _cpuinfo_field(line, "Model")
            elif line.startswith("Hardware"):
                soc = _cpuinfo_field(line, "Hardware")

        return cls(
            model=model,
            soc=soc,
            machine_hash=_hash_file(root / "etc/machine-id"),
            serial_hash=_hash_file(root / "sys/firmware/devicetree/base/serial-number"),
            os_name=_os_name(root / "etc/os-release"),
            arch=platform.machine(),
        )

    def user_agent(self) -> str:
        return (
            f"Pi-Apps Raspberry Pi app store; {self.model}; {self.soc}; "
            f"{self.machine_hash}; {self.serial_hash}; {self.os_name}; {self.arch}"
        )


def _os_name(path: Path) -> str:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return ""
    os_id = version = ""
    for line in text.splitlines():
        if line.startswith("ID="):
            os_id = line[3:].strip('"')
        elif line.startswith("VERSION_ID="):
            version = line[11:].strip('"')
    name = f"{os_id} {version}"
    return name[:1].upper() + name[1:]


def _thread_dispatch(fn: Callable[[], object]) -> None:
    threading.Thread(target=fn, name="analytics", daemon=True).start()


class AnalyticsNotifier:
    """Sends install/uninstall events in the background.

    Args:
        ctx: App store context (settings and config).
        dispatch: Runs the send callable. Defaults to a daemon thread;
            tests pass a synchronous runner.
        opener: ``urlopen``-compatible callable.
    """

    def __init__(
        self,
        ctx: AppsContext,
        dispatch: Callable[[Callable[[], object]], None] | None = None,
        opener: Callable | None = None,
    ):
        self._ctx = ctx
        self._dispatch = dispatch or _thread_dispatch
        self._opener = opener or urllib.request.urlopen
        self._device: DeviceInfo | None = None

    def notify(self, app: str, trigger: str) -> None:
        if not app:
            logger.error("Analytics notification requires an app name")
            return
        if not trigger:
            logger.error("Analytics notification requires a trigger")
            return
        self._dispatch(lambda: self.send(app, trigger))

    def send(self, app: str, trigger: str) -> bool:
        """Send one event now. Never raises."""
        try:
            if not analytics_enabled(self._ctx):
                logger.debug("Analytics disabled, not sending %s/%s", trigger, app)
                return False
            if self._device is None:
                self._device = DeviceInfo.collect(self._ctx.system_root)

            url = self._ctx.config.analytics_url.format(
                trigger=trigger, app=sanitize_app_name(app),
            )
            req = urllib.request.Request(
                url,
                headers={
                    "User-Agent": self._device.user_agent(),
                    "Accept": "image/gif",
                },
            )
            with self._opener(req, timeout=self._ctx.config.analytics_timeout):
                pass
            logger.debug("Sent analytics %s for %s", trigger, app)
            return True
        except Exception as e:
            logger.debug("Analytics request for %s failed: %s", app, e)
            return False


class NullNotifier:
    """Notifier that drops every event."""

    def notify(self, app: str, trigger: str) -> None:
        logger.debug("Analytics off, dropping %s/%s", trigger, app)
