"""
APT backend — install/availability facts from dpkg and apt-cache.

One reconciliation pass costs exactly:
    - one read of the dpkg status database (/var/lib/dpkg/status)
    - one ``apt-cache policy pkg1:arch pkg2:arch ...`` invocation

however many packages are asked about.

Output formats scraped here::

    # /var/lib/dpkg/status: RFC822-ish stanzas separated by blank lines
    Package: firefox-esr
    Status: install ok installed
    Version: 115.6.0esr-1~deb12u1

    # apt-cache policy: one block per package, unindented header
    firefox-esr:
      Installed: (none)
      Candidate: 115.6.0esr-1~deb12u1
      Version table:
         ...

Parsing is forgiving: a malformed stanza/block is logged with its line
position and the package is reported as not installed / not available.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from src.adapters.base import PackageBackend, PackageQueryError
from src.adapters.shell.command import CommandError, command_available, run_command
from src.core.models.packages import PackageFact, PackageFacts

logger = logging.getLogger(__name__)

_NONE = "(none)"


# ═══════════════════════════════════════════════════════════════════
#  Parsers (pure)
# ═══════════════════════════════════════════════════════════════════


def parse_dpkg_status(text: str, wanted: Iterable[str] | None = None) -> dict[str, str | None]:
    """Installed packages from dpkg status text.

    Args:
        text: Contents of the dpkg status database.
        wanted: Restrict the result to these names (default: all).

    Returns:
        Mapping of installed package name → installed version (None if
        the stanza has no Version field). Packages that are known but not
        installed are absent.
    """
    wanted_set = set(wanted) if wanted is not None else None
    installed: dict[str, str | None] = {}

    stanza: dict[str, str] = {}
    stanza_start = 1

    def _flush() -> None:
        if not stanza:
            return
        name = stanza.get("Package")
        if not name:
            logger.debug("dpkg status: stanza at line %d has no Package field", stanza_start)
            return
        if wanted_set is not None and name not in wanted_set:
            return
        status_words = stanza.get("Status", "").split()
        if status_words and status_words[-1] == "installed":
            installed[name] = stanza.get("Version")

    lines = text.splitlines()
    for lineno, line in enumerate(lines, start=1):
        if not line.strip():
            _flush()
            stanza = {}
            stanza_start = lineno + 1
            continue
        if line[0] in " \t":
            continue  # continuation of a multi-line field
        key, sep, value = line.partition(":")
        if not sep:
            logger.debug("dpkg status: line %d is not a field: %r", lineno, line[:80])
            continue
        stanza[key] = value.strip()
    _flush()

    return installed


def parse_apt_policy(text: str) -> dict[str, PackageFact]:
    """Per-package facts from ``apt-cache policy`` output.

    Headers look like ``name:`` or ``name:arch:``; the architecture
    qualifier is dropped so facts are keyed by bare package name.
    """
    facts: dict[str, PackageFact] = {}

    current: str | None = None
    header_line = 0
    installed: str | None = None
    candidate: str | None = None
    seen_candidate = False

    def _flush() -> None:
        if current is None:
            return
        if not seen_candidate:
            logger.debug(
                "apt-cache policy: block for %s at line %d has no Candidate line",
                current, header_line,
            )
        available = bool(candidate) and candidate != _NONE
        version = installed if installed and installed != _NONE else None
        previous = facts.get(current)
        if previous is not None and previous.available and not available:
            return  # keep the more useful of two blocks for one name
        facts[current] = PackageFact(
            name=current,
            installed=version is not None,
            available=available,
            candidate=candidate if available else None,
            installed_version=version,
        )

    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        if line[0] not in " \t":
            stripped = line.rstrip()
            if stripped.endswith(":"):
                _flush()
                current = stripped[:-1].split(":", 1)[0]
                header_line = lineno
                installed = candidate = None
                seen_candidate = False
            else:
                logger.debug("apt-cache policy: unexpected line %d: %r", lineno, stripped[:80])
            continue
        if current is None:
            continue
        field = line.strip()
        if field.startswith("Installed:"):
            installed = field.partition(":")[2].strip()
        elif field.startswith("Candidate:"):
            candidate = field.partition(":")[2].strip()
            seen_candidate = True
    _flush()

    return facts


# ═══════════════════════════════════════════════════════════════════
#  Backend
# ═══════════════════════════════════════════════════════════════════


class AptPackageBackend(PackageBackend):
    """Debian/Ubuntu backend built on dpkg + apt-cache."""

    def __init__(
        self,
        dpkg_status_file: Path = Path("/var/lib/dpkg/status"),
        architecture: str | None = None,
        timeout: int = 120,
    ):
        self._status_file = dpkg_status_file
        self._arch = architecture
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "apt"

    def is_available(self) -> bool:
        return command_available("apt-cache") and command_available("dpkg")

    def architecture(self) -> str:
        if self._arch is None:
            try:
                result = run_command(["dpkg", "--print-architecture"], timeout=30)
            except CommandError as e:
                raise PackageQueryError(f"error getting dpkg architecture: {e}") from e
            self._arch = result.stdout.strip()
        return self._arch

    def _read_status(self) -> str:
        try:
            return self._status_file.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise PackageQueryError(f"error reading dpkg status file: {e}") from e

    def _policy(self, packages: list[str]) -> str:
        arch = self.architecture()
        args = ["apt-cache", "policy", *(f"{p}:{arch}" for p in packages)]
        try:
            result = run_command(args, timeout=self._timeout)
        except CommandError as e:
            raise PackageQueryError(f"error running apt-cache policy: {e}") from e
        return result.stdout

    def query(self, packages: Iterable[str]) -> PackageFacts:
        names = list(dict.fromkeys(p for p in packages if p))
        if not names:
            return PackageFacts()

        installed = parse_dpkg_status(self._read_status(), wanted=names)
        policy = parse_apt_policy(self._policy(names))

        facts = []
        for name in names:
            policy_fact = policy.get(name) or PackageFact(name=name)
            facts.append(PackageFact(
                name=name,
                installed=name in installed,
                available=policy_fact.available,
                candidate=policy_fact.candidate,
                installed_version=installed.get(name) or policy_fact.installed_version,
            ))

        result = PackageFacts(facts)
        logger.debug("Queried %d packages via apt: %r", len(names), result)
        return result
