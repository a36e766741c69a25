"""
Command runner — the single place subprocesses are started.

Package-manager output is scraped as text, so every command runs with
an English locale to keep the wording stable.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time

logger = logging.getLogger(__name__)

# Forced so dpkg/apt messages can be matched literally
ENGLISH_LOCALE = {"LANG": "en_US.UTF-8", "LC_ALL": "en_US.UTF-8"}


class CommandError(Exception):
    """A command could not be started or exited non-zero."""

    def __init__(self, args: list[str], message: str, returncode: int | None = None):
        self.args_list = args
        self.returncode = returncode
        super().__init__(message)


def command_available(name: str) -> bool:
    """Whether ``name`` resolves on PATH."""
    return shutil.which(name) is not None


def run_command(
    args: list[str],
    timeout: int = 120,
    check: bool = True,
    english: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run ``args`` and capture text output.

    Args:
        args: Command and arguments (never run through a shell).
        timeout: Seconds before the command is killed.
        check: Raise CommandError on a non-zero exit code.
        english: Force an English locale for parseable output.

    Raises:
        CommandError: Command missing, timed out, or (with ``check``)
            exited non-zero.
    """
    env = {**os.environ, **ENGLISH_LOCALE} if english else None

    logger.debug("Executing: %s", " ".join(args[:6]) + (" ..." if len(args) > 6 else ""))
    start = time.monotonic()

    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
        )
    except FileNotFoundError as e:
        raise CommandError(args, f"Command not found: {args[0]}") from e
    except subprocess.TimeoutExpired as e:
        raise CommandError(args, f"Command timed out after {timeout}s: {args[0]}") from e

    elapsed_ms = int((time.monotonic() - start) * 1000)
    logger.debug("%s exited %d in %dms", args[0], result.returncode, elapsed_ms)

    if check and result.returncode != 0:
        stderr = result.stderr.strip()
        raise CommandError(
            args,
            stderr or f"{args[0]} exited with code {result.returncode}",
            returncode=result.returncode,
        )
    return result
