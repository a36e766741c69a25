"""
Status store — one flat file per app under data/status/.

The file content is the literal status ("installed", "disabled",
"corrupted"); a missing file means the app is uninstalled. Writes are
atomic (write to temp file, then rename) so a crash mid-write never
leaves a half-written status behind.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from src.core.context import AppsContext
from src.core.models.app import STATUS_INSTALLED, STATUS_UNINSTALLED

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` atomically.

    Uses write-to-temp-then-rename in the target directory. Parent
    directories are created as needed.

    Raises:
        OSError: If the directory cannot be created or the write fails.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        _fd, tmp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.name}_",
            suffix=".tmp",
        )
        tmp = Path(tmp_path)
        try:
            with open(_fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            tmp.replace(path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
    except OSError as e:
        logger.error("Failed to write %s: %s", path, e)
        raise


def _require_app(app: str) -> None:
    if not app:
        raise ValueError("app name is required")


def get_app_status(ctx: AppsContext, app: str) -> str:
    """Current status of ``app`` ("uninstalled" when no file exists).

    Raises:
        ValueError: If ``app`` is empty.
        OSError: If the status file exists but cannot be read or decoded.
    """
    _require_app(app)
    path = ctx.status_file(app)
    if not path.is_file():
        return STATUS_UNINSTALLED
    try:
        return path.read_text(encoding="utf-8").strip()
    except UnicodeDecodeError as e:
        raise OSError(f"status file of '{app}' is not valid text: {e}") from e


def set_app_status(ctx: AppsContext, app: str, status: str) -> None:
    """Persist ``status`` for ``app``."""
    _require_app(app)
    if status == STATUS_UNINSTALLED:
        mark_uninstalled(ctx, app)
        return
    atomic_write_text(ctx.status_file(app), status)
    logger.debug("Status of %s set to %s", app, status)


def mark_installed(ctx: AppsContext, app: str) -> None:
    """Record ``app`` as installed."""
    set_app_status(ctx, app, STATUS_INSTALLED)


def mark_uninstalled(ctx: AppsContext, app: str) -> None:
    """Remove the status file of ``app`` (absent already is fine)."""
    _require_app(app)
    ctx.status_file(app).unlink(missing_ok=True)
    logger.debug("Status of %s cleared", app)


def apps_with_status_file(ctx: AppsContext) -> list[str]:
    """Sorted names of apps that have any status file."""
    if not ctx.status_dir.is_dir():
        return []
    return sorted(
        p.name for p in ctx.status_dir.iterdir()
        if p.is_file() and not p.name.startswith(".")
    )


def apps_with_status(ctx: AppsContext, status: str) -> list[str]:
    """Sorted names of apps whose status file content equals ``status``."""
    found = []
    for app in apps_with_status_file(ctx):
        try:
            if get_app_status(ctx, app) == status:
                found.append(app)
        except OSError as e:
            logger.warning("Cannot read status of %s: %s", app, e)
    return found
