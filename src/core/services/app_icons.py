"""
App icons — derive the 24px and 64px PNGs an app ships with.
"""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from src.core.context import AppsContext

logger = logging.getLogger(__name__)

ICON_SIZES = (24, 64)


def _scaled(size: tuple[int, int], short_side: int) -> tuple[int, int]:
    """Scale so the shorter side equals ``short_side``, keeping aspect ratio."""
    w, h = size
    if w >= h:
        return max(1, int(short_side * w / h)), short_side
    return short_side, max(1, int(short_side * h / w))


def generate_app_icons(ctx: AppsContext, app: str, source: Path | str) -> list[Path]:
    """Write ``icon-24.png`` and ``icon-64.png`` for ``app`` from ``source``.

    Small sources are enlarged. The app directory is created if needed.

    Returns:
        Paths of the written icons.

    Raises:
        ValueError: Empty app name or source path.
        OSError: The source cannot be read as an image, or a write fails.
    """
    if not app:
        raise ValueError("app field empty")
    if not source:
        raise ValueError("icon field empty")
    source = Path(source)

    app_dir = ctx.app_dir(app)
    app_dir.mkdir(parents=True, exist_ok=True)

    try:
        img = Image.open(source)
        img.load()
    except UnidentifiedImageError as e:
        raise OSError(f"not a readable image: {source}") from e

    if img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGBA")

    written = []
    for short_side in ICON_SIZES:
        new_size = _scaled(img.size, short_side)
        target = app_dir / f"icon-{short_side}.png"
        img.resize(new_size, Image.LANCZOS).save(target, format="PNG")
        logger.debug("Icon %s: %dx%d → %dx%d", target.name, *img.size, *new_size)
        written.append(target)

    logger.info("Generated icons for %s from %s", app, source.name)
    return written
