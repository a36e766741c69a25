"""
Category files — ``app|category`` flat files.

Two files take part:

    etc/categories            shipped with the store (global)
    data/category-overrides   local edits, incl. "app|hidden"

The effective category of an app is the local override if there is
one, the global entry otherwise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from src.core.context import AppsContext
from src.core.models.app import HIDDEN_CATEGORY
from src.core.persistence.status_store import atomic_write_text

logger = logging.getLogger(__name__)


def read_category_file(path: Path) -> dict[str, str]:
    """Parse an ``app|category`` file into a mapping.

    Blank lines and ``#`` comments are skipped. Lines without a ``|``
    are logged and ignored. A missing file yields an empty mapping.
    """
    categories: dict[str, str] = {}
    if not path.is_file():
        return categories

    text = path.read_text(encoding="utf-8")
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        app, sep, category = line.partition("|")
        if not sep:
            logger.debug("%s:%d: no '|' separator, ignoring %r", path, lineno, line)
            continue
        categories[app.strip()] = category.strip()
    return categories


def write_category_file(path: Path, categories: dict[str, str]) -> None:
    """Write a mapping as sorted ``app|category`` lines (atomic)."""
    content = "".join(f"{app}|{categories[app]}\n" for app in sorted(categories))
    atomic_write_text(path, content)


@dataclass
class CategoryData:
    """Global categories plus local overrides for one app store."""

    global_categories: dict[str, str] = field(default_factory=dict)
    local_categories: dict[str, str] = field(default_factory=dict)

    @classmethod
    def load(cls, ctx: AppsContext) -> CategoryData:
        return cls(
            global_categories=read_category_file(ctx.categories_file),
            local_categories=read_category_file(ctx.overrides_file),
        )

    def category_of(self, app: str) -> str:
        """Effective category ("" when the app has none)."""
        if app in self.local_categories:
            return self.local_categories[app]
        return self.global_categories.get(app, "")

    def set_category(self, app: str, category: str) -> None:
        """Assign ``category`` to ``app`` as a local override.

        Setting an app back to its global category drops the override.
        """
        if self.global_categories.get(app) == category:
            self.local_categories.pop(app, None)
        else:
            self.local_categories[app] = category

    def effective(self) -> dict[str, str]:
        merged = dict(self.global_categories)
        merged.update(self.local_categories)
        return merged

    def reset(self) -> None:
        """Drop every local override."""
        self.local_categories = {}

    def clear_all(self) -> None:
        """Put every app in one list, keeping hidden apps hidden."""
        cleared = {
            app: category
            for app, category in self.local_categories.items()
            if category == HIDDEN_CATEGORY
        }
        for app, category in self.global_categories.items():
            if category != HIDDEN_CATEGORY:
                cleared.setdefault(app, "")
        self.local_categories = cleared

    def save_overrides(self, ctx: AppsContext) -> None:
        write_category_file(ctx.overrides_file, self.local_categories)
        logger.debug("Saved %d category overrides", len(self.local_categories))


def original_category(ctx: AppsContext, app: str) -> str:
    """Category of ``app`` as shipped in etc/categories.

    Raises:
        LookupError: If the file is missing or does not list ``app``.
    """
    if not ctx.categories_file.is_file():
        raise LookupError(f"categories file does not exist: {ctx.categories_file}")
    categories = read_category_file(ctx.categories_file)
    if app not in categories:
        raise LookupError(f"app not found in categories file: {app}")
    return categories[app]


def is_hidden_override(ctx: AppsContext, app: str) -> bool:
    """Whether the override file records ``app|hidden``."""
    if not ctx.overrides_file.is_file():
        return False
    wanted = f"{app}|{HIDDEN_CATEGORY}"
    text = ctx.overrides_file.read_text(encoding="utf-8")
    return any(line.strip() == wanted for line in text.splitlines())
