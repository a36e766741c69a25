"""
Category/visibility operations — move apps between categories.

The engine only needs ``(app, category) -> success/failure``. Two
editors provide it:

    FileCategoryEditor    edits data/category-overrides in place
    ScriptCategoryEditor  delegates to an external categoryedit script

``make_category_editor`` picks the script editor when the config
names one.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from src.adapters.shell.command import CommandError, run_command
from src.core.context import AppsContext
from src.core.models.app import FALLBACK_CATEGORY, HIDDEN_CATEGORY
from src.core.persistence.categories import CategoryData, original_category

logger = logging.getLogger(__name__)


class CategoryEditError(Exception):
    """An app's category could not be changed."""


class CategoryEditor(ABC):
    """Sets and reads the effective category of an app."""

    @abstractmethod
    def set(self, app: str, category: str) -> None:
        """Move ``app`` to ``category``.

        Raises:
            CategoryEditError: If the change could not be applied.
        """

    @abstractmethod
    def get(self, app: str) -> str:
        """Effective category of ``app`` ("" if none)."""


class FileCategoryEditor(CategoryEditor):
    """Edit the local override file directly."""

    def __init__(self, ctx: AppsContext):
        self._ctx = ctx

    def set(self, app: str, category: str) -> None:
        if not app:
            raise CategoryEditError("no app specified")
        if not self._ctx.app_dir(app).is_dir():
            raise CategoryEditError(f"the '{app}' app does not exist")

        try:
            data = CategoryData.load(self._ctx)
            data.set_category(app, category)
            data.save_overrides(self._ctx)
        except OSError as e:
            raise CategoryEditError(f"failed to save category of '{app}': {e}") from e
        logger.info("Moved %s to category '%s'", app, category)

    def get(self, app: str) -> str:
        return CategoryData.load(self._ctx).category_of(app)


class ScriptCategoryEditor(CategoryEditor):
    """Run ``<script> <app> <category>`` (the classic categoryedit)."""

    def __init__(self, ctx: AppsContext, script: Path):
        self._ctx = ctx
        self._script = script

    def set(self, app: str, category: str) -> None:
        try:
            run_command([str(self._script), app, category], timeout=60, english=False)
        except CommandError as e:
            raise CategoryEditError(f"error running categoryedit: {e}") from e
        logger.info("Moved %s to category '%s' via %s", app, category, self._script.name)

    def get(self, app: str) -> str:
        return CategoryData.load(self._ctx).category_of(app)


def make_category_editor(ctx: AppsContext) -> CategoryEditor:
    """The editor configured for ``ctx``."""
    script = ctx.config.category_editor
    if script is not None:
        return ScriptCategoryEditor(ctx, script)
    return FileCategoryEditor(ctx)


def hide_app(editor: CategoryEditor, app: str) -> None:
    """Move ``app`` to the hidden pseudo-category."""
    editor.set(app, HIDDEN_CATEGORY)


def unhide_app(ctx: AppsContext, editor: CategoryEditor, app: str) -> str:
    """Restore ``app`` to its shipped category.

    Falls back to "Other" when etc/categories cannot tell.

    Returns:
        The category the app was moved to.
    """
    try:
        category = original_category(ctx, app)
    except (LookupError, OSError) as e:
        # A hidden app must always land somewhere visible
        logger.info("Original category of %s unknown (%s), using %s", app, e, FALLBACK_CATEGORY)
        category = FALLBACK_CATEGORY
    editor.set(app, category)
    return category


def hidden_apps(ctx: AppsContext) -> list[str]:
    effective = CategoryData.load(ctx).effective()
    return sorted(a for a, c in effective.items() if c == HIDDEN_CATEGORY)


def visible_apps(ctx: AppsContext) -> list[str]:
    effective = CategoryData.load(ctx).effective()
    return sorted(a for a, c in effective.items() if c != HIDDEN_CATEGORY)
