from __future__ import annotations

"""Keep page and tree highlights in agreement with the lock mode.

Every sync strips all engine highlight classes from the whole document and
all selection state from the tree before applying what the current mode
calls for. Nothing is toggled incrementally.
"""

import logging
from typing import Callable, Optional

from sourcelens.config.settings import EngineSettings

from .context import EngineContext
from .models import LockMode, SourceLocation
from .page import HostPage

logger = logging.getLogger(__name__)

__all__ = ["HighlightSynchronizer"]


class HighlightSynchronizer:
    """Apply the highlight state that ``context.lock_mode`` describes.

    Parameters
    ----------
    context : EngineContext
    page : HostPage
    settings : EngineSettings
        Supplies annotation attribute names and highlight class names.
    tree_getter : Callable[[], object]
        Returns the tree view, or None when the panel is gone.
    """

    def __init__(
        self,
        context: EngineContext,
        page: HostPage,
        settings: EngineSettings,
        tree_getter: Callable[[], object],
    ) -> None:
        self._ctx = context
        self._page = page
        self._settings = settings
        self._get_tree = tree_getter

    # ------------------------------------------------------------------
    def clear_page(self) -> int:
        """Remove every engine highlight class from the document."""
        removed = 0
        for css in self._settings.highlight_classes.all():
            for element in list(self._page.elements_with_class(css)):
                element.classes.discard(css)
                if not element.get("class"):
                    element.attrib.pop("class", None)
                removed += 1
        return removed

    def clear_tree(self) -> None:
        tree = self._get_tree()
        if tree is None:
            return
        tree.clear_selection()
        tree.remove_lock_icons()

    def clear_all(self) -> None:
        self.clear_page()
        self.clear_tree()

    # ------------------------------------------------------------------
    def sync(self, *, scroll_page: bool = False) -> Optional[SourceLocation]:
        """Clear everything, then highlight according to the lock mode.

        Returns the location the panel should show, if any.
        """
        self.clear_all()
        mode = self._ctx.lock_mode
        if mode is LockMode.IDLE:
            return self._apply_element(self._ctx.hovered_ref, self._settings.highlight_classes.hover, hover=True)
        if mode is LockMode.ELEMENT_LOCKED:
            return self._apply_element(
                self._ctx.locked_element_ref, self._settings.highlight_classes.locked, hover=False
            )
        if mode is LockMode.FILE_LOCKED:
            return self._apply_file(self._ctx.locked_file_path, scroll_page=scroll_page)
        raise ValueError(f"Unknown lock mode: {mode!r}")

    def _apply_element(self, ref, css: str, *, hover: bool) -> Optional[SourceLocation]:
        if ref is None:
            return None
        element = ref.resolve(self._page)
        if element is None:
            logger.debug("Highlight: referenced element is no longer attached")
            return None
        location = self._page.location_of(element, self._settings.file_attribute, self._settings.line_attribute)
        element.classes.add(css)
        if location is not None:
            self._mark_tree(location.file_path, hover=hover)
        return location

    def _apply_file(self, path: Optional[str], *, scroll_page: bool) -> Optional[SourceLocation]:
        if not path:
            return None
        css = self._settings.highlight_classes.file_locked
        fa, la = self._settings.file_attribute, self._settings.line_attribute
        elements = self._page.elements_for_file(path, fa)
        for element in elements:
            element.classes.add(css)
        self._mark_tree(path, hover=False)

        first_line = self.first_known_line(path)
        if scroll_page:
            target = None
            for element in elements:
                loc = self._page.location_of(element, fa, la)
                if loc is not None and loc.line_number == first_line:
                    target = element
                    break
            if target is not None:
                self._page.scroll_into_view(target)
            else:
                logger.warning("Highlight: no page element for %s line %s to scroll to", path, first_line)
        logger.info("Highlight: %d element(s) matched file %s", len(elements), path)
        return SourceLocation(path, first_line)

    def first_known_line(self, path: str) -> int:
        lines = self._ctx.source_map.get(path)
        if lines:
            return lines[0]
        lines = self._page.lines_for_file(path, self._settings.file_attribute, self._settings.line_attribute)
        return lines[0] if lines else 1

    def _mark_tree(self, path: str, *, hover: bool) -> None:
        tree = self._get_tree()
        if tree is None:
            logger.error("Highlight: file tree container is not available")
            return
        tree.mark_file(path, hover=hover)
