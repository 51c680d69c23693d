from __future__ import annotations

"""Owner of the panel containers (file tree and source code panel).

Other components never hold panels directly: they get them through the
getters here, which return None once the panels have been torn down.
"""

import dataclasses
import logging
from typing import Callable, Optional

from sourcelens.config.settings import EngineSettings
from sourcelens.core.context import EngineContext
from sourcelens.core.models import DirectoryNode, PanelGeometry

from .source_panel import SourcePanel
from .tree_view import FileTreeView

logger = logging.getLogger(__name__)

__all__ = ["PanelController", "TABS"]

TABS = ("fileTree", "aiChat")


class PanelController:
    def __init__(
        self,
        context: EngineContext,
        settings: EngineSettings,
        *,
        on_file_clicked: Optional[Callable[[str], None]] = None,
        on_refresh: Optional[Callable[[], None]] = None,
        on_line_clicked: Optional[Callable[[int], None]] = None,
    ) -> None:
        self._ctx = context
        self._settings = settings
        self._on_file_clicked = on_file_clicked
        self._on_refresh = on_refresh
        self._on_line_clicked = on_line_clicked
        self._tree_view: Optional[FileTreeView] = None
        self._source_panel: Optional[SourcePanel] = None
        context.update(panel_geometry=PanelGeometry(settings.panel_height, settings.panel_right_width))

    # ------------------------------------------------------------------
    def initialize(self) -> None:
        if self._tree_view is None:
            self._tree_view = FileTreeView(
                row_height=self._settings.tree_row_height,
                visible_height=self._settings.tree_visible_height,
                on_file_clicked=self._on_file_clicked,
                on_refresh=self._on_refresh,
            )
        if self._source_panel is None:
            self._source_panel = SourcePanel(on_line_clicked=self._on_line_clicked)
        self._ctx.update(initialized=True)
        logger.info("Panels initialized")

    def teardown(self) -> None:
        self._tree_view = None
        self._source_panel = None
        self._ctx.update(initialized=False)
        logger.info("Panels removed")

    # ------------------------------------------------------------------
    def get_tree_view(self) -> Optional[FileTreeView]:
        return self._tree_view

    def get_source_panel(self) -> Optional[SourcePanel]:
        return self._source_panel

    def render_tree(self, tree: DirectoryNode) -> bool:
        if self._tree_view is None:
            logger.error("Cannot render file tree: tree container is missing")
            return False
        self._tree_view.render(tree)
        return True

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    def resize_right_panel(self, delta: int, viewport_width: int) -> int:
        """Grow the right panel by *delta* pixels, clamped to the allowed range."""
        width = self._clamp_width(self._ctx.panel_geometry.right_panel_width + delta, viewport_width)
        self._ctx.update(panel_geometry=dataclasses.replace(self._ctx.panel_geometry, right_panel_width=width))
        return width

    def sash_position(self, viewport_width: int) -> int:
        """Sash offset that gives the right panel its stored width."""
        return max(0, viewport_width - self._clamp_width(self._ctx.panel_geometry.right_panel_width, viewport_width))

    def _clamp_width(self, width: int, viewport_width: int) -> int:
        max_width = int(viewport_width * self._settings.panel_max_width_ratio)
        return max(self._settings.panel_min_width, min(width, max_width))

    def set_panel_height(self, height: str) -> None:
        self._ctx.update(panel_geometry=dataclasses.replace(self._ctx.panel_geometry, height=height))

    def set_active_tab(self, tab: str) -> None:
        if tab not in TABS:
            logger.warning("Unknown panel tab %r", tab)
            return
        self._ctx.update(active_tab=tab)
