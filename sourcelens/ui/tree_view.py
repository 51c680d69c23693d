from __future__ import annotations

"""File tree panel view model.

`FileTreeView` is the container the tree panel renders from: one row per
directory/file node, per-row CSS classes, expand/collapse state, lock icons
and the scroll position of the scrollable tree area. Front-ends (Tk, tests)
draw whatever the rows say and forward clicks back to it.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set

from sourcelens.core.models import DirectoryNode, FileNode, TreeNode, sorted_children

logger = logging.getLogger(__name__)

__all__ = [
    "TreeRow",
    "FileTreeView",
    "centered_scroll_top",
    "TREE_FILE_SELECTED",
    "TREE_FILE_HOVER_SELECTED",
    "NODE_SELECTED",
    "LOCK_ICON",
    "EMPTY_MESSAGE",
]

TREE_FILE_SELECTED = "tree-file-selected"
TREE_FILE_HOVER_SELECTED = "tree-file-hover-selected"
NODE_SELECTED = "file-tree-node-selected"
LOCK_ICON = "\U0001F512"
TITLE = "Web Page Source Files"
EMPTY_MESSAGE = "No source files found on this page. Try refreshing."


def centered_scroll_top(offset: float, node_height: float, visible_height: float, scroll_height: float) -> float:
    """Scroll position that centers a node in its container's viewport.

    ``offset - visible/2 + node/2`` clamped to ``[0, scroll_height - visible]``.
    """
    target = offset - (visible_height / 2) + (node_height / 2)
    return max(0.0, min(target, scroll_height - visible_height))


@dataclass
class TreeRow:
    name: str
    path: str
    kind: str  # "dir" | "file"
    depth: int
    parent_path: Optional[str]
    line_count: int = 0
    expanded: bool = True
    classes: Set[str] = field(default_factory=set)
    lock_icon: bool = False

    @property
    def is_file(self) -> bool:
        return self.kind == "file"

    @property
    def label(self) -> str:
        if self.is_file:
            hint = f" ({self.line_count} loc)" if self.line_count else ""
            icon = f" {LOCK_ICON}" if self.lock_icon else ""
            return f"{self.name}{hint}{icon}"
        return self.name


class FileTreeView:
    """Rows and viewport of the file tree panel.

    Parameters
    ----------
    row_height : int
        Pixel height of one row.
    visible_height : int
        Pixel height of the scrollable tree area.
    on_file_clicked : Callable[[str], None], optional
        Invoked with the file path when a file row is clicked.
    on_refresh : Callable[[], None], optional
        Invoked when the panel's refresh action is used.
    """

    title = TITLE

    def __init__(
        self,
        *,
        row_height: int = 20,
        visible_height: int = 400,
        on_file_clicked: Optional[Callable[[str], None]] = None,
        on_refresh: Optional[Callable[[], None]] = None,
    ) -> None:
        self.row_height = row_height
        self.visible_height = visible_height
        self.on_file_clicked = on_file_clicked
        self.on_refresh = on_refresh
        self.rows: List[TreeRow] = []
        self.scroll_top: float = 0.0
        self.render_count = 0
        self._by_file: Dict[str, TreeRow] = {}
        self._by_dir: Dict[str, TreeRow] = {}
        self._listeners: List[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    def subscribe(self, callback: Callable[[], None]) -> None:
        self._listeners.append(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback()
            except Exception:
                logger.exception("Tree view listener failed")

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    @property
    def is_empty(self) -> bool:
        return not self.rows

    @property
    def empty_message(self) -> Optional[str]:
        return EMPTY_MESSAGE if self.is_empty else None

    def render(self, tree: DirectoryNode) -> None:
        """Replace all rows with the given tree, every directory expanded."""
        self.rows = []
        self._by_file = {}
        self._by_dir = {}
        self.scroll_top = 0.0
        self._add_rows(tree, depth=0, parent_path=None)
        self.render_count += 1
        logger.info("FileTreeView: rendered %d rows", len(self.rows))
        self._notify()

    def _add_rows(self, directory: DirectoryNode, depth: int, parent_path: Optional[str]) -> None:
        for name, node in sorted_children(directory):
            self._add_row(name, node, depth, parent_path)

    def _add_row(self, name: str, node: TreeNode, depth: int, parent_path: Optional[str]) -> None:
        if isinstance(node, DirectoryNode):
            row = TreeRow(name=name, path=node.path, kind="dir", depth=depth, parent_path=parent_path)
            self.rows.append(row)
            self._by_dir[node.path] = row
            self._add_rows(node, depth + 1, node.path)
        elif isinstance(node, FileNode):
            row = TreeRow(
                name=name,
                path=node.path,
                kind="file",
                depth=depth,
                parent_path=parent_path,
                line_count=len(node.lines),
            )
            self.rows.append(row)
            self._by_file[node.path] = row
        else:
            raise TypeError(f"Unexpected tree node: {node!r}")

    # ------------------------------------------------------------------
    # Lookup / visibility
    # ------------------------------------------------------------------
    def file_row(self, path: str) -> Optional[TreeRow]:
        return self._by_file.get(path)

    def dir_row(self, path: str) -> Optional[TreeRow]:
        return self._by_dir.get(path)

    def ancestors(self, row: TreeRow) -> List[TreeRow]:
        chain: List[TreeRow] = []
        parent = row.parent_path
        while parent is not None:
            parent_row = self._by_dir.get(parent)
            if parent_row is None:
                break
            chain.append(parent_row)
            parent = parent_row.parent_path
        return chain

    def is_visible(self, row: TreeRow) -> bool:
        return all(a.expanded for a in self.ancestors(row))

    def visible_rows(self) -> List[TreeRow]:
        return [row for row in self.rows if self.is_visible(row)]

    @property
    def scroll_height(self) -> float:
        return float(len(self.visible_rows()) * self.row_height)

    def offset_of(self, row: TreeRow) -> Optional[float]:
        for index, visible in enumerate(self.visible_rows()):
            if visible is row:
                return float(index * self.row_height)
        return None

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------
    def toggle_directory(self, path: str) -> None:
        row = self._by_dir.get(path)
        if row is None:
            return
        row.expanded = not row.expanded
        self._clamp_scroll()
        self._notify()

    def click_file(self, path: str) -> None:
        if path not in self._by_file:
            logger.warning("FileTreeView: click on unknown file row [%s]", path)
            return
        if self.on_file_clicked is not None:
            self.on_file_clicked(path)

    def click_refresh(self) -> None:
        logger.info("FileTreeView: refresh clicked")
        if self.on_refresh is not None:
            self.on_refresh()

    # ------------------------------------------------------------------
    # Highlight state (driven by the highlight synchronizer)
    # ------------------------------------------------------------------
    def clear_selection(self) -> None:
        for row in self.rows:
            row.classes.difference_update({TREE_FILE_SELECTED, TREE_FILE_HOVER_SELECTED, NODE_SELECTED})
        self._notify()

    def remove_lock_icons(self) -> None:
        for row in self.rows:
            row.lock_icon = False
        self._notify()

    def mark_file(self, path: str, *, hover: bool) -> bool:
        """Highlight a file row, reveal it and center it in the viewport.

        ``hover`` gives the transient style without a lock icon; otherwise the
        row gets the locked style and the lock icon.
        """
        row = self._by_file.get(path)
        if row is None:
            logger.warning("FileTreeView: file row not found for path [%s]", path)
            return False
        if hover:
            row.classes.discard(TREE_FILE_SELECTED)
            row.classes.update({TREE_FILE_HOVER_SELECTED, NODE_SELECTED})
        else:
            row.classes.discard(TREE_FILE_HOVER_SELECTED)
            row.classes.update({TREE_FILE_SELECTED, NODE_SELECTED})
            row.lock_icon = True
        self.center_on(row)
        self._notify()
        return True

    def center_on(self, row: TreeRow) -> None:
        for ancestor in self.ancestors(row):
            ancestor.expanded = True
        offset = self.offset_of(row)
        if offset is None:
            return
        self.scroll_top = centered_scroll_top(offset, self.row_height, self.visible_height, self.scroll_height)

    def _clamp_scroll(self) -> None:
        self.scroll_top = max(0.0, min(self.scroll_top, self.scroll_height - self.visible_height))
