from __future__ import annotations

"""Value types passed between the scanner, tree builder, state machine and panels.

Annotation locations, the file tree nodes, the lock mode and the search and
layout state all live here; nothing in this module touches the page or a panel.
"""

import enum
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple, Union

__all__ = [
    "SourceLocation",
    "SourceMap",
    "DirectoryNode",
    "FileNode",
    "TreeNode",
    "LockMode",
    "MatchHandle",
    "SearchState",
    "PanelGeometry",
    "DisplayedSource",
    "normalize_path",
    "sorted_children",
    "iter_file_nodes",
    "find_node",
    "freeze_source_map",
]

# Normalized file path -> sorted unique 1-based line numbers
SourceMap = Dict[str, Tuple[int, ...]]


def normalize_path(path: str) -> str:
    """Strip a single leading separator so ``/a/b`` and ``a/b`` share one key."""
    if path.startswith("/"):
        return path[1:]
    return path


@dataclass(frozen=True)
class SourceLocation:
    """A file/line pair read from a page element's annotation attributes."""

    file_path: str
    line_number: int

    @classmethod
    def from_attributes(cls, file_value: Optional[str], line_value: Optional[str]) -> Optional["SourceLocation"]:
        """Return a location, or None when either attribute is absent or unusable."""
        if not file_value or not line_value:
            return None
        path = normalize_path(file_value.strip())
        if not path:
            return None
        try:
            line = int(line_value.strip())
        except ValueError:
            return None
        if line < 1:
            return None
        return cls(path, line)


# ---------------------------------------------------------------------------
# File tree
# ---------------------------------------------------------------------------


@dataclass
class DirectoryNode:
    """Directory in the file tree. ``path`` is empty for the root."""

    path: str
    children: Dict[str, "TreeNode"] = field(default_factory=dict)


@dataclass
class FileNode:
    """Leaf of the file tree holding the annotated lines of one source file."""

    path: str
    lines: Tuple[int, ...] = ()


TreeNode = Union[DirectoryNode, FileNode]


def sorted_children(directory: DirectoryNode) -> List[Tuple[str, TreeNode]]:
    """Children ordered directories-first, then files, each group by name."""
    dirs = sorted((name, node) for name, node in directory.children.items() if isinstance(node, DirectoryNode))
    files = sorted((name, node) for name, node in directory.children.items() if isinstance(node, FileNode))
    return dirs + files


def iter_file_nodes(node: TreeNode):
    """Yield every FileNode below *node* in display order."""
    if isinstance(node, FileNode):
        yield node
    elif isinstance(node, DirectoryNode):
        for _name, child in sorted_children(node):
            yield from iter_file_nodes(child)
    else:
        raise TypeError(f"Unexpected tree node: {node!r}")


def find_node(root: DirectoryNode, path: str) -> Optional[TreeNode]:
    """Resolve a slash separated *path* below *root*."""
    node: TreeNode = root
    for part in (p for p in normalize_path(path).split("/") if p):
        if not isinstance(node, DirectoryNode):
            return None
        child = node.children.get(part)
        if child is None:
            return None
        node = child
    return node


# ---------------------------------------------------------------------------
# Engine state
# ---------------------------------------------------------------------------


class LockMode(enum.Enum):
    """Why the source panel shows what it shows."""

    IDLE = "idle"
    ELEMENT_LOCKED = "element_locked"
    FILE_LOCKED = "file_locked"


@dataclass(frozen=True)
class MatchHandle:
    """One search hit inside the displayed source.

    ``start``/``end`` are character offsets into the line's code text (the
    ``"<n>: "`` prefix is not part of it).
    """

    ordinal: int
    line_number: int
    start: int
    end: int


@dataclass
class SearchState:
    term: str = ""
    matches: List[MatchHandle] = field(default_factory=list)
    active_index: int = -1
    last_clicked_line: Optional[int] = None

    def set_active(self, index: int) -> None:
        if not -1 <= index < len(self.matches):
            raise IndexError(f"active index {index} outside [-1, {len(self.matches) - 1}]")
        self.active_index = index

    @property
    def active_match(self) -> Optional[MatchHandle]:
        if 0 <= self.active_index < len(self.matches):
            return self.matches[self.active_index]
        return None

    @property
    def counter_text(self) -> str:
        if not self.matches or self.active_index < 0:
            return f"0 of {len(self.matches)}"
        return f"{self.active_index + 1} of {len(self.matches)}"


@dataclass
class PanelGeometry:
    height: str = "50%"
    right_panel_width: int = 375


@dataclass(frozen=True)
class DisplayedSource:
    """Read-only snapshot of the file currently shown in the source panel."""

    path: str
    text: str


def freeze_source_map(raw: Mapping[str, object]) -> SourceMap:
    """Coerce ``{path: iterable-of-lines}`` into the canonical SourceMap form."""
    return {path: tuple(sorted({int(n) for n in lines})) for path, lines in raw.items()}  # type: ignore[union-attr]
