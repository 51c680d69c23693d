from __future__ import annotations

"""Build the hierarchical file tree from a flat path -> lines map.

The tree is always rebuilt whole; nothing patches an existing tree. Name
collisions between files and directories are resolved and logged as
warnings, never raised.
"""

import logging
from typing import Iterable, List, Mapping

from .models import DirectoryNode, FileNode, TreeNode, sorted_children

logger = logging.getLogger(__name__)

__all__ = ["FileTreeBuilder", "build_file_tree"]


class FileTreeBuilder:
    """Turn ``{path: lines}`` into a ``DirectoryNode`` root.

    Parameters
    ----------
    sort_paths : bool, default=True
        Process paths in lexicographic order, so the result does not depend on
        the mapping's iteration order. With ``False`` the mapping order is
        used and the later-processed entry wins a file/directory collision.

    Attributes
    ----------
    warnings : list[str]
        Conflict warnings recorded by the most recent :meth:`build` call.
    """

    def __init__(self, *, sort_paths: bool = True) -> None:
        self.sort_paths = sort_paths
        self.warnings: List[str] = []

    def build(self, file_map: Mapping[str, Iterable[int]]) -> DirectoryNode:
        self.warnings = []
        root = DirectoryNode(path="")

        paths = sorted(file_map) if self.sort_paths else list(file_map)
        for file_path in paths:
            parts = [part for part in file_path.split("/") if part]
            if not parts:
                self._warn(f"File path resulted in no parts (empty or root path?): {file_path!r}")
                continue

            level = root
            for depth, part in enumerate(parts[:-1]):
                dir_path = "/".join(parts[: depth + 1])
                existing = level.children.get(part)
                if existing is None:
                    existing = DirectoryNode(path=dir_path)
                    level.children[part] = existing
                elif isinstance(existing, FileNode):
                    self._warn(f"Node {part!r} was a file, now converting to directory for path {file_path!r}")
                    existing = DirectoryNode(path=existing.path)
                    level.children[part] = existing
                level = existing

            file_name = parts[-1]
            lines = tuple(sorted({int(n) for n in file_map[file_path]}))
            normalized = "/".join(parts)
            if isinstance(level.children.get(file_name), DirectoryNode):
                self._warn(
                    f"File node {file_name!r} conflicts with existing directory at path {file_path!r}. Treating as file."
                )
            level.children[file_name] = FileNode(path=normalized, lines=lines)

        return _ordered(root)

    def _warn(self, message: str) -> None:
        self.warnings.append(message)
        logger.warning("FileTreeBuilder: %s", message)


def _ordered(node: TreeNode) -> TreeNode:
    """Copy *node* with children inserted directories-first, then files."""
    if isinstance(node, FileNode):
        return node
    if isinstance(node, DirectoryNode):
        return DirectoryNode(
            path=node.path,
            children={name: _ordered(child) for name, child in sorted_children(node)},
        )
    raise TypeError(f"Unexpected tree node: {node!r}")


def build_file_tree(file_map: Mapping[str, Iterable[int]]) -> DirectoryNode:
    """Convenience wrapper around :class:`FileTreeBuilder`."""
    return FileTreeBuilder().build(file_map)
