from __future__ import annotations

"""Discover source-location annotations on the host page.

Two passes run over the document: an XPath query over annotated elements and
a regex over the serialized markup. The regex pass also sees annotations the
query misses (for instance markup that only survives inside comments or
template text). Both results are merged into one ``{path: lines}`` map.
"""

import html
import logging
import re
from collections import defaultdict
from typing import Callable, Dict, Optional, Set

from sourcelens.config.settings import EngineSettings

from .context import EngineContext
from .models import DirectoryNode, SourceLocation, SourceMap, freeze_source_map
from .page import HostPage
from .tree_builder import FileTreeBuilder

logger = logging.getLogger(__name__)

__all__ = ["SourceScanner"]


class SourceScanner:
    """Scan the page and rebuild the file tree when the result changed.

    Parameters
    ----------
    context : EngineContext
    page : HostPage
    settings : EngineSettings
    builder : FileTreeBuilder, optional
    on_tree_changed : Callable[[DirectoryNode], None], optional
        Called after an accepted rebuild so the tree panel re-renders.

    Attributes
    ----------
    rebuild_count : int
        Number of accepted rebuilds.
    """

    def __init__(
        self,
        context: EngineContext,
        page: HostPage,
        settings: EngineSettings,
        *,
        builder: Optional[FileTreeBuilder] = None,
        on_tree_changed: Optional[Callable[[DirectoryNode], None]] = None,
    ) -> None:
        self._ctx = context
        self._page = page
        self._settings = settings
        self._builder = builder or FileTreeBuilder()
        self._on_tree_changed = on_tree_changed
        self.rebuild_count = 0
        self._accepted = False
        fa = re.escape(settings.file_attribute)
        la = re.escape(settings.line_attribute)
        self._raw_pattern = re.compile(rf"""{fa}=["']([^"']+)["']\s+{la}=["']([^"']+)["']""")

    # ------------------------------------------------------------------
    def collect(self) -> SourceMap:
        """Run both passes and return the merged map. No side effects."""
        found: Dict[str, Set[int]] = defaultdict(set)
        structured = self._structured_pass(found)
        raw = self._raw_pass(found)
        logger.debug("Scan: structured pass %d, raw pass %d annotation(s)", structured, raw)
        return freeze_source_map(found)

    def _structured_pass(self, found: Dict[str, Set[int]]) -> int:
        fa, la = self._settings.file_attribute, self._settings.line_attribute
        count = 0
        for element in self._page.annotated_elements(fa, la):
            location = self._page.location_of(element, fa, la)
            if location is None:
                continue
            found[location.file_path].add(location.line_number)
            count += 1
        return count

    def _raw_pass(self, found: Dict[str, Set[int]]) -> int:
        count = 0
        for file_value, line_value in self._raw_pattern.findall(self._page.serialize()):
            location = SourceLocation.from_attributes(html.unescape(file_value), html.unescape(line_value))
            if location is None:
                continue
            found[location.file_path].add(location.line_number)
            count += 1
        return count

    # ------------------------------------------------------------------
    def scan(self) -> SourceMap:
        """Scan and rebuild the tree only if the map differs from the last one."""
        if not self._ctx.enabled:
            logger.debug("Scan skipped: engine disabled")
            return self._ctx.source_map
        try:
            source_map = self.collect()
            if self._accepted and source_map == self._ctx.source_map:
                logger.debug("Scan: no change (%d file(s))", len(source_map))
                return source_map
            tree = self._builder.build(source_map)
            self._ctx.update(source_map=source_map, file_tree=tree)
            self.rebuild_count += 1
            self._accepted = True
            logger.info("Scan: rebuilt file tree with %d file(s)", len(source_map))
            if self._on_tree_changed is not None:
                self._on_tree_changed(tree)
            return source_map
        except Exception:
            logger.error("Scan failed", exc_info=True)
            if self._ctx.file_tree.children:
                self._ctx.update(source_map={}, file_tree=DirectoryNode(path=""))
                if self._on_tree_changed is not None:
                    self._on_tree_changed(self._ctx.file_tree)
            return self._ctx.source_map

    def invalidate(self) -> None:
        """Make the next scan rebuild even if the map is unchanged."""
        self._accepted = False
