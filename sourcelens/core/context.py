from __future__ import annotations

"""Engine context shared by every SourceLens component.

One :class:`EngineContext` exists per page session. It is passed to each
component at construction time; components read it freely but change it only
through :meth:`EngineContext.update` (or the lifecycle helpers below) so that
every mutation goes through one place and is logged.
"""

import logging
from typing import Any, Optional

from lxml import etree as ET

from .models import (
    DirectoryNode,
    DisplayedSource,
    LockMode,
    PanelGeometry,
    SearchState,
    SourceMap,
)

logger = logging.getLogger(__name__)

__all__ = ["EngineContext", "ElementRef"]


class ElementRef:
    """Reference to a page element the engine does not own.

    The element is only handed out by :meth:`resolve` while it is still part
    of the page's current document.
    """

    __slots__ = ("_element",)

    def __init__(self, element: ET._Element) -> None:
        self._element = element

    def resolve(self, page: Any) -> Optional[ET._Element]:
        if page is not None and page.is_attached(self._element):
            return self._element
        return None

    def refers_to(self, element: Optional[ET._Element]) -> bool:
        return element is not None and self._element is element

    def __repr__(self) -> str:
        tag = getattr(self._element, "tag", "?")
        return f"ElementRef(<{tag}>)"


class EngineContext:
    """Single source of truth for the engine's state.

    Attributes
    ----------
    enabled, initialized
        Lifecycle flags. ``enabled`` survives navigation.
    lock_mode
        Exactly one of :class:`LockMode`.
    hovered_ref
        Element under the pointer; only meaningful while ``lock_mode`` is IDLE.
    locked_element_ref, locked_file_path
        Subject of the element lock / file lock.
    file_tree, source_map
        Last accepted scan result and the tree built from it.
    search
        Find-bar state for the displayed source.
    panel_geometry, active_tab
        Panel layout; survives navigation.
    displayed
        Path and text currently shown in the source panel.
    fetch_token
        Monotonic counter; a fetch result is applied only while its token is
        still the current one.
    """

    _FIELDS = frozenset({
        "enabled",
        "initialized",
        "lock_mode",
        "hovered_ref",
        "locked_element_ref",
        "locked_file_path",
        "file_tree",
        "source_map",
        "search",
        "panel_geometry",
        "active_tab",
        "displayed",
        "fetch_token",
    })

    def __init__(self) -> None:
        self.enabled: bool = False
        self.initialized: bool = False
        self.lock_mode: LockMode = LockMode.IDLE
        self.hovered_ref: Optional[ElementRef] = None
        self.locked_element_ref: Optional[ElementRef] = None
        self.locked_file_path: Optional[str] = None
        self.file_tree: DirectoryNode = DirectoryNode(path="")
        self.source_map: SourceMap = {}
        self.search: SearchState = SearchState()
        self.panel_geometry: PanelGeometry = PanelGeometry()
        self.active_tab: str = "fileTree"
        self.displayed: Optional[DisplayedSource] = None
        self.fetch_token: int = 0

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def update(self, **changes: Any) -> None:
        """Apply *changes* atomically.

        Raises
        ------
        AttributeError
            If a key is not a context field.
        """
        unknown = set(changes) - self._FIELDS
        if unknown:
            raise AttributeError(f"Unknown context field(s): {', '.join(sorted(unknown))}")
        for key, value in changes.items():
            setattr(self, key, value)
        if self.lock_mode is not LockMode.IDLE:
            self.hovered_ref = None
        if self.lock_mode is not LockMode.ELEMENT_LOCKED:
            self.locked_element_ref = None
        if self.lock_mode is not LockMode.FILE_LOCKED:
            self.locked_file_path = None
        logger.debug("Context update: %s", ", ".join(sorted(changes)))

    def next_fetch_token(self) -> int:
        self.fetch_token += 1
        return self.fetch_token

    def is_current_fetch(self, token: int) -> bool:
        return token == self.fetch_token

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def clear_locks(self) -> None:
        self.update(lock_mode=LockMode.IDLE, hovered_ref=None)

    def reset_for_navigation(self) -> None:
        """Forget page-derived data; locks, geometry and ``enabled`` stay."""
        self.update(file_tree=DirectoryNode(path=""), source_map={}, search=SearchState())

    def teardown(self) -> None:
        """State after the engine has been disabled."""
        self.next_fetch_token()
        self.update(
            enabled=False,
            lock_mode=LockMode.IDLE,
            hovered_ref=None,
            file_tree=DirectoryNode(path=""),
            source_map={},
            search=SearchState(),
            displayed=None,
        )

    # -------------------------------------------------------------------------
    # Read-only views for collaborators
    # -------------------------------------------------------------------------

    def displayed_source(self) -> Optional[DisplayedSource]:
        """Snapshot of the displayed file for read-only consumers (AI chat)."""
        return self.displayed

    @property
    def displayed_path(self) -> Optional[str]:
        return self.displayed.path if self.displayed else None

    @property
    def displayed_text(self) -> Optional[str]:
        return self.displayed.text if self.displayed else None
