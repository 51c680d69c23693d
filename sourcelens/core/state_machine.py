from __future__ import annotations

"""Lock / hover state machine.

States: idle (optionally hovering an element), element-locked and
file-locked. Every transition updates the context synchronously, then lets
the highlight synchronizer repaint, then (for hover and file selection)
fetches the file content. A fetch result is applied only while its request
token is current and its subject is still what the panel should show.
"""

import logging
from typing import Any, Callable, Optional, Protocol, Union

from lxml import etree as ET

from sourcelens.config.settings import EngineSettings

from .context import ElementRef, EngineContext
from .exceptions import PanelUnavailableError, SourceFetchError
from .highlighter import HighlightSynchronizer
from .models import DisplayedSource, LockMode, SourceLocation, normalize_path
from .page import HostPage

logger = logging.getLogger(__name__)

__all__ = ["SourceFetcher", "LockStateMachine"]


class SourceFetcher(Protocol):
    async def fetch(self, path: str) -> str: ...


Subject = Union[ET._Element, str]


class LockStateMachine:
    """Single entry point for hover, lock-key and file-selection transitions.

    Parameters
    ----------
    context : EngineContext
    page : HostPage
    settings : EngineSettings
    highlighter : HighlightSynchronizer
    fetcher : SourceFetcher
        Async collaborator returning file text.
    panel_getter : Callable[[], object]
        Returns the source panel, or None once it has been torn down.
    on_content_loaded : Callable[[], None], optional
        Called before new file content is shown (resets the search).
    """

    def __init__(
        self,
        context: EngineContext,
        page: HostPage,
        settings: EngineSettings,
        highlighter: HighlightSynchronizer,
        fetcher: SourceFetcher,
        panel_getter: Callable[[], Any],
        *,
        on_content_loaded: Optional[Callable[[], None]] = None,
    ) -> None:
        self._ctx = context
        self._page = page
        self._settings = settings
        self._highlighter = highlighter
        self._fetcher = fetcher
        self._get_panel = panel_getter
        self._on_content_loaded = on_content_loaded
        self._loading_token: Optional[int] = None

    @property
    def mode(self) -> LockMode:
        return self._ctx.lock_mode

    # ------------------------------------------------------------------
    # Pointer
    # ------------------------------------------------------------------
    async def hover(self, element: ET._Element) -> None:
        """Pointer entered *element*."""
        if not self._ctx.enabled or self._ctx.lock_mode is not LockMode.IDLE:
            return
        location = self._location(element)
        if location is None or not self._page.is_attached(element):
            return
        self._ctx.update(hovered_ref=ElementRef(element))
        self._highlighter.sync()
        logger.debug("Hover: %s:%d", location.file_path, location.line_number)
        await self._load(location, element, file_mode=False)

    def leave(self, element: ET._Element) -> bool:
        """Pointer left *element*; only the recorded hover target clears the hover."""
        ctx = self._ctx
        if not ctx.enabled or ctx.lock_mode is not LockMode.IDLE:
            return False
        if ctx.hovered_ref is None or not ctx.hovered_ref.refers_to(element):
            return False
        ctx.update(hovered_ref=None)
        self._highlighter.sync()
        return True

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------
    def toggle_lock(self) -> bool:
        ctx = self._ctx
        if ctx.lock_mode is LockMode.ELEMENT_LOCKED:
            ctx.update(lock_mode=LockMode.IDLE, hovered_ref=None)
            self._highlighter.sync()
            logger.info("Lock: element unlocked")
            return True

        element = ctx.hovered_ref.resolve(self._page) if ctx.hovered_ref is not None else None
        if ctx.lock_mode is not LockMode.IDLE or element is None:
            logger.warning("Lock key pressed, but no valid element is hovered. No change to lock state.")
            return False

        ctx.update(lock_mode=LockMode.ELEMENT_LOCKED, locked_element_ref=ElementRef(element))
        self._highlighter.sync()
        logger.info("Lock: element <%s> locked", element.tag)
        return True

    def handle_key(self, key: str, target: Optional[ET._Element] = None) -> bool:
        """Route a key press; returns True when the key was consumed."""
        if not self._ctx.enabled or not key:
            return False
        if self._page.is_text_entry(target if target is not None else self._page.focused):
            return False
        if key.lower() != self._settings.lock_key.lower():
            return False
        self.toggle_lock()
        return True

    # ------------------------------------------------------------------
    # File tree
    # ------------------------------------------------------------------
    async def select_file(self, path: str) -> None:
        """A file row was clicked; clicking the locked file again unlocks it."""
        ctx = self._ctx
        if not ctx.enabled:
            return
        path = normalize_path(path)
        if ctx.lock_mode is LockMode.FILE_LOCKED and ctx.locked_file_path == path:
            ctx.next_fetch_token()
            ctx.update(lock_mode=LockMode.IDLE, hovered_ref=None)
            self._highlighter.sync()
            logger.info("Lock: file %s unlocked", path)
            return

        ctx.update(lock_mode=LockMode.FILE_LOCKED, locked_file_path=path)
        location = self._highlighter.sync(scroll_page=True)
        logger.info("Lock: file %s locked", path)
        if location is not None:
            await self._load(location, path, file_mode=True)

    # ------------------------------------------------------------------
    def disable(self) -> None:
        self._ctx.teardown()
        self._highlighter.clear_all()
        panel = self._get_panel()
        if panel is not None:
            panel.clear()
        logger.info("State machine reset: all locks and highlights cleared")

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------
    def _location(self, element: Optional[ET._Element]) -> Optional[SourceLocation]:
        return self._page.location_of(element, self._settings.file_attribute, self._settings.line_attribute)

    def _panel(self):
        panel = self._get_panel()
        if panel is None:
            raise PanelUnavailableError("source panel container is missing")
        return panel

    def _subject_current(self, token: int, subject: Subject) -> bool:
        ctx = self._ctx
        if not ctx.enabled or not ctx.is_current_fetch(token):
            return False
        if isinstance(subject, str):
            return ctx.lock_mode is LockMode.FILE_LOCKED and ctx.locked_file_path == subject
        refs = (ctx.hovered_ref, ctx.locked_element_ref)
        return any(ref is not None and ref.refers_to(subject) for ref in refs)

    def _annotated_lines(self, path: str):
        lines = self._ctx.source_map.get(path)
        if lines:
            return lines
        return self._page.lines_for_file(path, self._settings.file_attribute, self._settings.line_attribute)

    async def _load(self, location: SourceLocation, subject: Subject, *, file_mode: bool) -> None:
        path = location.file_path
        panel = self._panel()
        token = self._ctx.next_fetch_token()
        panel.show_loading(path, location.line_number)
        self._loading_token = token
        try:
            text = await self._fetcher.fetch(path)
            if not isinstance(text, str):
                raise SourceFetchError(path, f"unexpected content type {type(text).__name__}")
        except Exception as exc:
            if not self._subject_current(token, subject):
                logger.debug("Discarding failed fetch for %s (stale request %d)", path, token)
                self._abandon(token)
                return
            logger.error("Could not load %s: %s", path, exc)
            self._loading_token = None
            if self._on_content_loaded is not None:
                self._on_content_loaded()
            self._ctx.update(displayed=None)
            self._panel().show_error(path, f"Could not load {path}: {exc}")
            return

        if not self._subject_current(token, subject):
            logger.debug("Discarding stale content for %s (request %d, current %d)", path, token, self._ctx.fetch_token)
            self._abandon(token)
            return
        self._loading_token = None
        if self._on_content_loaded is not None:
            self._on_content_loaded()
        self._panel().show_source(
            path,
            text,
            target_line=location.line_number,
            annotated_lines=self._annotated_lines(path),
            file_mode=file_mode,
        )
        self._ctx.update(displayed=DisplayedSource(path, text))

    def _abandon(self, token: int) -> None:
        # Only the request the panel is showing as loading may revert it
        if self._loading_token != token:
            return
        self._loading_token = None
        panel = self._get_panel()
        if panel is not None:
            panel.cancel_loading()
