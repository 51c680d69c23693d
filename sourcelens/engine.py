from __future__ import annotations

"""SourceLens engine facade.

`SourceLensEngine` wires the context, scanner, state machine, highlighter,
search navigator and panels together and is the only object a host talks to.
Every public entry point catches and logs its own failures; nothing raises
back into the host.
"""

import asyncio
import functools
import logging
from typing import Any, Dict, Optional, Set

from lxml import etree as ET

from sourcelens.config import ConfigManager, EngineSettings
from sourcelens.core.context import EngineContext
from sourcelens.core.discovery import SourceScanner
from sourcelens.core.fetcher import create_fetcher
from sourcelens.core.highlighter import HighlightSynchronizer
from sourcelens.core.models import DirectoryNode, DisplayedSource, SourceMap
from sourcelens.core.page import HostPage
from sourcelens.core.scheduling import AsyncioScheduler, ScheduledTask, Scheduler
from sourcelens.core.search import SearchNavigator
from sourcelens.core.settings_store import SettingsStore
from sourcelens.core.state_machine import LockStateMachine, SourceFetcher
from sourcelens.ui.panel_controller import PanelController

logger = logging.getLogger(__name__)

__all__ = ["SourceLensEngine"]

TOGGLE_ACTIONS = ("toggle", "toggleExtensionPlugin")


def _guarded(default=None):
    """Log and swallow any exception raised by a synchronous entry point."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except Exception:
                logger.exception("SourceLens: %s failed", func.__name__)
                return default

        return wrapper

    return decorator


def _guarded_async(func):
    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except Exception:
            logger.exception("SourceLens: %s failed", func.__name__)
            return None

    return wrapper


class SourceLensEngine:
    """Correlate annotated page elements with their source files.

    Parameters
    ----------
    page : HostPage
        The document to work on.
    settings : EngineSettings, optional
        Defaults to the ``engine`` section of :class:`ConfigManager`.
    fetcher : SourceFetcher, optional
        Defaults to the backend named in *settings*.
    scheduler : Scheduler, optional
        Timer source for debounced and staggered scans.
    store : SettingsStore, optional
        Persisted ``enabled`` flag; changes to it toggle the engine.
    loop : asyncio.AbstractEventLoop, optional
        Loop used for work started from synchronous callbacks (tree clicks).
    """

    def __init__(
        self,
        page: HostPage,
        *,
        settings: Optional[EngineSettings] = None,
        fetcher: Optional[SourceFetcher] = None,
        scheduler: Optional[Scheduler] = None,
        store: Optional[SettingsStore] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.settings = settings or EngineSettings.from_mapping(ConfigManager().get_engine_config())
        self.page = page
        self.context = EngineContext()
        self._loop = loop
        self._tasks: Set[asyncio.Task] = set()
        self._last_url = page.url

        self.panels = PanelController(
            self.context,
            self.settings,
            on_file_clicked=self._file_row_clicked,
            on_refresh=self.refresh,
            on_line_clicked=self.note_clicked_line,
        )
        self.highlighter = HighlightSynchronizer(self.context, page, self.settings, self.panels.get_tree_view)
        self.search = SearchNavigator(self.context, self.panels.get_source_panel)
        self.state_machine = LockStateMachine(
            self.context,
            page,
            self.settings,
            self.highlighter,
            fetcher or create_fetcher(self.settings),
            self.panels.get_source_panel,
            on_content_loaded=self.search.reset,
        )
        self.scanner = SourceScanner(self.context, page, self.settings, on_tree_changed=self.panels.render_tree)

        scheduler = scheduler or AsyncioScheduler(loop)
        self._scan_task = ScheduledTask(scheduler, self.settings.scan_debounce_ms, self._run_scan, name="debounced-scan")
        self._initial_scans = ScheduledTask(scheduler, 0, self._run_scan, name="initial-scan")

        self._store = store
        if store is not None:
            store.subscribe(self._on_stored_enabled)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def enabled(self) -> bool:
        return self.context.enabled

    @_guarded()
    def start(self) -> None:
        """Enable or stay disabled according to the persisted flag."""
        enabled = self._store.load_enabled() if self._store is not None else True
        logger.info("SourceLens starting (enabled=%s)", enabled)
        if enabled:
            self.inject()

    @_guarded()
    def inject(self) -> None:
        if self.context.enabled and self.context.initialized:
            logger.debug("SourceLens already injected")
            return
        self.context.update(enabled=True)
        self.panels.initialize()
        self.scanner.invalidate()
        self.panels.render_tree(self.context.file_tree)
        self._initial_scans.schedule_series(self.settings.initial_scan_delays_ms)
        logger.info("SourceLens enabled on %s", self.page.url)

    @_guarded()
    def toggle(self, enabled: bool) -> None:
        if enabled:
            self.inject()
            return
        if not self.context.enabled and not self.context.initialized:
            return
        self.disable()

    @_guarded()
    def disable(self) -> None:
        self._scan_task.cancel()
        self._initial_scans.cancel()
        for task in list(self._tasks):
            task.cancel()
        self.state_machine.disable()
        self.panels.teardown()
        logger.info("SourceLens disabled")

    def close(self) -> None:
        self._scan_task.cancel()
        self._initial_scans.cancel()

    def _on_stored_enabled(self, enabled: bool) -> None:
        logger.info("Stored enabled flag changed to %s", enabled)
        self.toggle(enabled)

    @_guarded(default={"status": "error"})
    def handle_message(self, message: Dict[str, Any]) -> Dict[str, str]:
        """Consume a message from the control channel and return the reply."""
        action = (message or {}).get("action")
        if action in TOGGLE_ACTIONS:
            checked = bool(message.get("checked"))
            logger.info("Toggle message received (checked=%s)", checked)
            self.toggle(checked)
            if self._store is not None:
                self._store.save_enabled(checked)
            return {"status": "OK"}
        if action == "ping":
            return {"status": "pong"}
        logger.debug("Ignoring message with action %r", action)
        return {"status": "ignored"}

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------
    @_guarded(default={})
    def scan(self) -> SourceMap:
        return self.scanner.scan()

    @_guarded()
    def refresh(self) -> None:
        logger.info("Manual refresh requested")
        self.scanner.scan()

    def _run_scan(self) -> None:
        self.scanner.scan()

    @_guarded()
    def on_url_changed(self, url: str) -> None:
        """Observer hook for in-page navigation and DOM mutations."""
        if not self.context.enabled:
            return
        if url != self._last_url:
            logger.info("Navigation detected: %s -> %s", self._last_url, url)
            self._last_url = url
            self.search.clear()
            self.context.reset_for_navigation()
            self.scanner.invalidate()
            self.panels.render_tree(DirectoryNode(path=""))
        self._scan_task.schedule()

    @_guarded()
    def on_head_mutation(self) -> None:
        if self.context.enabled:
            self._scan_task.schedule()

    # ------------------------------------------------------------------
    # Pointer / keyboard / tree
    # ------------------------------------------------------------------
    @_guarded_async
    async def hover(self, element: ET._Element) -> None:
        await self.state_machine.hover(element)

    @_guarded(default=False)
    def leave(self, element: ET._Element) -> bool:
        return self.state_machine.leave(element)

    @_guarded(default=False)
    def toggle_lock(self) -> bool:
        return self.state_machine.toggle_lock()

    @_guarded(default=False)
    def handle_key(self, key: str, target: Optional[ET._Element] = None) -> bool:
        return self.state_machine.handle_key(key, target)

    @_guarded_async
    async def select_file(self, path: str) -> None:
        await self.state_machine.select_file(path)

    def _file_row_clicked(self, path: str) -> None:
        self.spawn(self.select_file(path))

    def spawn(self, coro) -> Optional[asyncio.Task]:
        try:
            loop = self._loop or asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.error("No event loop available to run %s", getattr(coro, "__name__", coro))
            return None
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for work started from synchronous callbacks."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------
    @_guarded()
    def set_search_term(self, term: str) -> None:
        self.search.set_term(term)

    @_guarded()
    def search_next(self):
        return self.search.next()

    @_guarded()
    def search_previous(self):
        return self.search.previous()

    @_guarded()
    def clear_search(self) -> None:
        self.search.clear()

    @_guarded()
    def note_clicked_line(self, line_number: int) -> None:
        self.search.note_clicked_line(line_number)

    # ------------------------------------------------------------------
    def displayed_source(self) -> Optional[DisplayedSource]:
        return self.context.displayed_source()
