"""Shared fixtures for the SourceLens test-suite.

Provides a sample annotated page, a scheduler driven by a manual clock and
an async fake fetcher whose responses can be held back to exercise
out-of-order completion.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sourcelens.config.settings import EngineSettings
from sourcelens.core.context import EngineContext
from sourcelens.core.exceptions import SourceFetchError
from sourcelens.core.page import HostPage
from sourcelens.engine import SourceLensEngine

# Configure test logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


SAMPLE_PAGE = """<!DOCTYPE html>
<html>
<head><title>Clusters</title></head>
<body>
  <div id="app" data-source-file="/src/App.jsx" data-source-line="10">
    <header id="header" data-source-file="src/components/Header.jsx" data-source-line="4">
      <h1 id="title" data-source-file="src/components/Header.jsx" data-source-line="7">Clusters</h1>
    </header>
    <main id="main" data-source-file="src/App.jsx" data-source-line="22">
      <p id="plain">Not annotated</p>
      <input id="search-box" type="text" data-source-file="src/components/Search.jsx" data-source-line="3">
      <span id="bad-line" data-source-file="src/utils/format.js" data-source-line="abc">?</span>
    </main>
    <!-- <div data-source-file="src/legacy/Old.jsx" data-source-line="2"></div> -->
  </div>
</body>
</html>
"""

SAMPLE_MAP = {
    "src/App.jsx": (10, 22),
    "src/components/Header.jsx": (4, 7),
    "src/components/Search.jsx": (3,),
    "src/legacy/Old.jsx": (2,),
}

SOURCES = {
    "src/App.jsx": "\n".join(f"app line {n}" for n in range(1, 31)),
    "src/components/Header.jsx": "\n".join(f"header line {n}" for n in range(1, 11)),
    "src/components/Search.jsx": "export const Search = () => null;\n",
}


class FakeHandle:
    def __init__(self, scheduler: "FakeScheduler", due: int, callback: Callable[[], None]) -> None:
        self._scheduler = scheduler
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Scheduler with a manual clock; ``advance`` fires due callbacks in order."""

    def __init__(self) -> None:
        self.now = 0
        self.handles: List[FakeHandle] = []

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> FakeHandle:
        handle = FakeHandle(self, self.now + max(0, int(delay_ms)), callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> List[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]

    def advance(self, ms: int) -> int:
        target = self.now + ms
        fired = 0
        while True:
            due = sorted((h for h in self.pending if h.due <= target), key=lambda h: h.due)
            if not due:
                break
            handle = due[0]
            self.handles.remove(handle)
            self.now = handle.due
            handle.callback()
            fired += 1
        self.now = target
        return fired


class FakeFetcher:
    """Async fetcher serving canned texts; ``hold`` delays a path until released."""

    def __init__(self, sources: Optional[Dict[str, str]] = None) -> None:
        self.sources = dict(SOURCES if sources is None else sources)
        self.failing: Set[str] = set()
        self.calls: List[str] = []
        self._gates: Dict[str, asyncio.Event] = {}

    def hold(self, path: str) -> None:
        self._gates[path] = asyncio.Event()

    def release(self, path: str) -> None:
        self._gates.pop(path).set()

    async def fetch(self, path: str) -> str:
        self.calls.append(path)
        gate = self._gates.get(path)
        if gate is not None:
            await gate.wait()
        if path in self.failing or path not in self.sources:
            raise SourceFetchError(path, "HTTP 404")
        return self.sources[path]


@pytest.fixture
def settings():
    return EngineSettings()


@pytest.fixture
def page():
    return HostPage.from_html(SAMPLE_PAGE, url="https://console.example/clusters")


@pytest.fixture
def context():
    ctx = EngineContext()
    ctx.update(enabled=True)
    return ctx


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def engine(page, settings, fetcher, scheduler):
    eng = SourceLensEngine(page, settings=settings, fetcher=fetcher, scheduler=scheduler)
    eng.inject()
    eng.scan()
    return eng


@pytest.fixture
def sample_map():
    return dict(SAMPLE_MAP)
