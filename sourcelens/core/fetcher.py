from __future__ import annotations

"""Source text fetchers.

The engine awaits ``fetcher.fetch(path)`` and treats the result as opaque
text. Two backends ship with the package: an HTTP fetcher for a dev server
that serves project files by path, and a local fetcher reading from a
checkout on disk.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

import requests

from sourcelens.config.settings import EngineSettings

from .exceptions import SourceFetchError

logger = logging.getLogger(__name__)

__all__ = ["HttpSourceFetcher", "LocalSourceFetcher", "create_fetcher"]


class HttpSourceFetcher:
    """Fetch ``<base_url>/<path>`` with requests in a worker thread.

    Parameters
    ----------
    base_url : str
        Server root, without trailing slash.
    timeout : float
        Request timeout in seconds.
    session : requests.Session, optional
        Reused for every request; a new session is created when omitted.
    """

    def __init__(self, base_url: str, *, timeout: float = 10.0, session: Optional[Any] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def url_for(self, path: str) -> str:
        fetch_path = path if path.startswith("/") else "/" + path
        return f"{self.base_url}{fetch_path}"

    async def fetch(self, path: str) -> str:
        if not path:
            raise SourceFetchError(path, "no path given")
        return await asyncio.to_thread(self._get, path)

    def _get(self, path: str) -> str:
        url = self.url_for(path)
        logger.info("Fetching source for %s", url)
        try:
            response = self._session.get(url, timeout=self.timeout)
        except requests.exceptions.Timeout as exc:
            raise SourceFetchError(path, "request timed out", exc) from exc
        except requests.exceptions.ConnectionError as exc:
            raise SourceFetchError(path, "connection error", exc) from exc
        except requests.exceptions.RequestException as exc:
            raise SourceFetchError(path, f"request failed: {exc}", exc) from exc

        if response.status_code != 200:
            raise SourceFetchError(path, f"HTTP {response.status_code}")
        return response.text


class LocalSourceFetcher:
    """Read source files below *root*; paths may not escape it."""

    def __init__(self, root: str | Path, *, encoding: str = "utf-8") -> None:
        self.root = Path(root).resolve()
        self.encoding = encoding

    def resolve(self, path: str) -> Path:
        candidate = (self.root / path.lstrip("/")).resolve()
        try:
            candidate.relative_to(self.root)
        except ValueError:
            raise SourceFetchError(path, f"path escapes source root {self.root}") from None
        return candidate

    async def fetch(self, path: str) -> str:
        if not path:
            raise SourceFetchError(path, "no path given")
        target = self.resolve(path)
        try:
            return await asyncio.to_thread(target.read_text, encoding=self.encoding, errors="replace")
        except OSError as exc:
            raise SourceFetchError(path, f"cannot read {target}: {exc.strerror or exc}", exc) from exc


def create_fetcher(settings: EngineSettings):
    """Instantiate the fetch backend named in *settings*."""
    backend = (settings.fetch_backend or "http").lower()
    if backend == "local":
        logger.info("Using local source fetcher rooted at %s", settings.fetch_source_root)
        return LocalSourceFetcher(settings.fetch_source_root)
    if backend != "http":
        logger.warning("Unknown fetch backend %r, falling back to http", backend)
    logger.info("Using HTTP source fetcher for %s", settings.fetch_base_url)
    return HttpSourceFetcher(settings.fetch_base_url, timeout=settings.fetch_timeout)
