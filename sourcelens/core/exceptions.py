from __future__ import annotations

"""Exception classes for the correlation engine.

Every failure inside the engine is caught at its public entry points and
surfaced in the engine's own panels or log; these types exist so collaborators
(fetchers, panels) can signal failures precisely.
"""

from typing import Optional

__all__ = ["SourceLensError", "SourceFetchError", "PanelUnavailableError"]


class SourceLensError(Exception):
    """Base exception for all engine errors."""


class SourceFetchError(SourceLensError):
    """Raised by a fetcher when the text of a source file cannot be obtained."""

    def __init__(self, path: str, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.path = path
        self.cause = cause

    def __str__(self) -> str:
        return f"[{self.path}] {super().__str__()}"


class PanelUnavailableError(SourceLensError):
    """Raised when a panel container is required but has been torn down."""
