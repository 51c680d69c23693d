"""SourceLens: correlate annotated page elements with their source files.

Front-ends (Tk app, tests, embedding hosts) should depend on the public API
exposed here rather than importing internal modules directly.
"""

from .core.models import DisplayedSource, LockMode, SourceLocation  # re-export for convenience
from .core.page import HostPage
from .engine import SourceLensEngine

__all__: list[str] = [
    "SourceLensEngine",
    "HostPage",
    "LockMode",
    "SourceLocation",
    "DisplayedSource",
]
