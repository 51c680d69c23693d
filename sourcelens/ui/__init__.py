"""SourceLens UI package.

View models for the file tree and source panels, the panel controller that
owns them, and the Tkinter desktop front-end that renders them.
"""

from .panel_controller import PanelController  # noqa: F401
from .source_panel import SourcePanel  # noqa: F401
from .tree_view import FileTreeView  # noqa: F401

__all__: list[str] = [
    "PanelController",
    "SourcePanel",
    "FileTreeView",
]
