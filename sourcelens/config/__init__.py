"""Configuration files (YAML) and helpers.

`ConfigManager` reads the default files from this folder and merges them with
user overrides; `EngineSettings` is the typed view the engine consumes.
"""

from .manager import ConfigManager, get_user_config_dir
from .settings import EngineSettings, HighlightClasses

__all__ = [
    "ConfigManager",
    "EngineSettings",
    "HighlightClasses",
    "get_user_config_dir",
]
