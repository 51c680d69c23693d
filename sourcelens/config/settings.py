from __future__ import annotations

"""Typed view over the ``engine`` configuration section."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple

logger = logging.getLogger(__name__)

__all__ = ["EngineSettings", "HighlightClasses"]


@dataclass(frozen=True)
class HighlightClasses:
    """CSS class names applied to page elements."""

    hover: str = "my-extension-highlight"
    locked: str = "locked-highlight"
    file_locked: str = "file-locked-highlight"

    def all(self) -> Tuple[str, str, str]:
        return (self.hover, self.locked, self.file_locked)


@dataclass(frozen=True)
class EngineSettings:
    """Engine settings with defaults matching the packaged ``engine.yml``."""

    file_attribute: str = "data-source-file"
    line_attribute: str = "data-source-line"
    lock_key: str = "l"
    scan_debounce_ms: int = 500
    initial_scan_delays_ms: Tuple[int, ...] = (200, 1000, 2500)
    highlight_classes: HighlightClasses = field(default_factory=HighlightClasses)
    fetch_backend: str = "http"
    fetch_base_url: str = "https://prod.foo.redhat.com:1337"
    fetch_source_root: str = "."
    fetch_timeout: float = 10.0
    tree_row_height: int = 20
    tree_visible_height: int = 400
    panel_height: str = "50%"
    panel_right_width: int = 375
    panel_min_width: int = 200
    panel_max_width_ratio: float = 0.8

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "EngineSettings":
        """Build settings from a (possibly partial) configuration mapping.

        Unknown keys are ignored. Values of the wrong type are replaced by the
        default and a warning is logged.
        """
        data = dict(data or {})
        defaults = cls()
        values: Dict[str, Any] = {}

        def pick(key: str, source: Mapping[str, Any], attr: str, kind: type) -> None:
            if key not in source:
                return
            raw = source[key]
            try:
                if kind is bool or not isinstance(raw, (str, int, float)):
                    raise TypeError(type(raw).__name__)
                values[attr] = kind(raw)
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid config value %s=%r; using %r", key, raw, getattr(defaults, attr))

        for key, kind in (
            ("file_attribute", str),
            ("line_attribute", str),
            ("lock_key", str),
            ("scan_debounce_ms", int),
        ):
            pick(key, data, key, kind)

        delays = data.get("initial_scan_delays_ms")
        if delays is not None:
            try:
                values["initial_scan_delays_ms"] = tuple(int(d) for d in delays)
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid initial_scan_delays_ms=%r", delays)

        classes = data.get("highlight_classes")
        if isinstance(classes, Mapping):
            base = HighlightClasses()
            values["highlight_classes"] = HighlightClasses(
                hover=str(classes.get("hover", base.hover)),
                locked=str(classes.get("locked", base.locked)),
                file_locked=str(classes.get("file_locked", base.file_locked)),
            )

        fetch = data.get("fetch")
        if isinstance(fetch, Mapping):
            pick("backend", fetch, "fetch_backend", str)
            pick("base_url", fetch, "fetch_base_url", str)
            pick("source_root", fetch, "fetch_source_root", str)
            pick("timeout", fetch, "fetch_timeout", float)

        tree = data.get("tree")
        if isinstance(tree, Mapping):
            pick("row_height", tree, "tree_row_height", int)
            pick("visible_height", tree, "tree_visible_height", int)

        panel = data.get("panel")
        if isinstance(panel, Mapping):
            pick("height", panel, "panel_height", str)
            pick("right_width", panel, "panel_right_width", int)
            pick("min_width", panel, "panel_min_width", int)
            pick("max_width_ratio", panel, "panel_max_width_ratio", float)

        return cls(**values)
