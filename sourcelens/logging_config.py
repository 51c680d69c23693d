from __future__ import annotations

"""Central logging configuration for SourceLens.

Call :func:`setup_logging` once at application start-up. The ``logging``
section of :class:`~sourcelens.config.ConfigManager` is applied with
``dictConfig``; the file handler is redirected into ``$SOURCELENS_LOG_DIR``
(default ``logs/``).

Extra DEBUG output can be switched on per logger, either with the
``debug_modules`` argument or through the environment:

- ``SOURCELENS_DEBUG=true`` turns on DEBUG for the whole ``sourcelens`` package
- ``SOURCELENS_DEBUG_MODULES=sourcelens.core.search,sourcelens.core.discovery``
  turns it on for the listed loggers only
"""

import copy
import logging
import logging.config
import os
from typing import Iterable, List

from sourcelens.config import ConfigManager

__all__ = ["setup_logging", "debug_targets"]

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_TRUTHY = {"1", "true", "yes", "on"}


def setup_logging(debug_modules: Iterable[str] = ()) -> None:
    """Configure logging from ``logging.yml``, falling back to console-only output."""
    log_dir = os.environ.get("SOURCELENS_LOG_DIR", "logs")

    try:
        cfg = copy.deepcopy(ConfigManager().get_logging_config())
        if not cfg.get("version"):
            raise ValueError("logging configuration has no 'version' key")
        file_handler = cfg.get("handlers", {}).get("file")
        if file_handler is not None:
            os.makedirs(log_dir, exist_ok=True)
            file_handler["filename"] = os.path.join(log_dir, "app.log")
        logging.config.dictConfig(cfg)
        logging.getLogger("sourcelens").info("===== Logging initialised from config files =====")
    except Exception as exc:
        logging.basicConfig(level=logging.INFO, format=_FORMAT, force=True)
        logging.getLogger("sourcelens").error("Logging config unusable (%s); console logging only", exc)

    for name in debug_targets(os.environ, debug_modules):
        _enable_debug(name)


def debug_targets(environ, extra: Iterable[str] = ()) -> List[str]:
    """Logger names that should be forced to DEBUG."""
    targets: List[str] = []
    if environ.get("SOURCELENS_DEBUG", "").strip().lower() in _TRUTHY:
        targets.append("sourcelens")
    names = list(extra) + environ.get("SOURCELENS_DEBUG_MODULES", "").split(",")
    for name in (n.strip() for n in names):
        if name and name not in targets:
            targets.append(name)
    return targets


def _enable_debug(name: str) -> None:
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    if not any(h.level <= logging.DEBUG for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
    logger.info("Debug override active for logger '%s'", name)
