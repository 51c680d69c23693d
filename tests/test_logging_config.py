import logging

import pytest

from sourcelens.config import ConfigManager
from sourcelens.logging_config import debug_targets, setup_logging


@pytest.fixture
def restore_loggers():
    names = ["", "sourcelens", "sourcelens.core.search"]
    saved = {}
    for name in names:
        logger = logging.getLogger(name)
        saved[name] = (logger.handlers[:], logger.level, logger.propagate)
    ConfigManager.reset()
    yield
    for name, (handlers, level, propagate) in saved.items():
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            if handler not in handlers:
                handler.close()
        logger.handlers[:] = handlers
        logger.setLevel(level)
        logger.propagate = propagate
    ConfigManager.reset()


def test_debug_targets_from_environment_and_arguments():
    environ = {"SOURCELENS_DEBUG": "yes", "SOURCELENS_DEBUG_MODULES": " sourcelens.core.search, ,sourcelens"}

    assert debug_targets(environ, ["sourcelens.engine"]) == [
        "sourcelens",
        "sourcelens.engine",
        "sourcelens.core.search",
    ]


def test_no_debug_targets_by_default():
    assert debug_targets({}) == []


def test_setup_writes_log_file_into_configured_directory(tmp_path, monkeypatch, restore_loggers):
    monkeypatch.setenv("SOURCELENS_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.delenv("SOURCELENS_DEBUG", raising=False)
    monkeypatch.delenv("SOURCELENS_DEBUG_MODULES", raising=False)

    setup_logging(["sourcelens.core.search"])

    assert logging.getLogger("sourcelens.core.search").level == logging.DEBUG
    assert (tmp_path / "logs" / "app.log").exists()
    # the loaded config itself is left untouched
    assert ConfigManager().get_logging_config()["handlers"]["file"]["filename"] == "logs/app.log"
