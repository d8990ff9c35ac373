"""Logging setup tests."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest import mock

import pytest

from node_harness import logs
from node_harness.config import HarnessConfig


@pytest.fixture
def package_logger():
    logger = logging.getLogger("node_harness")
    saved_level = logger.level
    saved_handlers = list(logger.handlers)
    yield logger
    for handler in list(logger.handlers):
        if handler not in saved_handlers:
            logger.removeHandler(handler)
            handler.close()
    for handler in saved_handlers:
        if handler not in logger.handlers:
            logger.addHandler(handler)
    logger.setLevel(saved_level)


def harness_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if getattr(h, "_node_harness", False)]


def test_stderr_by_default(package_logger: logging.Logger):
    log_file = logs.configure_logging(HarnessConfig())

    assert log_file is None
    assert package_logger.level == logging.INFO
    handlers = harness_handlers(package_logger)
    assert len(handlers) == 1
    assert isinstance(handlers[0], logging.StreamHandler)


def test_debug_goes_to_file(package_logger: logging.Logger, tmp_path: Path):
    target = tmp_path / "harness_debug.log"

    with mock.patch.object(logs, "debug_log_path", return_value=target):
        log_file = logs.configure_logging(HarnessConfig(log_debug=True))

    logging.getLogger("node_harness.supervisor").debug("spawned pid=1")
    for handler in harness_handlers(package_logger):
        handler.flush()

    assert log_file == target
    assert package_logger.level == logging.DEBUG
    assert "[DEBUG] node_harness.supervisor: spawned pid=1" in target.read_text()


def test_reconfiguring_replaces_handler(package_logger: logging.Logger):
    logs.configure_logging(HarnessConfig())
    logs.configure_logging(HarnessConfig())

    assert len(harness_handlers(package_logger)) == 1


def test_debug_log_path_is_under_temp_dir():
    path = logs.debug_log_path()
    assert path.parent.name == "node-harness"
    assert path.name.startswith("harness_debug_")
