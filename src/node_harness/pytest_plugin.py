"""pytest fixtures for node tests.

Registered through the ``pytest11`` entry point, so installing the package is
enough. Suites override ``harness_config`` in their conftest to point the
harness at their own build or data directory.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator

import pytest

from .command import CommandConfig
from .config import HarnessConfig, load_config
from .logs import configure_logging
from .supervisor import NodeProcess, NodeSupervisor
from .sync import MessageBuffer

logger = logging.getLogger(__name__)

StartNode = Callable[..., NodeProcess]


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers", "integration: test launches a real node process"
    )
    log_file = configure_logging(load_config(os.environ))
    if log_file is not None:
        logger.info(f"Harness debug log: {log_file}")


@pytest.fixture
def harness_config() -> HarnessConfig:
    """Harness configuration from NODE_HARNESS_* environment variables."""
    return load_config(os.environ)


@pytest.fixture
def node_supervisor(harness_config: HarnessConfig) -> NodeSupervisor:
    return NodeSupervisor(harness_config)


@pytest.fixture
def node(node_supervisor: NodeSupervisor) -> Iterator[StartNode]:
    """Factory that starts nodes and kills them all at teardown.

    Example:
        def test_startup(node):
            handle = node(CommandConfig().pair("--port-count", "1"),
                          ready_pattern=r"ready")
    """
    started: list[NodeProcess] = []

    def start(config: CommandConfig | None = None, **kwargs) -> NodeProcess:
        handle = node_supervisor.start(config, **kwargs)
        started.append(handle)
        return handle

    try:
        yield start
    finally:
        for handle in started:
            handle.kill()


@pytest.fixture
def message_buffer() -> MessageBuffer:
    return MessageBuffer()
