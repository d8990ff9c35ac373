"""Pytest configuration and fixtures."""

from __future__ import annotations

import stat
import sys
from pathlib import Path

import pytest

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Add src to the Python path
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from node_harness.config import HarnessConfig  # noqa: E402
from node_harness.supervisor import NodeSupervisor  # noqa: E402

FIXTURES_DIR = PROJECT_ROOT / "tests" / "fixtures"
FAKE_NODE_PATH = FIXTURES_DIR / "fake_node.py"


def pytest_configure(config: pytest.Config) -> None:
    # Installed packages load the plugin through the pytest11 entry point
    if not config.pluginmanager.has_plugin("node_harness"):
        config.pluginmanager.import_plugin("node_harness.pytest_plugin")


@pytest.fixture
def project_root() -> Path:
    """Project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def fake_node_path() -> Path:
    """Path to the fake node script."""
    return FAKE_NODE_PATH


@pytest.fixture
def fake_build(tmp_path: Path) -> Path:
    """A ``target/debug`` build directory holding a fake SubstratumNode.

    The executable is a shell wrapper that execs the fake node with the
    interpreter running the tests. Returns the invocation path of a test
    binary inside that build (``target/debug/deps/...``).
    """
    build_dir = tmp_path / "project" / "target" / "debug"
    deps_dir = build_dir / "deps"
    deps_dir.mkdir(parents=True)

    executable = build_dir / "SubstratumNode"
    executable.write_text(
        f'#!/bin/sh\nexec "{sys.executable}" "{FAKE_NODE_PATH}" "$@"\n',
        encoding="utf-8",
    )
    executable.chmod(executable.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    return deps_dir / "node_integration_tests-0123abcd"


@pytest.fixture
def harness_config(tmp_path: Path, fake_build: Path) -> HarnessConfig:
    """Config pointing at the fake build, with short delays for testing."""
    return HarnessConfig(
        data_dir=tmp_path / "data",
        invocation_path=str(fake_build),
        startup_delay=0.1,
        log_poll_interval=0.05,
        exit_poll_interval=0.05,
        term_timeout=2.0,
        kill_timeout=1.0,
    )


@pytest.fixture
def supervisor(harness_config: HarnessConfig) -> NodeSupervisor:
    return NodeSupervisor(harness_config)
