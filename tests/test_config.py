"""Config module tests.

NODE_HARNESS_* parsing and defaults.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from unittest import mock

from node_harness.config import DEFAULT_PRIVATE_KEY, HarnessConfig, load_config


class TestDefaults:
    """Defaults match what the node tests have always used."""

    def test_defaults(self):
        config = HarnessConfig()
        assert config.data_dir == Path(tempfile.gettempdir())
        assert config.executable_name == "SubstratumNode"
        assert config.build_marker == "target"
        assert config.invocation_path is None
        assert config.dns_servers == "8.8.8.8"
        assert config.consuming_private_key == DEFAULT_PRIVATE_KEY
        assert config.log_level == "trace"
        assert config.startup_delay == 0.5
        assert config.log_poll_interval == 0.2
        assert config.exit_poll_interval == 0.1
        assert config.kill_by_name is True
        assert config.log_debug is False

    def test_file_paths(self, tmp_path: Path):
        config = HarnessConfig(data_dir=tmp_path)
        assert config.log_path == tmp_path / "SubstratumNode.log"
        assert config.database_path == tmp_path / "node-data.db"

    def test_repr(self):
        assert "kill_by_name=True" in repr(HarnessConfig())


class TestLoadConfig:
    """load_config reads only the mapping it is given."""

    def test_empty_mapping_gives_defaults(self):
        assert repr(load_config({})) == repr(HarnessConfig())

    def test_none_gives_defaults(self):
        assert load_config().startup_delay == 0.5

    def test_process_environment_is_not_read_implicitly(self):
        with mock.patch.dict(os.environ, {"NODE_HARNESS_STARTUP_DELAY": "3"}):
            assert load_config().startup_delay == 0.5
            assert load_config(os.environ).startup_delay == 3.0

    def test_data_dir_and_invocation_path(self, tmp_path: Path):
        config = load_config({
            "NODE_HARNESS_DATA_DIR": str(tmp_path),
            "NODE_HARNESS_INVOCATION_PATH": "/x/target/debug/t",
        })
        assert config.data_dir == tmp_path
        assert config.invocation_path == "/x/target/debug/t"

    def test_empty_invocation_path_means_default(self):
        assert load_config({"NODE_HARNESS_INVOCATION_PATH": ""}).invocation_path is None

    def test_bools(self):
        for value in ("true", "1", "yes", "ON"):
            config = load_config({"NODE_HARNESS_LOG_DEBUG": value})
            assert config.log_debug is True
        for value in ("false", "0", "no", "whatever"):
            config = load_config({"NODE_HARNESS_KILL_BY_NAME": value})
            assert config.kill_by_name is False

    def test_durations(self):
        config = load_config({
            "NODE_HARNESS_STARTUP_DELAY": "1.5",
            "NODE_HARNESS_TERM_TIMEOUT": "4",
            "NODE_HARNESS_KILL_TIMEOUT": "0.5",
        })
        assert config.startup_delay == 1.5
        assert config.term_timeout == 4.0
        assert config.kill_timeout == 0.5

    def test_invalid_duration_falls_back(self):
        config = load_config({"NODE_HARNESS_STARTUP_DELAY": "soon"})
        assert config.startup_delay == 0.5

    def test_durations_are_clamped(self):
        config = load_config({
            "NODE_HARNESS_STARTUP_DELAY": "-1",
            "NODE_HARNESS_TERM_TIMEOUT": "0",
            "NODE_HARNESS_KILL_TIMEOUT": "1000",
        })
        assert config.startup_delay == 0.0
        assert config.term_timeout == 0.1
        assert config.kill_timeout == 30.0
