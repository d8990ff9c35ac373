"""Harness configuration.

The harness itself never reads the process environment. ``load_config`` takes
an explicit mapping instead, so a test suite can opt in with
``load_config(os.environ)``.

Recognised keys:
    NODE_HARNESS_DATA_DIR: Directory handed to the node as --data-directory
        - default: the system temporary directory

    NODE_HARNESS_INVOCATION_PATH: Path inspected to locate the build output
        - default: sys.argv[0] of the running test process

    NODE_HARNESS_STARTUP_DELAY: Seconds to sleep after spawning the node
        - default 0.5, clamped to 0-30

    NODE_HARNESS_TERM_TIMEOUT / NODE_HARNESS_KILL_TIMEOUT:
        Seconds to wait after SIGTERM / SIGKILL (defaults 2.0 / 1.0)

    NODE_HARNESS_KILL_BY_NAME: Windows termination strategy
        - true/1/yes = taskkill /IM <executable> (default)
        - false/0/no = taskkill /PID <pid> /T

    NODE_HARNESS_LOG_DEBUG: Harness diagnostics
        - true/1/yes = DEBUG logging to a temporary file
        - false/0/no = INFO logging to stderr (default)
"""

from __future__ import annotations

import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

__all__ = ["HarnessConfig", "load_config", "DEFAULT_PRIVATE_KEY"]

DEFAULT_PRIVATE_KEY = "C" * 64


def _default_data_dir() -> Path:
    return Path(tempfile.gettempdir())


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean setting."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_seconds(
    value: str | None,
    default: float,
    minimum: float = 0.0,
    maximum: float = 30.0,
) -> float:
    """Parse a duration in seconds, clamped to [minimum, maximum].

    Invalid values fall back to the default.
    """
    if not value:
        return default
    try:
        seconds = float(value)
    except ValueError:
        return default
    return max(minimum, min(seconds, maximum))


@dataclass
class HarnessConfig:
    """Node harness configuration.

    Attributes:
        data_dir: Data directory passed to the node; log and database live here
        executable_name: Node binary file name, without platform suffix
        build_marker: Path segment that precedes the build flavour directory
        invocation_path: Path to inspect for the build output (None = sys.argv[0])
        log_file_name: Name of the node's log file inside data_dir
        database_name: Name of the node's database file inside data_dir
        dns_servers: Placeholder --dns-servers value
        consuming_private_key: Placeholder --consuming-private-key value
        log_level: --log-level value
        startup_delay: Seconds slept after spawning (heuristic, not readiness)
        log_poll_interval: Seconds between log file reads
        exit_poll_interval: Seconds between liveness checks
        term_timeout: Seconds to wait for exit after SIGTERM
        kill_timeout: Seconds to wait for exit after SIGKILL
        kill_by_name: Windows only, terminate by executable name instead of PID
        log_debug: Send harness DEBUG logs to a temporary file
    """

    data_dir: Path = field(default_factory=_default_data_dir)
    executable_name: str = "SubstratumNode"
    build_marker: str = "target"
    invocation_path: str | None = None
    log_file_name: str = "SubstratumNode.log"
    database_name: str = "node-data.db"
    dns_servers: str = "8.8.8.8"
    consuming_private_key: str = DEFAULT_PRIVATE_KEY
    log_level: str = "trace"
    startup_delay: float = 0.5
    log_poll_interval: float = 0.2
    exit_poll_interval: float = 0.1
    term_timeout: float = 2.0
    kill_timeout: float = 1.0
    kill_by_name: bool = True
    log_debug: bool = False

    @property
    def log_path(self) -> Path:
        return Path(self.data_dir) / self.log_file_name

    @property
    def database_path(self) -> Path:
        return Path(self.data_dir) / self.database_name

    def __repr__(self) -> str:
        return (
            f"HarnessConfig(data_dir={self.data_dir}, "
            f"executable={self.executable_name}, "
            f"marker={self.build_marker}, "
            f"invocation_path={self.invocation_path}, "
            f"startup_delay={self.startup_delay}, "
            f"kill_by_name={self.kill_by_name}, "
            f"log_debug={self.log_debug})"
        )


def load_config(values: Mapping[str, str] | None = None) -> HarnessConfig:
    """Build a configuration from an explicit mapping of NODE_HARNESS_* keys."""
    values = values or {}
    defaults = HarnessConfig()

    data_dir = values.get("NODE_HARNESS_DATA_DIR")

    return HarnessConfig(
        data_dir=Path(data_dir) if data_dir else defaults.data_dir,
        invocation_path=values.get("NODE_HARNESS_INVOCATION_PATH") or None,
        startup_delay=_parse_seconds(
            values.get("NODE_HARNESS_STARTUP_DELAY"), defaults.startup_delay
        ),
        term_timeout=_parse_seconds(
            values.get("NODE_HARNESS_TERM_TIMEOUT"), defaults.term_timeout, minimum=0.1
        ),
        kill_timeout=_parse_seconds(
            values.get("NODE_HARNESS_KILL_TIMEOUT"), defaults.kill_timeout, minimum=0.1
        ),
        kill_by_name=_parse_bool(values.get("NODE_HARNESS_KILL_BY_NAME"), default=True),
        log_debug=_parse_bool(values.get("NODE_HARNESS_LOG_DEBUG"), default=False),
    )
