"""Node process supervision.

node-harness v0.1.0

This module provides:
- NodeSupervisor: the explicitly constructed test context (config + platform
  resolver) that composes command lines and launches the node
- NodeProcess: a handle owning exactly one child process, with guaranteed
  termination when its ``with`` block exits on any path
- ExitStatus: the raw exit status of a reaped process

Key design points:
- The post-spawn sleep in start() is a heuristic for the node to open its log
  file and sockets. It is not a readiness check; call wait_for_log (or pass
  ``ready_pattern`` to start) before relying on the node.
- kill() on a process that has already exited is a no-op, not an error.
"""

from __future__ import annotations

import logging
import re
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType

from .command import CommandConfig
from .config import HarnessConfig
from .errors import StartupFailure, StateCleanupError
from .platforms import PlatformResolver, get_resolver
from .waiters import wait_for_exit, wait_for_log

__all__ = [
    "ExitStatus",
    "NodeProcess",
    "NodeSupervisor",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExitStatus:
    """Raw status of an exited process.

    Attributes:
        returncode: Popen.returncode; negative means killed by that signal (POSIX)
    """

    returncode: int

    @property
    def code(self) -> int | None:
        """The OS exit code, or None when the process ended on a signal."""
        if self.returncode < 0:
            return None
        return self.returncode

    @property
    def signal(self) -> int | None:
        if self.returncode < 0:
            return -self.returncode
        return None

    @property
    def success(self) -> bool:
        return self.returncode == 0


class NodeProcess:
    """Handle owning one running node process.

    Use it as a context manager so the process is killed however the test
    leaves the block:

        with supervisor.start(config) as node:
            node.wait_for_log(r"listening", timeout=5)
            ...

    Attributes:
        process: The underlying Popen object
        log_path: The node's log file
        logfile_contents: Full log text as of the last wait_for_log poll
        ready: True once a wait_for_log call on this handle has matched
    """

    def __init__(
        self,
        process: subprocess.Popen,
        log_path: Path,
        resolver: PlatformResolver,
        config: HarnessConfig,
    ) -> None:
        self.process = process
        self.log_path = log_path
        self.logfile_contents = ""
        self.ready = False
        self._resolver = resolver
        self._config = config

    @property
    def pid(self) -> int:
        return self.process.pid

    def poll(self) -> ExitStatus | None:
        """Non-blocking liveness check; None while the process is running."""
        returncode = self.process.poll()
        if returncode is None:
            return None
        return ExitStatus(returncode)

    def is_running(self) -> bool:
        return self.poll() is None

    def wait_for_log(self, pattern: str, timeout: float | None = None) -> re.Match[str]:
        """See waiters.wait_for_log."""
        return wait_for_log(
            self, pattern, timeout, interval=self._config.log_poll_interval
        )

    def wait_for_exit(self, timeout: float) -> int | None:
        """See waiters.wait_for_exit."""
        return wait_for_exit(self, timeout, interval=self._config.exit_poll_interval)

    def kill(self, force: bool = False) -> ExitStatus | None:
        """Terminate the node and reap it.

        Args:
            force: Skip the graceful SIGTERM step (POSIX)

        Returns:
            The exit status, or None if the process could not be reaped
        """
        status = self.poll()
        if status is not None:
            logger.debug(f"Node already exited pid={self.pid} returncode={status.returncode}")
            return status

        logger.debug(f"Killing node pid={self.pid} force={force}")
        self._resolver.terminate(self.process, force=force)
        return self.poll()

    def __enter__(self) -> NodeProcess:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.kill()

    def __repr__(self) -> str:
        state = "running" if self.is_running() else f"exited({self.process.returncode})"
        return f"NodeProcess(pid={self.pid}, {state}, ready={self.ready})"


class NodeSupervisor:
    """Launches the node binary with the harness's standard arguments.

    Example:
        supervisor = NodeSupervisor(HarnessConfig(data_dir=tmp_path))
        with supervisor.start(CommandConfig().pair("--port-count", "1")) as node:
            node.wait_for_log(r"SubstratumNode ready", timeout=10)

    Attributes:
        config: Harness configuration
        resolver: Platform-specific launch and termination strategy
    """

    def __init__(
        self,
        config: HarnessConfig | None = None,
        resolver: PlatformResolver | None = None,
    ) -> None:
        self.config = config or HarnessConfig()
        self.resolver = resolver or get_resolver(self.config)

    @property
    def data_dir(self) -> Path:
        return Path(self.config.data_dir)

    @property
    def path_to_logfile(self) -> Path:
        return self.config.log_path

    @property
    def path_to_database(self) -> Path:
        return self.config.database_path

    def remove_database(self) -> None:
        """Delete the node's persisted database; a missing file is fine.

        Raises:
            StateCleanupError: If the file exists but can't be removed
        """
        database = self.path_to_database
        try:
            database.unlink()
            logger.debug(f"Removed database {database}")
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StateCleanupError(database, str(e)) from e

    def prefix_args(self) -> CommandConfig:
        """Resolver prefix plus --data-directory, shared by every invocation mode."""
        config = CommandConfig()
        for token in self.resolver.prefix_args():
            config.opt(token)
        return config.pair("--data-directory", str(self.data_dir))

    def standard_args(self) -> CommandConfig:
        return (
            self.prefix_args()
            .pair("--dns-servers", self.config.dns_servers)
            .pair("--consuming-private-key", self.config.consuming_private_key)
            .pair("--log-level", self.config.log_level)
        )

    def dump_config_args(self) -> CommandConfig:
        return self.prefix_args().opt("--dump-config")

    def generate_args(self) -> CommandConfig:
        return self.prefix_args().opt("--generate-wallet")

    def recover_args(self) -> CommandConfig:
        return self.prefix_args().opt("--recover-wallet")

    def make_node_command(self, config: CommandConfig | None = None) -> list[str]:
        self.remove_database()
        return [self.resolver.program(), *self.standard_args().extend(config)]

    def start(
        self,
        config: CommandConfig | None = None,
        *,
        ready_pattern: str | None = None,
        ready_timeout: float | None = None,
    ) -> NodeProcess:
        """Launch the node with standard arguments followed by ``config``.

        Args:
            config: Extra arguments, appended after the defaults
            ready_pattern: If given, wait for this log pattern before returning
            ready_timeout: Deadline for ready_pattern (None = unbounded)

        Returns:
            A handle that owns the running process

        Raises:
            StartupFailure: If the process can't be spawned
            PathResolutionFailure: If the executable can't be located
        """
        argv = self.make_node_command(config)
        try:
            process = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                **self.resolver.popen_kwargs(),
            )
        except OSError as e:
            raise StartupFailure(argv, str(e)) from e

        logger.info(f"Started node pid={process.pid} argv={argv[0]}")
        logger.debug(f"Node arguments: {argv[1:]}")

        node = NodeProcess(process, self.path_to_logfile, self.resolver, self.config)

        # Time to open the log file and sockets; not a readiness guarantee
        time.sleep(self.config.startup_delay)

        if ready_pattern is not None:
            try:
                node.wait_for_log(ready_pattern, ready_timeout)
            except BaseException:
                node.kill()
                raise
        return node

    def run_dump_config(self) -> str:
        """Run ``--dump-config`` to completion and return its captured output."""
        self.remove_database()
        return self._run_to_completion(
            [self.resolver.program(), *self.dump_config_args()]
        )

    def run_generate(self, config: CommandConfig) -> str:
        """Run ``--generate-wallet`` with extra pairs and return its captured output."""
        self.remove_database()
        return self._run_to_completion(
            [self.resolver.program(), *self.generate_args().extend(config)]
        )

    def run_recover(self, config: CommandConfig) -> str:
        """Run ``--recover-wallet`` with extra pairs and return its captured output."""
        self.remove_database()
        return self._run_to_completion(
            [self.resolver.program(), *self.recover_args().extend(config)]
        )

    def _run_to_completion(self, argv: list[str]) -> str:
        try:
            result = subprocess.run(
                argv,
                stdin=subprocess.DEVNULL,
                capture_output=True,
            )
        except OSError as e:
            raise StartupFailure(argv, str(e)) from e

        logger.debug(f"Node run completed argv={argv[0]} returncode={result.returncode}")
        stdout = result.stdout.decode("utf-8", errors="replace")
        stderr = result.stderr.decode("utf-8", errors="replace")
        return f"stdout:\n{stdout}\nstderr:\n{stderr}"
