"""Platform-specific executable resolution and termination.

node-harness v0.1.0

Everything that differs between POSIX and Windows lives behind
PlatformResolver; the supervisor never checks the platform itself.

- POSIX: the node binary is run directly in a new session, so SIGTERM and
  SIGKILL can be sent to its whole process group.
- Windows: the node is launched indirectly through ``cmd /c`` and killed with
  ``taskkill``. By default taskkill matches on the executable's file name,
  which also hits unrelated processes with the same name on the host.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
from abc import ABC, abstractmethod
from typing import Any

from .config import HarnessConfig
from .errors import PathResolutionFailure, TerminationFailure

__all__ = [
    "IS_WINDOWS",
    "PlatformResolver",
    "PosixResolver",
    "WindowsResolver",
    "get_resolver",
]

logger = logging.getLogger(__name__)

IS_WINDOWS = sys.platform == "win32"


class PlatformResolver(ABC):
    """Locates the node executable and knows how to stop it.

    Subclasses set ``separator`` and ``executable_suffix`` and implement the
    launch and termination strategy for their platform family.
    """

    separator: str = "/"
    executable_suffix: str = ""

    def __init__(self, config: HarnessConfig) -> None:
        self.config = config

    @property
    def invocation_path(self) -> str:
        """The path inspected for the build output directory."""
        if self.config.invocation_path:
            return self.config.invocation_path
        return sys.argv[0] if sys.argv else ""

    @property
    def executable_file_name(self) -> str:
        return f"{self.config.executable_name}{self.executable_suffix}"

    def build_dir(self) -> str:
        """Return the ``<...>/<marker>/<flavour>`` prefix of the invocation path.

        Raises:
            PathResolutionFailure: If the marker segment, or the flavour
                segment after it, is missing.
        """
        path = self.invocation_path
        marker = self.config.build_marker
        segments = path.split(self.separator)
        try:
            index = segments.index(marker)
        except ValueError:
            raise PathResolutionFailure(path, marker) from None
        if index + 1 >= len(segments) or not segments[index + 1]:
            raise PathResolutionFailure(path, marker)
        return self.separator.join(segments[: index + 2])

    def node_path(self) -> str:
        """Path to the node executable in the build output directory."""
        return f"{self.build_dir()}{self.separator}{self.executable_file_name}"

    @abstractmethod
    def program(self) -> str:
        """The program actually exec'd."""

    @abstractmethod
    def prefix_args(self) -> list[str]:
        """Arguments that go before the node's own arguments."""

    @abstractmethod
    def popen_kwargs(self) -> dict[str, Any]:
        """Extra keyword arguments for subprocess.Popen."""

    @abstractmethod
    def terminate(self, process: subprocess.Popen, force: bool = False) -> None:
        """Stop the node behind ``process`` and reap ``process``.

        Must not raise if the process is already gone.
        """


class PosixResolver(PlatformResolver):
    """Direct launch and process-group signalling."""

    separator = "/"
    executable_suffix = ""

    def program(self) -> str:
        return self.node_path()

    def prefix_args(self) -> list[str]:
        return []

    def popen_kwargs(self) -> dict[str, Any]:
        # New session: the node becomes its own process group leader
        return {"start_new_session": True}

    def terminate(self, process: subprocess.Popen, force: bool = False) -> None:
        """Termination strategy.

        1. Send SIGTERM to the process group (skipped when ``force``)
        2. Wait up to term_timeout for a graceful exit
        3. Send SIGKILL to the process group
        4. Wait up to kill_timeout for the forced exit
        """
        pid = process.pid

        if not force:
            self._signal_group(process, signal.SIGTERM)
            try:
                process.wait(timeout=self.config.term_timeout)
                logger.debug(f"Node terminated gracefully pid={pid} returncode={process.returncode}")
                return
            except subprocess.TimeoutExpired:
                logger.debug(f"Node ignored SIGTERM for {self.config.term_timeout}s pid={pid}")

        self._signal_group(process, signal.SIGKILL)
        try:
            process.wait(timeout=self.config.kill_timeout)
            logger.debug(f"Node killed pid={pid} returncode={process.returncode}")
        except subprocess.TimeoutExpired:
            logger.warning(f"Node did not exit after SIGKILL pid={pid}")

    def _signal_group(self, process: subprocess.Popen, signum: int) -> None:
        try:
            pgid = os.getpgid(process.pid)
            os.killpg(pgid, signum)
            logger.debug(f"Sent {signal.Signals(signum).name} to process group pgid={pgid}")
        except ProcessLookupError:
            logger.debug(f"Process group already gone pid={process.pid}")
        except OSError as e:
            logger.debug(f"killpg failed, signalling the process only: {e}")
            try:
                process.send_signal(signum)
            except ProcessLookupError:
                pass


class WindowsResolver(PlatformResolver):
    """Indirect launch through cmd and termination through taskkill."""

    separator = "\\"
    executable_suffix = ".exe"

    def program(self) -> str:
        return "cmd"

    def prefix_args(self) -> list[str]:
        return ["/c", self.node_path()]

    def popen_kwargs(self) -> dict[str, Any]:
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}

    def termination_command(self, process: subprocess.Popen) -> list[str]:
        if self.config.kill_by_name:
            return ["taskkill", "/IM", self.executable_file_name, "/F"]
        return ["taskkill", "/PID", str(process.pid), "/T", "/F"]

    def terminate(self, process: subprocess.Popen, force: bool = False) -> None:
        # taskkill /F is always forceful, so ``force`` changes nothing here
        command = self.termination_command(process)
        if self.config.kill_by_name:
            logger.warning(
                f"Killing every process named {self.executable_file_name} on this host"
            )

        try:
            result = subprocess.run(command, capture_output=True)
        except OSError as e:
            raise TerminationFailure(f"Couldn't kill {self.executable_file_name}: {e}") from e

        # A non-zero status usually means nothing matched, which is fine
        logger.debug(f"taskkill returncode={result.returncode}")

        try:
            process.wait(timeout=self.config.kill_timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"cmd wrapper still alive after taskkill pid={process.pid}")
            process.kill()
            try:
                process.wait(timeout=self.config.kill_timeout)
            except subprocess.TimeoutExpired:
                logger.warning(f"cmd wrapper did not exit pid={process.pid}")


def get_resolver(config: HarnessConfig) -> PlatformResolver:
    """Return the resolver for the running platform."""
    if IS_WINDOWS:
        return WindowsResolver(config)
    return PosixResolver(config)
