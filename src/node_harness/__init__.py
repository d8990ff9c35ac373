"""node-harness - black-box integration test harness for SubstratumNode.

Launches the node binary with a composed command line, waits for log
readiness or exit, and always tears the process down at the end of a test.
Also provides thread rendezvous and polling barriers for multi-threaded
scenarios.

Usage:
    from node_harness import CommandConfig, NodeSupervisor

    with NodeSupervisor().start(CommandConfig().pair("--port-count", "1")) as node:
        node.wait_for_log(r"SubstratumNode ready", timeout=10)
"""

__version__ = "0.1.0"

from .command import CommandConfig
from .config import HarnessConfig, load_config
from .errors import (
    BarrierTimeout,
    ExitTimeout,
    HarnessError,
    HarnessTimeout,
    PathResolutionFailure,
    ReadinessTimeout,
    StartupFailure,
    StateCleanupError,
    TerminationFailure,
)
from .platforms import PlatformResolver, PosixResolver, WindowsResolver, get_resolver
from .supervisor import ExitStatus, NodeProcess, NodeSupervisor
from .sync import MessageBuffer, Signaler, Waiter, await_messages, signal
from .waiters import wait_for_exit, wait_for_log

__all__ = [
    "__version__",
    "BarrierTimeout",
    "CommandConfig",
    "ExitStatus",
    "ExitTimeout",
    "HarnessConfig",
    "HarnessError",
    "HarnessTimeout",
    "MessageBuffer",
    "NodeProcess",
    "NodeSupervisor",
    "PathResolutionFailure",
    "PlatformResolver",
    "PosixResolver",
    "ReadinessTimeout",
    "Signaler",
    "StartupFailure",
    "StateCleanupError",
    "TerminationFailure",
    "Waiter",
    "WindowsResolver",
    "await_messages",
    "get_resolver",
    "load_config",
    "signal",
    "wait_for_exit",
    "wait_for_log",
]
