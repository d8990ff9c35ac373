"""Harness logging setup."""

from __future__ import annotations

import logging
import sys
import tempfile
from datetime import datetime
from pathlib import Path

from .config import HarnessConfig

__all__ = ["configure_logging", "debug_log_path"]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def debug_log_path() -> Path:
    """Timestamped debug log file under <tmp>/node-harness/."""
    log_dir = Path(tempfile.gettempdir()) / "node-harness"
    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return (log_dir / f"harness_debug_{timestamp}.log").resolve()


def configure_logging(config: HarnessConfig) -> Path | None:
    """Attach a handler to the ``node_harness`` logger.

    With ``log_debug`` everything at DEBUG goes to a temporary file, otherwise
    INFO and above goes to stderr. Only the harness namespace is touched, so
    the root logger (and pytest's capture of it) is left alone. Calling this
    again replaces the handler it installed earlier.

    Returns:
        The debug log file path, or None when logging to stderr
    """
    package_logger = logging.getLogger("node_harness")
    for existing in list(package_logger.handlers):
        if getattr(existing, "_node_harness", False):
            package_logger.removeHandler(existing)
            existing.close()

    log_file: Path | None = None

    if config.log_debug:
        log_file = debug_log_path()
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
        level = logging.DEBUG
    else:
        handler = logging.StreamHandler(sys.stderr)
        level = logging.INFO
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._node_harness = True  # type: ignore[attr-defined]

    package_logger.setLevel(level)
    package_logger.addHandler(handler)
    return log_file
