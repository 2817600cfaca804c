"""
Logging setup.

Every run writes a DEBUG-level file log; the console only shows WARNING and
above unless --verbose, in which case a RichHandler on the shared console
echoes INFO records too.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from debdoctor.config import Config
from debdoctor.errors import LogSetupError

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_GLOB = "debian-doctor_*.log"

# Handlers we installed, so a second setup_logging() call replaces them.
_installed: list[logging.Handler] = []


def log_file_name(now: datetime | None = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y-%m-%d_%H-%M-%S")
    return f"debian-doctor_{stamp}.log"


def setup_logging(config: Config, console: Console | None = None) -> Path:
    """
    Configure the "debdoctor" logger and return the log file path.

    Raises LogSetupError if the log directory or file cannot be created.
    """
    try:
        config.log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise LogSetupError(f"failed to create log directory {config.log_dir}: {e}") from e

    log_path = config.log_dir / log_file_name()
    try:
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError as e:
        raise LogSetupError(f"failed to create log file {log_path}: {e}") from e
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    console_handler = RichHandler(
        console=console,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    console_handler.setLevel(logging.INFO if config.verbose else logging.WARNING)

    logger = logging.getLogger("debdoctor")
    for handler in _installed:
        logger.removeHandler(handler)
        handler.close()
    _installed.clear()

    logger.setLevel(logging.DEBUG)
    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    _installed.extend((file_handler, console_handler))

    logger.info("Log file: %s", log_path)
    logger.debug("is_root=%s verbose=%s non_interactive=%s max_auto_risk=%s",
                 config.is_root, config.verbose, config.non_interactive,
                 config.max_auto_risk.label)
    return log_path
