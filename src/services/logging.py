"""Logging setup shared by the billing API server and the generation CLI.

Output goes to stdout and to LOG_FILE. LOG_LEVEL selects the level
(default INFO); DEBUG adds one line per assembled unit bill.
"""

import logging
import os
import sys
from pathlib import Path

LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite")

_LEVELS = {
    name: getattr(logging, name) for name in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
}


def get_log_level() -> int:
    """Level named by LOG_LEVEL; unknown names fall back to INFO."""
    return _LEVELS.get(os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO)


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_server_logging(log_file: str = "logs/server.log") -> None:
    """Route the root logger to stdout and ``log_file``.

    Calling it again replaces the handlers instead of stacking them, so the
    CLI and the API can both call it at start-up.

    Args:
        log_file: Log file path; missing parent directories are created
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    level = get_log_level()

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
        existing.close()

    root_logger.setLevel(level)
    root_logger.addHandler(_handler(logging.StreamHandler(sys.stdout), level))
    root_logger.addHandler(_handler(logging.FileHandler(log_path), level))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["DATE_FORMAT", "LOG_FORMAT", "get_log_level", "setup_server_logging"]
