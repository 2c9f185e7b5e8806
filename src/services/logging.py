"""Logging configuration for the utility billing API server.

Provides dual output (stdout + file) with a configurable level. The level comes
from the caller (AppConfig.log_level) or, failing that, the LOG_LEVEL env var.
Default: INFO.
"""

import logging
import os
import sys
from pathlib import Path

# Map string level names to logging constants
LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_log_level(level_name: str | None = None) -> int:
    """Resolve a level name (or LOG_LEVEL) to a logging constant.

    Returns:
        Logging level constant (default: INFO)
    """
    level_str = (level_name or os.getenv("LOG_LEVEL", "INFO")).upper()
    return LOG_LEVEL_MAP.get(level_str, logging.INFO)


def setup_server_logging(log_file: str = "logs/server.log", level_name: str | None = None) -> None:
    """
    Configure root logger for the API server.

    Args:
        log_file: Path to log file (default: logs/server.log)
        level_name: Level name such as "DEBUG"; falls back to LOG_LEVEL

    Behavior:
        - Replaces any existing root handlers with stdout + file handlers
        - ISO format timestamps for consistency
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    log_level = get_log_level(level_name)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(log_level)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # SQL echo stays off unless explicitly debugging
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if log_level == logging.DEBUG else logging.WARNING
    )


__all__ = ["LOG_LEVEL_MAP", "get_log_level", "setup_server_logging"]
