"""Root logger configuration for the rbxconfigs CLI.

Log records go to stderr so stdout only carries command output. An
optional log file rotates once it reaches ``max_bytes``.
"""

import logging
import logging.handlers
import sys
from typing import List, Optional

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_LOG_FILE_MAX_BYTES = 1_000_000
DEFAULT_LOG_FILE_BACKUPS = 3

# Request-level chatter from the HTTP stack; the pipeline logs its own requests at DEBUG
QUIET_LOGGERS = ("httpx", "httpcore")


def resolve_log_level(level_name: Optional[str], verbose: bool = False) -> int:
    """Maps a configured level name to a logging level.

    ``verbose`` forces DEBUG. Unknown names fall back to INFO.
    """
    if verbose:
        return logging.DEBUG
    if not level_name:
        return DEFAULT_LOG_LEVEL
    level = logging.getLevelName(str(level_name).upper())
    return level if isinstance(level, int) else DEFAULT_LOG_LEVEL


def setup_logging(
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None,
    max_bytes: int = DEFAULT_LOG_FILE_MAX_BYTES,
    backup_count: int = DEFAULT_LOG_FILE_BACKUPS,
) -> None:
    """Replaces the root logger's handlers.

    Args:
        log_level: Minimum level for every handler.
        log_format: Format string shared by every handler.
        log_file: Optional path of a rotating log file.
        max_bytes: Size at which the log file rotates.
        backup_count: Rotated files to keep.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(log_format)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    file_error: Optional[OSError] = None
    if log_file:
        try:
            handlers.append(logging.handlers.RotatingFileHandler(
                log_file, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8'
            ))
        except OSError as e:
            file_error = e

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    if file_error is not None:
        logging.error(f"Failed to set up file logging to {log_file}: {file_error}")

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    logging.debug(f"Logging configured. Level={logging.getLevelName(log_level)}, file={log_file}")
