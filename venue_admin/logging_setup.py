"""Root logger wiring: stdout plus a size-rotated log file."""

import logging
import logging.handlers
import os
import sys
from typing import Optional

from venue_admin.config import get_config_value

DEFAULT_LOG_FILE = "venue_admin.log"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 5
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s.%(funcName)s:%(lineno)d - %(message)s"

# Third-party loggers held at INFO or above even in debug mode.
QUIET_LOGGERS = ("discord", "urllib3")


def _resolve_log_level() -> int:
    if get_config_value("bot_settings.debug_mode", False):
        return logging.DEBUG
    level_name = str(get_config_value("bot_settings.log_level", "INFO")).upper()
    return getattr(logging, level_name, logging.INFO)


def resolve_log_path() -> str:
    """Configured log file path, with its directory created; the bare file name if that fails."""
    configured = get_config_value("bot_settings.log_file_name", DEFAULT_LOG_FILE)
    path = configured if isinstance(configured, str) and configured.strip() else DEFAULT_LOG_FILE
    directory = os.path.dirname(path)
    if directory:
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as e:
            print(f"Log directory {directory} is unusable ({e}); writing {os.path.basename(path)} here.", file=sys.stderr)
            return os.path.basename(path)
    return path


def _file_handler(path: str, formatter: logging.Formatter) -> Optional[logging.Handler]:
    try:
        handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding="utf-8"
        )
    except OSError as e:
        print(f"File logging disabled, cannot open {path}: {e}", file=sys.stderr)
        return None
    handler.setFormatter(formatter)
    return handler


def setup_logging():
    """Replace the root logger's handlers; safe to call again after a config reload."""
    log_level = _resolve_log_level()
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    log_path = resolve_log_path()
    file_handler = _file_handler(log_path, formatter)
    if file_handler is not None:
        root_logger.addHandler(file_handler)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.INFO))

    logging.info(
        f"Logging at {logging.getLevelName(log_level)}, file: {log_path if file_handler else 'disabled'}"
    )
