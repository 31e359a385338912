import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

APP_NAME = "scanpilot"
LOG_DIR = Path.home() / f".{APP_NAME}" / "logs"
LOG_FILE = LOG_DIR / "debug.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s"
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 3

# One rotating file for the whole process, attached to the base logger only
_file_handler: Optional[RotatingFileHandler] = None
_configured = False


def _resolve_level(level_name: Union[str, int, None]) -> int:
    """Convert a level name (any case) to its logging constant; unknown names mean INFO."""
    if isinstance(level_name, int):
        return level_name
    level = logging.getLevelName(str(level_name or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def _attach_file_handler(base_logger: logging.Logger) -> Optional[RotatingFileHandler]:
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(LOG_FILE, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8")
    except OSError as e:
        print(f"Failed to setup file logging in {LOG_DIR}: {e}")
        return None
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    base_logger.addHandler(handler)
    return handler


def setup_logger(name: str = APP_NAME, log_level: Union[str, int, None] = None) -> logging.Logger:
    """
    Return the logger for `name`, nested under the shared `scanpilot` logger.

    Everything goes to ~/.scanpilot/logs/debug.log and nothing to the terminal,
    which belongs to the dashboard. Module loggers carry no level of their own:
    the base logger's level applies, so the CLI can raise or lower it after
    config.yaml is loaded and loggers created at import time follow. A call
    without `log_level` only sets the level the first time
    (SCANPILOT_LOG_LEVEL, default INFO).
    """
    global _file_handler, _configured

    base_logger = logging.getLogger(APP_NAME)
    base_logger.propagate = False

    if log_level is not None or not _configured:
        _configured = True
        level = _resolve_level(log_level or os.getenv("SCANPILOT_LOG_LEVEL"))
        base_logger.setLevel(level)
        if _file_handler is None:
            _file_handler = _attach_file_handler(base_logger)
        if _file_handler is not None:
            _file_handler.setLevel(level)

    if name != APP_NAME and not name.startswith(f"{APP_NAME}."):
        name = f"{APP_NAME}.{name}"
    return logging.getLogger(name)
