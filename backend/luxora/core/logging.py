import logging
import os
from typing import Optional

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s"

_QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite")


def _level_from_env(default: int = logging.INFO) -> int:
    name = os.getenv("LOG_LEVEL", "").strip().upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


def configure_logging(level: Optional[int] = None) -> logging.Logger:
    """Set up root logging once and return the ``luxora`` logger."""
    logging.basicConfig(level=level or _level_from_env(), format=_LOG_FORMAT)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return logging.getLogger("luxora")


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """``luxora.<name>`` logger; configures logging on first use."""
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(f"luxora.{name}" if name else "luxora")
