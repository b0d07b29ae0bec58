import logging
from typing import List, Optional

from exceptions import ConfigError

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_log_level(level: str) -> int:
    try:
        return LOG_LEVELS[level.strip().lower()]
    except KeyError:
        raise ConfigError(f"invalid log level: {level}")


def setup_logging(level: str = "info", log_file: Optional[str] = None) -> None:
    """Configure application logging."""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=parse_log_level(level),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )
