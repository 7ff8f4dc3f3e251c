"""Logging utility for Critical CSS."""

import logging
from typing import Optional, Union

import colorama
from colorama import Fore, Style
from typing_extensions import Protocol

from .config import LOGGER_NAME, LOG_LEVELS, DEFAULT_LOG_LEVEL
from .error import ConfigurationError

ProcessId = Optional[Union[str, int]]

def setup_logging(log_level: int = logging.INFO) -> None:
    """Set up logging configuration."""
    colorama.init()

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[logging.StreamHandler()]
    )

def get_logger(name):
    """Get a logger instance for the specified module.

    Args:
        name: Name of the module

    Returns:
        Logger instance
    """
    return logging.getLogger(name)

class Logger(Protocol):
    """Leveled logger accepting an optional process identifier."""

    def debug(self, msg: str, process_id: ProcessId = None) -> None: ...

    def info(self, msg: str, process_id: ProcessId = None) -> None: ...

    def warn(self, msg: str, process_id: ProcessId = None) -> None: ...

    def error(self, msg: str, process_id: ProcessId = None) -> None: ...

def with_process_id(msg: str, process_id: ProcessId = None) -> str:
    """Prefix a message with its process id, if any."""
    if process_id is None or process_id == '':
        return msg
    return f"[{process_id}] {msg}"

class DefaultLogger:
    """Colored logger writing through the standard logging module."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger(LOGGER_NAME)

    def debug(self, msg: str, process_id: ProcessId = None) -> None:
        self.logger.debug(with_process_id(msg, process_id))

    def info(self, msg: str, process_id: ProcessId = None) -> None:
        self.logger.info(
            f"{Style.BRIGHT}{Fore.BLUE}{with_process_id(msg, process_id)}{Style.RESET_ALL}"
        )

    def warn(self, msg: str, process_id: ProcessId = None) -> None:
        self.logger.warning(
            f"{Fore.YELLOW}{with_process_id(msg, process_id)}{Style.RESET_ALL}"
        )

    def error(self, msg: str, process_id: ProcessId = None) -> None:
        self.logger.error(
            f"{Style.BRIGHT}{Fore.RED}{with_process_id(msg, process_id)}{Style.RESET_ALL}"
        )

def _silent(msg: str, process_id: ProcessId = None) -> None:
    return None

def set_verbosity(logger: Logger, log_level: str = DEFAULT_LOG_LEVEL) -> Logger:
    """Silence every level of ``logger`` below ``log_level``.

    Lower levels are replaced by no-ops on the logger object itself, so the
    level check happens once here instead of on every call.

    Args:
        logger: Logger to configure
        log_level: One of ``debug``, ``info``, ``warn``, ``error``, ``silent``

    Returns:
        The same logger

    Raises:
        ConfigurationError: If the level is unknown
    """
    if log_level not in LOG_LEVELS:
        raise ConfigurationError(
            f"Invalid log level {log_level!r}, expected one of {', '.join(LOG_LEVELS)}"
        )

    threshold = LOG_LEVELS.index(log_level)
    for index, level in enumerate(LOG_LEVELS):
        if level == 'silent':
            continue
        if index < threshold:
            setattr(logger, level, _silent)

    return logger

# Exported functions
__all__ = [
    'ProcessId',
    'Logger',
    'DefaultLogger',
    'setup_logging',
    'get_logger',
    'with_process_id',
    'set_verbosity',
]
