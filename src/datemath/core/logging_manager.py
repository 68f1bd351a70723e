"""Centralized Logging Management for datemath

Library modules only ask for named loggers; handlers are installed when an
application (such as the command line tool) calls ``configure``.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Dict, Optional, Union


class ColoredFormatter(logging.Formatter):
    """Custom formatter that adds colors to console output."""

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'        # Reset
    }

    def format(self, record):
        """Format log record with colors for console output."""
        log_message = super().format(record)
        return f"{self.COLORS.get(record.levelname, '')}{log_message}{self.COLORS['RESET']}"


class LoggingManager:
    """Centralized logging configuration and management."""

    ROOT_LOGGER_NAME = "datemath"

    _instance: Optional['LoggingManager'] = None
    _initialized: bool = False

    def __new__(cls) -> 'LoggingManager':
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize logging manager (only once)."""
        if self._initialized:
            return

        self.loggers: Dict[str, logging.Logger] = {}
        self.handlers: Dict[str, logging.Handler] = {}

        # Silent unless the host application configures logging
        logging.getLogger(self.ROOT_LOGGER_NAME).addHandler(logging.NullHandler())
        self._initialized = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Class method to get logger instance.

        Args:
            name: Logger name (typically __name__ of the module)

        Returns:
            Logger instance
        """
        manager = cls()
        return manager._get_logger_instance(name)

    def _get_logger_instance(self, name: str) -> logging.Logger:
        if name in self.loggers:
            return self.loggers[name]

        logger = logging.getLogger(name)
        self.loggers[name] = logger
        return logger

    def configure(self, level: str = "WARNING", log_file: Optional[Union[str, Path]] = None,
                  colored: bool = True):
        """Install console and optional file handlers on the package logger.

        Calling this again replaces the handlers installed by a previous call.

        Args:
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_file: Optional path of a rotating log file
            colored: Whether console output is colorized
        """
        numeric_level = self._resolve_level(level)
        package_logger = logging.getLogger(self.ROOT_LOGGER_NAME)
        package_logger.setLevel(logging.DEBUG)

        for handler in self.handlers.values():
            package_logger.removeHandler(handler)
            handler.close()
        self.handlers.clear()

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        formatter_class = ColoredFormatter if colored else logging.Formatter
        console_handler.setFormatter(formatter_class(
            '%(asctime)s | %(name)s | %(levelname)s | %(message)s',
            datefmt='%H:%M:%S'
        ))
        package_logger.addHandler(console_handler)
        self.handlers['console'] = console_handler

        if log_file:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_path,
                maxBytes=5 * 1024 * 1024,  # 5MB
                backupCount=3
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            package_logger.addHandler(file_handler)
            self.handlers['file'] = file_handler

    def set_log_level(self, level: str):
        """Set the logging level of the console handler.

        Args:
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        """
        numeric_level = self._resolve_level(level)
        if 'console' in self.handlers:
            self.handlers['console'].setLevel(numeric_level)

    @staticmethod
    def _resolve_level(level: str) -> int:
        numeric_level = getattr(logging, level.upper(), None)
        if not isinstance(numeric_level, int):
            raise ValueError(f'Invalid log level: {level}')
        return numeric_level
