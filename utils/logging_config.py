"""
Centralized Logging Configuration

Colored console output, a size-rotated text log named by start date and a
JSON error log.

Usage:
    from utils.logging_config import AppLogger, get_logger

    # Once, at application startup
    AppLogger.setup(log_dir=Path("logs"), level="INFO")

    logger = get_logger(__name__)
    logger.info("Session restored")
"""

import json
import logging
import logging.handlers
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional

from colorama import Fore, Style, init as colorama_init


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name for console output"""

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Style.BRIGHT,
    }

    RESET = Style.RESET_ALL

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None):
        if fmt is None:
            fmt = '[%(levelname)s] %(name)s - %(message)s'
        if datefmt is None:
            datefmt = '%Y-%m-%d %H:%M:%S'
        super().__init__(fmt, datefmt)

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"

        result = super().format(record)

        # Other handlers share the record
        record.levelname = levelname

        return result


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured error logs"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        return json.dumps(log_data, ensure_ascii=False)


class AppLogger:
    """
    Application-wide logging setup.

    ``setup`` configures the root logger once; later calls are no-ops.
    """

    _initialized = False
    _loggers = {}

    @classmethod
    def setup(
        cls,
        log_dir: Path,
        level: str = "INFO",
        console_level: Optional[str] = None,
        file_level: Optional[str] = None,
        max_bytes: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5,
        enable_json: bool = True
    ) -> logging.Logger:
        """
        Setup application-wide logging configuration.

        Args:
            log_dir: Directory to store log files
            level: Default log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            console_level: Console-specific log level (overrides level)
            file_level: File-specific log level (overrides level)
            max_bytes: Maximum size of each log file before rotation
            backup_count: Number of backup log files to keep
            enable_json: Enable JSON-formatted error logs

        Returns:
            Root logger instance
        """
        if cls._initialized:
            return logging.getLogger()

        colorama_init(autoreset=True)

        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)  # Capture all, filter in handlers
        root_logger.handlers.clear()

        console_level = console_level or level
        file_level = file_level or level

        # === Console Handler (colored) ===
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, console_level.upper()))
        console_handler.setFormatter(ColoredFormatter(
            fmt='[%(asctime)s] [%(levelname)s] %(name)s - %(message)s',
            datefmt='%H:%M:%S'
        ))
        root_logger.addHandler(console_handler)

        # === File Handler (rotating) ===
        log_file = log_dir / f"tlc_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(getattr(logging, file_level.upper()))
        file_handler.setFormatter(logging.Formatter(
            fmt='[%(asctime)s] [%(levelname)-8s] [%(name)s:%(lineno)d] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        root_logger.addHandler(file_handler)

        # === JSON Error Handler (for ERROR and above) ===
        if enable_json:
            json_log_file = log_dir / f"errors_{datetime.now().strftime('%Y%m%d')}.json"
            json_handler = logging.handlers.RotatingFileHandler(
                json_log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding='utf-8'
            )
            json_handler.setLevel(logging.ERROR)
            json_handler.setFormatter(JSONFormatter())
            root_logger.addHandler(json_handler)

        # Chatty third-party loggers
        logging.getLogger("urllib3").setLevel(logging.WARNING)

        cls._initialized = True

        cls.get_logger("logging_config").info(
            f"Logging initialized - Level: {level}, Log dir: {log_dir}"
        )

        return root_logger

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if name not in cls._loggers:
            cls._loggers[name] = logging.getLogger(name)
        return cls._loggers[name]


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance (convenience wrapper).

    Example:
        >>> from utils.logging_config import get_logger
        >>> logger = get_logger(__name__)
    """
    return AppLogger.get_logger(name)
