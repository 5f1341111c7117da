"""
Logging setup: colored console output plus a rotating UTF-8 file log.

Only the parent process is configured. Tasks running in loky worker processes
report failures through their result rows, not through these handlers.
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import colorama
from colorama import Fore, Style

colorama.just_fix_windows_console()

CONSOLE_FORMAT = '[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s'
FILE_FORMAT = '[%(asctime)s] [%(levelname)s] [%(name)s] [%(funcName)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """Colors the whole console line by level."""
    LEVEL_COLORS = {
        logging.DEBUG: Style.DIM,
        logging.INFO: Fore.CYAN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record):
        text = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno)
        return f"{color}{text}{Style.RESET_ALL}" if color else text


class LoggingConfigurator:
    """Applies the `logging` config section to the root logger."""

    def __init__(self, config: dict):
        self.settings = config.get('logging', {})
        self.log_level = getattr(logging, self.settings.get('level', 'INFO').upper())
        self.log_dir = Path(self.settings.get('log_dir', 'logs'))
        self.max_bytes = self.settings.get('max_bytes', 10 * 1024 * 1024)
        self.backup_count = self.settings.get('backup_count', 5)

    def setup(self) -> None:
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        root.setLevel(self.log_level)

        if self.settings.get('log_to_console', True):
            root.addHandler(self._console_handler())
        if self.settings.get('log_to_file', True):
            root.addHandler(self._file_handler("pipeline.log"))

        # sklearn convergence and metric warnings end up in the log file too
        logging.captureWarnings(True)

    def _console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(self.log_level)
        formatter_cls = ColoredFormatter if self.settings.get('colorful_console', True) else logging.Formatter
        handler.setFormatter(formatter_cls(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
        return handler

    def _file_handler(self, filename: str) -> logging.Handler:
        self.log_dir.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            self.log_dir / filename,
            maxBytes=self.max_bytes,
            backupCount=self.backup_count,
            encoding='utf-8',
        )
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        return handler

    def get_logger(self, name: str) -> logging.Logger:
        return logging.getLogger(name)
