"""
Logging setup for the backend: one colored stdout handler on the root logger.
"""

import logging
import sys


class ColoredFormatter(logging.Formatter):
    """Colored formatter for terminal output."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'
    BOLD = '\033[1m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, '')
        levelname = f"{color}{self.BOLD}[{record.levelname}]{self.RESET}"
        timestamp = self.formatTime(record, '%H:%M:%S')
        message = f"{timestamp} {levelname} {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def setup_logging(level: str = "INFO"):
    """
    Setup logging configuration for the backend.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter())
    root_logger.addHandler(console_handler)

    # Werkzeug logs every request line; we log our own REQUEST lines instead
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    logging.getLogger('simple_websocket').setLevel(logging.WARNING)

    return root_logger
