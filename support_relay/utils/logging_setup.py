"""
Logging Configuration

Configures console and optional file logging for the support relay and
a separate handler for the spam audit channel. Log output is passed
through a formatter that masks credentials which may appear in helpdesk
error bodies.
"""

import logging
import os
import re
from typing import Optional, Union

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class RedactingFormatter(logging.Formatter):
    """
    Log formatter masking bearer tokens and credential fields.
    """

    PATTERNS = [
        (re.compile(r"(Bearer\s+)[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE), r"\1***"),
        (re.compile(r"(Basic\s+)[A-Za-z0-9+/]+=*", re.IGNORECASE), r"\1***"),
        (
            re.compile(r"""(["']?(?:access_token|client_secret|password)["']?\s*[:=]\s*["']?)[^"'&,\s}]+""",
                       re.IGNORECASE),
            r"\1***",
        ),
    ]

    def format(self, record: logging.LogRecord) -> str:
        formatted_message = super().format(record)
        for pattern, replacement in self.PATTERNS:
            formatted_message = pattern.sub(replacement, formatted_message)
        return formatted_message


def _level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


def _file_handler(log_file: str, formatter: logging.Formatter) -> Optional[logging.Handler]:
    try:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding='utf-8')
        handler.setFormatter(formatter)
        return handler
    except OSError as e:
        logging.getLogger(__name__).warning(f"Failed to create log file handler: {str(e)}")
        return None


def configure_logging(level: Union[str, int] = "INFO",
                      log_file: Optional[str] = None,
                      spam_channel: Optional[str] = None,
                      spam_log_file: Optional[str] = None,
                      format_str: str = DEFAULT_FORMAT) -> logging.Logger:
    """
    Configure root logging for the support relay.

    Args:
        level: Logging level name or number
        log_file: Optional log file path
        spam_channel: Logger name receiving spam audit records
        spam_log_file: Optional dedicated file for the spam channel
        format_str: Format string for log records

    Returns:
        logging.Logger: The configured root logger
    """
    root = logging.getLogger()
    root.setLevel(_level(level))

    # Clear any existing handlers to avoid duplication
    if root.hasHandlers():
        root.handlers.clear()

    formatter = RedactingFormatter(format_str)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if log_file:
        handler = _file_handler(log_file, formatter)
        if handler:
            root.addHandler(handler)

    if spam_channel and spam_log_file:
        handler = _file_handler(spam_log_file, formatter)
        if handler:
            spam_logger = logging.getLogger(spam_channel)
            spam_logger.handlers.clear()
            spam_logger.addHandler(handler)

    # aiohttp access noise
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    return root
