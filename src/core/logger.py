"""Logging setup for the oeee.cafe client with sensitive data masking."""

import logging
import logging.handlers
import re
from pathlib import Path
from typing import Optional

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOG_DIR = PROJECT_ROOT / "logs"
LOGGER_NAME = "oeeecafe"


class SensitiveDataFilter(logging.Filter):
    """Filter to mask session cookies, passwords and email addresses."""

    COOKIE_PATTERN = re.compile(r'(?i)\b(cookie|set-cookie|session|sid)(["\']?\s*[=:]\s*["\']?)[^\s;,"\']+')
    PASSWORD_PATTERN = re.compile(r'(?i)("?password"?\s*[=:]\s*"?)[^\s,"}]+')
    EMAIL_PATTERN = re.compile(r'[\w.+-]+@[\w-]+\.[\w.-]+')

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.mask(record.msg)
        return True

    def mask(self, text: str) -> str:
        text = self.COOKIE_PATTERN.sub(r'\1\2[MASKED]', text)
        text = self.PASSWORD_PATTERN.sub(r'\1[MASKED]', text)
        return self.EMAIL_PATTERN.sub('[EMAIL_MASKED]', text)


def setup_logger(log_level: str = "INFO", mask_logs: bool = True,
                 log_dir: Optional[Path] = None) -> logging.Logger:
    """Set up the application logger. Call once at startup.

    Creates the log directory if needed. Adds console + rotating file handlers.
    If already set up (has handlers), returns existing logger.
    """
    logger = logging.getLogger(LOGGER_NAME)

    if logger.handlers:
        return logger

    log_dir = log_dir or LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.setLevel(log_level)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    file_handler = logging.handlers.RotatingFileHandler(
        log_dir / "oeeecafe.log",
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if mask_logs:
        sensitive_filter = SensitiveDataFilter()
        console_handler.addFilter(sensitive_filter)
        file_handler.addFilter(sensitive_filter)

    return logger


def get_logger() -> logging.Logger:
    """Get the application logger."""
    return logging.getLogger(LOGGER_NAME)
