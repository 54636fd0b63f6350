"""
sharedmeta - Utility functions.

Provides validation, formatting and logging setup helpers.
"""

import logging
import re
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional

from .constants import (
    ADDRESS_SIZE,
    APP_NAME,
    LOG_BACKUP_COUNT,
    LOG_DATE_FORMAT,
    LOG_FORMAT,
    LOG_MAX_BYTES,
)

logger = logging.getLogger(__name__)

_ADDRESS_PATTERN = re.compile(rf"^[a-f0-9]{{{ADDRESS_SIZE * 2}}}$")


def validate_address(address: str) -> bool:
    """
    Validate an identity address format.

    Args:
        address: Address string

    Returns:
        True if valid address format, False otherwise
    """
    # 40 lowercase hexadecimal characters
    return isinstance(address, str) and bool(_ADDRESS_PATTERN.match(address))


def validate_invitation_id(invite_id: str) -> bool:
    """
    Validate an invitation id (a UUID string).

    Args:
        invite_id: Invitation id

    Returns:
        True if the id parses as a UUID, False otherwise
    """
    try:
        uuid.UUID(str(invite_id))
        return True
    except ValueError:
        return False


def truncate_string(s: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate a string to a maximum length.

    Args:
        s: String to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated string
    """
    if len(s) <= max_length:
        return s
    return s[: max_length - len(suffix)] + suffix


def format_address(address: str) -> str:
    """
    Format an address for display with spaces every 4 characters.

    Args:
        address: Hex address string

    Returns:
        Formatted address
    """
    return " ".join(address[i : i + 4] for i in range(0, len(address), 4))


def format_timestamp_millis(millis: Optional[int], format_str: str = "%Y-%m-%d %H:%M:%S") -> str:
    """
    Format a relay timestamp (Unix milliseconds, UTC) for display.

    Args:
        millis: Milliseconds since the epoch
        format_str: strftime format string

    Returns:
        Formatted timestamp, or an empty string if missing or invalid
    """
    if millis is None:
        return ""
    try:
        return datetime.fromtimestamp(int(millis) / 1000, tz=timezone.utc).strftime(format_str)
    except (ValueError, TypeError, OverflowError, OSError) as e:
        logger.debug(f"Failed to format timestamp '{millis}': {e}")
        return ""


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Log level name
        log_file: Optional path for a rotating log file

    Returns:
        The configured package logger
    """
    package_logger = logging.getLogger(APP_NAME)
    package_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    package_logger.addHandler(console)

    if log_file:
        file_handler = RotatingFileHandler(
            log_file, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    return package_logger
