"""
Logger factory and helpers for the auth service.

Provides:
- get_logger(): Get a configured logger instance
- log_with_context(): Bind context that sticks to every subsequent event
- hash_ip(): Hash IP addresses for privacy
- mask_email(): Shorten an address to its first letter and domain
"""

from typing import Optional

import structlog
from structlog.stdlib import BoundLogger

from shared.logging_config import (
    configure_structlog,
    hash_ip as _hash_ip,
    setup_logging,
)


def get_logger(name: str) -> BoundLogger:
    """
    Get a configured logger instance.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("login_success", account_id="123")
    """
    return structlog.get_logger(name)


def hash_ip(ip_address: Optional[str]) -> Optional[str]:
    """Hash an IP address in production; passes None through."""
    if ip_address is None:
        return None
    return _hash_ip(ip_address)


def mask_email(email: str) -> str:
    """Mask an address for logs: ``ada@example.com`` -> ``a***@example.com``."""
    local, _, domain = (email or "").partition("@")
    return f"{local[:1]}***@{domain}" if domain else "***"


def log_with_context(logger: BoundLogger, **context) -> BoundLogger:
    """Bind context to a logger for all subsequent log calls."""
    return logger.bind(**context)


__all__ = [
    "get_logger",
    "hash_ip",
    "log_with_context",
    "mask_email",
    "configure_structlog",
    "setup_logging",
]
