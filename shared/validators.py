"""
Input validators — framework-agnostic, pure functions.

Used by the request DTOs so rules live in one place and can be unit tested
without FastAPI.
"""

from __future__ import annotations

import re

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128
NAME_MAX_LENGTH = 50


def normalize_email(email: str) -> str:
    """Canonical form used for storage, lookup and comparison.

    Emails are trimmed and lower-cased so ``Ann@X.com`` and ``ann@x.com``
    address the same account.
    """
    return (email or "").strip().lower()


def validate_email(email: str) -> bool:
    """Return True if *email* looks like ``local@domain.tld``."""
    return bool(email) and len(email) <= 254 and bool(_EMAIL_RE.match(email))


def validate_password(password: str) -> tuple[bool, list[str]]:
    """
    Validate a password and report which requirements it misses.

    Returns:
        (is_valid, missing_requirements)
    """
    if not password:
        return False, ["Password is required"]

    missing = []

    if len(password) < PASSWORD_MIN_LENGTH:
        missing.append(f"At least {PASSWORD_MIN_LENGTH} characters")

    if len(password) > PASSWORD_MAX_LENGTH:
        missing.append(f"Maximum {PASSWORD_MAX_LENGTH} characters")

    if not re.search(r"[a-z]", password):
        missing.append("At least one lowercase letter")

    if not re.search(r"[A-Z]", password):
        missing.append("At least one uppercase letter")

    if not re.search(r"[0-9]", password):
        missing.append("At least one number")

    return len(missing) == 0, missing


def validate_name(name: str) -> bool:
    """A name must be non-empty after trimming and at most 50 characters."""
    stripped = (name or "").strip()
    return 0 < len(stripped) <= NAME_MAX_LENGTH
