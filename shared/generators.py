"""
Random code and token generators — pure, side-effect-free functions.

All generators draw from the ``secrets`` module.
"""

from __future__ import annotations

import secrets

VERIFICATION_CODE_MIN = 100000
VERIFICATION_CODE_MAX = 999999


def generate_verification_code() -> str:
    """Generate a uniformly random 6-digit code in 100000–999999.

    The leading digit is never zero, so the code always has six characters
    without padding.
    """
    span = VERIFICATION_CODE_MAX - VERIFICATION_CODE_MIN + 1
    return str(VERIFICATION_CODE_MIN + secrets.randbelow(span))


def generate_reset_token(num_bytes: int = 32) -> str:
    """Generate a hex-encoded random token (256 bits by default).

    Hex keeps the token safe to embed in a URL path segment.
    """
    return secrets.token_hex(num_bytes)


def generate_file_stem(num_bytes: int = 16) -> str:
    """Random, unguessable stem for stored upload file names."""
    return secrets.token_hex(num_bytes)
