"""
Cryptographic helpers — password hashing and one-way token hashing.

Passwords go through argon2id (argon2-cffi); the hash string embeds its own
salt and cost parameters. Reset tokens are high-entropy already, so a single
SHA-256 is enough to keep the stored value useless to anyone reading the
database.
"""

from __future__ import annotations

import hashlib

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_password_hasher = PasswordHasher()


def hash_password(plain_password: str) -> str:
    """Hash *plain_password* with argon2id.

    Returns:
        Argon2 hash string (includes algorithm parameters and salt).
    """
    return _password_hasher.hash(plain_password)


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    """Check *plain_password* against an argon2 *password_hash*.

    The comparison inside argon2 is constant-time. Any failure (mismatch,
    corrupt hash, missing hash) is reported as ``False``.
    """
    if not password_hash:
        return False
    try:
        return _password_hasher.verify(password_hash, plain_password)
    except (VerificationError, InvalidHashError):
        return False


def hash_token(token: str) -> str:
    """Return the hex-encoded SHA-256 digest of *token*.

    Used for password reset tokens so the raw value is never persisted.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

