"""
Password hashing with bcrypt.

bcrypt is deliberately slow and embeds its per-record salt in the digest,
so no separate salt column is needed. Its input is capped at 72 bytes; the
same truncation is applied on both hash and verify.
"""

import secrets

import bcrypt

from expense_tracker.core.config import BCRYPT_ROUNDS

BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: The plaintext password to hash

    Returns:
        The bcrypt digest (includes cost factor and salt)
    """
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(_encode(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against its digest.

    A malformed digest is a verification failure, never an exception.
    """
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except ValueError:
        return False


def generate_unusable_password() -> str:
    """
    Random secret for accounts that authenticate elsewhere (OAuth).

    It is hashed and stored so the password column stays non-null, and is
    never shown to anyone.
    """
    return secrets.token_hex(32)
