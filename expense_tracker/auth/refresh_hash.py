"""
Refresh-token hashing with Argon2id.

Refresh tokens are long, high-entropy signed strings rather than human
passwords, so the parameters favour verification throughput while staying
memory-hard. Only the digest is persisted; the token itself is never stored.
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from expense_tracker.core.config import (
    REFRESH_HASH_MEMORY_COST,
    REFRESH_HASH_PARALLELISM,
    REFRESH_HASH_TIME_COST,
)

ph = PasswordHasher(
    time_cost=REFRESH_HASH_TIME_COST,
    memory_cost=REFRESH_HASH_MEMORY_COST,
    parallelism=REFRESH_HASH_PARALLELISM,
    hash_len=32,
    salt_len=16,
)


def hash_refresh_token(token: str) -> str:
    """Return the Argon2id digest of a signed refresh token."""
    return ph.hash(token)


def verify_refresh_token(token: str, token_hash: str) -> bool:
    """
    Check a presented refresh token against the stored digest.

    Returns False on mismatch and on a malformed or unusable digest.
    """
    if not token_hash:
        return False
    try:
        return ph.verify(token_hash, token)
    except VerifyMismatchError:
        return False
    except (InvalidHashError, VerificationError):
        return False
