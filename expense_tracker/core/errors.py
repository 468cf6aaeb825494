"""
Service-layer exceptions.

Each class maps one failure kind to an HTTP status and a stable error code.
The application exception handler turns any ServiceError into the error
envelope, so nothing below the API layer needs to know about HTTP.
"""

from enum import Enum
from typing import Optional


class ServiceError(Exception):
    """Base class for failures surfaced to the caller."""

    status_code: int = 400
    error_code: str = "validation_error"

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class CredentialRejectedError(ServiceError):
    """Bad email/password pair or bad refresh token (401)."""
    status_code = 401
    error_code = "unauthorized"


class TokenRejectionReason(str, Enum):
    MISSING = "missing"
    MALFORMED_HEADER = "malformed_header"
    EXPIRED = "expired"
    TYPE_MISMATCH = "type_mismatch"
    INVALID_SIGNATURE = "invalid_signature"
    MALFORMED_PAYLOAD = "malformed_payload"


TOKEN_REJECTION_MESSAGES = {
    TokenRejectionReason.MISSING: "No authorization header found. Please provide a Bearer token.",
    TokenRejectionReason.MALFORMED_HEADER: 'Invalid authorization format. Expected: "Bearer <token>"',
    TokenRejectionReason.EXPIRED: "Token has expired. Please login again or refresh your token.",
    TokenRejectionReason.TYPE_MISMATCH: "Invalid token type",
    TokenRejectionReason.INVALID_SIGNATURE: "Invalid token. Please login again.",
    TokenRejectionReason.MALFORMED_PAYLOAD: "Malformed token payload. Please login again.",
}


class TokenRejectedError(ServiceError):
    """Bearer token missing or unusable (401); `reason` tells which."""
    status_code = 401
    error_code = "unauthorized"

    def __init__(self, reason: TokenRejectionReason, message: Optional[str] = None) -> None:
        super().__init__(message or TOKEN_REJECTION_MESSAGES[reason])
        self.reason = reason


class PermissionDeniedError(ServiceError):
    """Caller lacks the role for a route, or targeted something outside its scope (403)."""
    status_code = 403
    error_code = "forbidden"


class NotFoundError(ServiceError):
    """Resource does not exist, or is not visible to the caller (404)."""
    status_code = 404
    error_code = "not_found"


class ConflictError(ServiceError):
    """Duplicate email, duplicate or circular ownership, etc. (409)."""
    status_code = 409
    error_code = "conflict"


__all__ = [
    "ServiceError",
    "CredentialRejectedError",
    "TokenRejectionReason",
    "TokenRejectedError",
    "PermissionDeniedError",
    "NotFoundError",
    "ConflictError",
]
