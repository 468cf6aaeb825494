"""
Authentication and Authorization module.

Provides:
- Password hashing (bcrypt) and refresh-token hashing (Argon2id)
- Access/refresh JWT issuance with type isolation
- OAuth2 identity federation
- Session lifecycle with refresh-token rotation
- Scope resolution for owner/employee access control
"""

from expense_tracker.auth.access import AccessScope, Principal, load_scope, scope_for
from expense_tracker.auth.federation import IdentityFederator, OAuth2Profile, OAuth2Provider
from expense_tracker.auth.jwt import TokenError, TokenIssuer, TokenPayload, TokenType, get_token_issuer
from expense_tracker.auth.password import hash_password, verify_password
from expense_tracker.auth.refresh_hash import hash_refresh_token, verify_refresh_token
from expense_tracker.auth.sessions import SessionManager

__all__ = [
    # Access control
    "AccessScope",
    "Principal",
    "load_scope",
    "scope_for",
    # Federation
    "IdentityFederator",
    "OAuth2Profile",
    "OAuth2Provider",
    # JWT
    "TokenError",
    "TokenIssuer",
    "TokenPayload",
    "TokenType",
    "get_token_issuer",
    # Hashing
    "hash_password",
    "verify_password",
    "hash_refresh_token",
    "verify_refresh_token",
    # Sessions
    "SessionManager",
]
