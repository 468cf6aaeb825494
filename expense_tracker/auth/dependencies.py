"""
FastAPI dependencies for authentication and authorization.

Provides:
- get_current_principal: the caller resolved by the route guard
- get_account_store / get_session_manager: request-scoped services
- get_issuer: the token issuer shared by the route guard and endpoints
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from expense_tracker.auth.access import AccessScope, Principal, load_scope
from expense_tracker.auth.jwt import TokenIssuer, get_token_issuer
from expense_tracker.auth.oauth import OAuthClient, get_oauth_client
from expense_tracker.auth.sessions import SessionManager
from expense_tracker.core.database import get_db
from expense_tracker.core.errors import TokenRejectedError, TokenRejectionReason
from expense_tracker.repositories.accounts import AccountStore


def get_issuer(request: Request) -> TokenIssuer:
    """The issuer installed on the application, or the configured default."""
    issuer = getattr(request.app.state, "token_issuer", None)
    return issuer or get_token_issuer()


def get_oauth(request: Request) -> OAuthClient:
    client = getattr(request.app.state, "oauth_client", None)
    return client or get_oauth_client()


def get_current_principal(request: Request) -> Principal:
    """
    Caller identity placed on the request by enforce_route_policy.

    Raises:
        TokenRejectedError: if the route was reached without authentication
    """
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise TokenRejectedError(TokenRejectionReason.MISSING)
    return principal


def get_account_store(db: AsyncSession = Depends(get_db)) -> AccountStore:
    return AccountStore(db)


def get_session_manager(
    store: AccountStore = Depends(get_account_store),
    issuer: TokenIssuer = Depends(get_issuer),
) -> SessionManager:
    return SessionManager(store, issuer=issuer)


async def get_access_scope(
    principal: Principal = Depends(get_current_principal),
    store: AccountStore = Depends(get_account_store),
) -> AccessScope:
    """Caller scope, computed once per request."""
    return await load_scope(store, principal)


def get_client_ip(request: Request) -> str:
    """Client IP, honouring X-Forwarded-For from a reverse proxy."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"
