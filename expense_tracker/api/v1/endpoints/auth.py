"""
Authentication endpoints.

Provides:
- Signup (email/password → new `user` account)
- Login (email/password → JWT token pair)
- Token refresh (bearer refresh token → rotated pair)
- Logout
- OAuth2 login via Google, GitHub and Facebook
"""

import json
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse

from expense_tracker.auth.access import Principal
from expense_tracker.auth.dependencies import (
    get_account_store,
    get_client_ip,
    get_current_principal,
    get_oauth,
    get_session_manager,
)
from expense_tracker.auth.guard import parse_bearer
from expense_tracker.auth.oauth import OAuthClient, decode_state
from expense_tracker.auth.sessions import SessionManager
from expense_tracker.core.errors import CredentialRejectedError
from expense_tracker.core.logging import get_logger
from expense_tracker.repositories.accounts import AccountStore
from expense_tracker.schemas.account import AccountResponse
from expense_tracker.schemas.auth import AuthResponse, LoginRequest, SignupRequest
from expense_tracker.schemas.common import MessageResponse, SuccessResponse
from expense_tracker.services.accounts import AccountService

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/signup",
    name="auth:signup",
    status_code=201,
    response_model=SuccessResponse[AccountResponse],
)
async def signup(body: SignupRequest, store: AccountStore = Depends(get_account_store)):
    """Register a local account. New accounts always get the `user` role."""
    account = await AccountService(store).signup(
        body.email, body.password, body.first_name, body.last_name
    )
    return SuccessResponse(
        message="User registered successfully",
        data=AccountResponse.model_validate(account),
    )


@router.post("/login", name="auth:login", response_model=SuccessResponse[AuthResponse])
async def login(
    request: Request,
    body: LoginRequest,
    sessions: SessionManager = Depends(get_session_manager),
):
    """
    Authenticate with email and password.

    Unknown email and wrong password are indistinguishable to the caller.
    """
    logger.info("login_attempt", ip_address=get_client_ip(request))
    result = await sessions.login_with_password(body.email, body.password)
    return SuccessResponse(message=result.message, data=result)


@router.post("/refresh", name="auth:refresh", response_model=SuccessResponse[AuthResponse])
async def refresh(request: Request, sessions: SessionManager = Depends(get_session_manager)):
    """
    Rotate the session: present the refresh token as the bearer token.

    The presented refresh token stops working once this returns.
    """
    token = parse_bearer(request.headers.get("Authorization"))
    result = await sessions.refresh_with_token(token)
    return SuccessResponse(message=result.message, data=result)


@router.post("/logout", name="auth:logout", response_model=MessageResponse)
async def logout(
    principal: Principal = Depends(get_current_principal),
    sessions: SessionManager = Depends(get_session_manager),
):
    await sessions.logout(principal.id)
    return MessageResponse(message="Logged out successfully")


@router.get("/{provider}", name="auth:oauth_start")
async def oauth_start(
    provider: str,
    redirect_uri: Optional[str] = Query(default=None),
    oauth: OAuthClient = Depends(get_oauth),
):
    """Send the browser to the provider's consent page."""
    return RedirectResponse(oauth.authorization_url(provider, redirect_uri), status_code=307)


@router.get(
    "/{provider}/callback",
    name="auth:oauth_callback",
    response_model=SuccessResponse[AuthResponse],
)
async def oauth_callback(
    provider: str,
    code: Optional[str] = Query(default=None),
    state: Optional[str] = Query(default=None),
    error: Optional[str] = Query(default=None),
    oauth: OAuthClient = Depends(get_oauth),
    sessions: SessionManager = Depends(get_session_manager),
):
    """
    Finish an OAuth login.

    With a redirect target in `state` the response redirects to
    `<target>?access_token=...&refresh_token=...&user=<json>`, the target
    echoed verbatim; otherwise the tokens and identity are returned as JSON.
    """
    if error or not code:
        logger.info("oauth_callback_rejected", provider=provider, error=error)
        raise CredentialRejectedError("OAuth authentication failed")

    profile = await oauth.exchange_code(provider, code)
    result = await sessions.login_with_oauth(profile)

    redirect_target = decode_state(state)
    if redirect_target:
        params = urlencode({
            "access_token": result.access_token,
            "refresh_token": result.refresh_token,
            "user": json.dumps(result.identity()),
        })
        # The target is opaque: never inspected, only suffixed
        return RedirectResponse(f"{redirect_target}?{params}", status_code=302)

    return SuccessResponse(message=result.message, data=result)
