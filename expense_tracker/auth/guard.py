"""
Route authorization.

`enforce_route_policy` is installed as an application-wide dependency, so it
runs once routing has picked the endpoint. It looks up the RoutePolicy of the
matched route and, unless the route is public, requires a valid access token
whose role the policy allows. The caller is then available as
`request.state.principal`.
"""

from typing import Optional

from fastapi import Depends, Request

from expense_tracker.auth.access import Principal
from expense_tracker.auth.dependencies import get_issuer
from expense_tracker.auth.jwt import TokenError, TokenIssuer, TokenType
from expense_tracker.auth.policies import RoutePolicy, policy_for
from expense_tracker.core.errors import PermissionDeniedError, TokenRejectedError, TokenRejectionReason
from expense_tracker.core.logging import get_logger

logger = get_logger(__name__)


def parse_bearer(header: Optional[str]) -> str:
    """
    Extract the token from an `Authorization: Bearer <token>` header.

    Raises:
        TokenRejectedError: missing header, or anything but the Bearer form
    """
    if not header:
        raise TokenRejectedError(TokenRejectionReason.MISSING)
    scheme, _, token = header.partition(" ")
    token = token.strip()
    if scheme != "Bearer" or not token:
        raise TokenRejectedError(TokenRejectionReason.MALFORMED_HEADER)
    return token


def authenticate_access_token(issuer: TokenIssuer, token: str) -> Principal:
    try:
        payload = issuer.verify(token, TokenType.ACCESS)
    except TokenError as e:
        raise TokenRejectedError(e.reason)
    return Principal(
        id=payload.sub,
        email=payload.email,
        role=payload.role,
        first_name=payload.first_name or "",
        last_name=payload.last_name or "",
    )


def matched_route_name(request: Request) -> Optional[str]:
    """Name of the route the router dispatched to (set on the scope by APIRoute)."""
    route = request.scope.get("route")
    return getattr(route, "name", None)


def authorize(
    request: Request,
    issuer: TokenIssuer,
    policy: RoutePolicy,
    route_name: Optional[str],
) -> Optional[Principal]:
    """
    Apply `policy` to the request.

    Returns the authenticated caller, or None for a public route.

    Raises:
        TokenRejectedError: missing, malformed, expired or invalid access token
        PermissionDeniedError: the caller's role is not allowed on the route
    """
    if policy.public:
        return None

    try:
        token = parse_bearer(request.headers.get("Authorization"))
        principal = authenticate_access_token(issuer, token)
    except TokenRejectedError as e:
        logger.info("token_rejected", route=route_name, reason=e.reason.value)
        raise

    if not policy.allows(principal.role):
        logger.info("role_rejected", route=route_name, role=principal.role.value)
        raise PermissionDeniedError("Insufficient role")

    return principal


async def enforce_route_policy(request: Request, issuer: TokenIssuer = Depends(get_issuer)) -> None:
    # Unnamed or unlisted routes fall back to the authenticated default
    route_name = matched_route_name(request)
    principal = authorize(request, issuer, policy_for(route_name or ""), route_name)
    if principal is not None:
        request.state.principal = principal
