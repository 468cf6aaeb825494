"""
JWT issuance and verification.

Two independent signing contexts:
- access tokens: short-lived, carry the caller's public identity
- refresh tokens: longer-lived, carry only the subject and a nonce

Every token carries a mandatory `type` discriminator that is checked on
verification, so a leaked access token can never be replayed as a refresh
token or the other way round.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

from jose import jwt, JWTError
from jose.exceptions import JWTClaimsError
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from expense_tracker.core import config
from expense_tracker.core.errors import TokenRejectionReason
from expense_tracker.core.logging import get_logger
from expense_tracker.models.account import Role

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenError(Exception):
    """Token verification failed; `reason` says why."""

    def __init__(self, reason: TokenRejectionReason, detail: str = ""):
        super().__init__(detail or reason.value)
        self.reason = reason


class TokenPayload(BaseModel):
    """Decoded and validated token claims."""

    model_config = ConfigDict(populate_by_name=True)

    sub: int                                                   # Account ID
    type: TokenType
    exp: datetime
    iat: Optional[datetime] = None
    email: Optional[str] = None
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    role: Optional[Role] = None
    jti: Optional[str] = None

    @model_validator(mode="after")
    def access_claims_present(self) -> "TokenPayload":
        if self.type is TokenType.ACCESS and (self.email is None or self.role is None):
            raise ValueError("access token is missing identity claims")
        return self


@dataclass(frozen=True)
class SigningContext:
    secret: str
    ttl: timedelta


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenIssuer:
    """
    Stateless signer/verifier for access and refresh tokens.

    `clock` stamps `iat`/`exp` and decides expiry, so time can be simulated.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        issuer: str = config.TOKEN_ISSUER,
        algorithm: str = config.JWT_ALGORITHM,
        clock: Clock = utc_now,
    ):
        self._contexts = {
            TokenType.ACCESS: SigningContext(access_secret, access_ttl),
            TokenType.REFRESH: SigningContext(refresh_secret, refresh_ttl),
        }
        self.issuer = issuer
        self.algorithm = algorithm
        self.clock = clock

    @property
    def access_ttl_seconds(self) -> int:
        return int(self._contexts[TokenType.ACCESS].ttl.total_seconds())

    def _sign(self, token_type: TokenType, claims: dict) -> str:
        context = self._contexts[token_type]
        now = self.clock()
        payload = {
            **claims,
            "type": token_type.value,
            "iat": int(now.timestamp()),
            "exp": int((now + context.ttl).timestamp()),
            "iss": self.issuer,
        }
        return jwt.encode(payload, context.secret, algorithm=self.algorithm)

    def create_access_token(
        self,
        user_id: int,
        email: str,
        first_name: str,
        last_name: str,
        role: str,
    ) -> str:
        return self._sign(TokenType.ACCESS, {
            "sub": str(user_id),
            "email": email,
            "firstName": first_name,
            "lastName": last_name,
            "role": role,
        })

    def create_refresh_token(self, user_id: int) -> str:
        # jti keeps two refresh tokens minted in the same second distinct
        return self._sign(TokenType.REFRESH, {
            "sub": str(user_id),
            "jti": secrets.token_urlsafe(16),
        })

    def create_token_pair(self, identity: dict) -> TokenPair:
        """Mint an access/refresh pair from a public identity payload."""
        return TokenPair(
            access_token=self.create_access_token(
                user_id=identity["id"],
                email=identity["email"],
                first_name=identity["firstName"],
                last_name=identity["lastName"],
                role=identity["role"],
            ),
            refresh_token=self.create_refresh_token(identity["id"]),
        )

    def _decode(self, token: str, token_type: TokenType) -> dict:
        try:
            return jwt.decode(
                token,
                self._contexts[token_type].secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"verify_exp": False, "verify_aud": False},
            )
        except JWTClaimsError as e:
            raise TokenError(TokenRejectionReason.MALFORMED_PAYLOAD, str(e))
        except JWTError as e:
            raise TokenError(TokenRejectionReason.INVALID_SIGNATURE, str(e))

    def verify(self, token: str, expected_type: TokenType) -> TokenPayload:
        """
        Verify a token of the expected kind.

        Raises:
            TokenError: with reason invalid_signature, expired,
                type_mismatch or malformed_payload
        """
        try:
            unverified = jwt.get_unverified_claims(token)
        except JWTError as e:
            raise TokenError(TokenRejectionReason.INVALID_SIGNATURE, str(e))

        claimed = unverified.get("type") if isinstance(unverified, dict) else None
        if claimed != expected_type.value:
            try:
                other = TokenType(claimed)
            except ValueError:
                # Unknown or missing discriminator: only a payload problem if
                # the signature is genuine.
                self._decode(token, expected_type)
                raise TokenError(TokenRejectionReason.MALFORMED_PAYLOAD, "missing token type")
            # Genuine token of the other kind -> type mismatch; forged -> bad signature
            self._decode(token, other)
            raise TokenError(
                TokenRejectionReason.TYPE_MISMATCH,
                f"expected {expected_type.value} token, got {other.value}",
            )

        claims = self._decode(token, expected_type)

        exp = claims.get("exp")
        if not isinstance(exp, (int, float)):
            raise TokenError(TokenRejectionReason.MALFORMED_PAYLOAD, "missing expiration")
        if exp <= self.clock().timestamp():
            raise TokenError(TokenRejectionReason.EXPIRED)

        try:
            return TokenPayload.model_validate(claims)
        except ValidationError as e:
            raise TokenError(TokenRejectionReason.MALFORMED_PAYLOAD, str(e))


def _secret_or_generated(value: Optional[str], name: str) -> str:
    if value:
        return value
    logger.warning(
        "jwt_secret_autogenerated",
        setting=name,
        hint="set it in the environment for production",
    )
    return secrets.token_urlsafe(32)


_default_issuer: Optional[TokenIssuer] = None


def get_token_issuer() -> TokenIssuer:
    """Process-wide issuer built from configuration."""
    global _default_issuer
    if _default_issuer is None:
        _default_issuer = TokenIssuer(
            access_secret=_secret_or_generated(config.JWT_ACCESS_SECRET, "JWT_ACCESS_SECRET"),
            refresh_secret=_secret_or_generated(config.JWT_REFRESH_SECRET, "JWT_REFRESH_SECRET"),
            access_ttl=timedelta(seconds=config.ACCESS_TOKEN_EXPIRE_SECONDS),
            refresh_ttl=timedelta(days=config.REFRESH_TOKEN_EXPIRE_DAYS),
        )
    return _default_issuer
