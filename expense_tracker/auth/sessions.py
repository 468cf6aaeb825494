"""
Session lifecycle: login, refresh-token verification and rotation, logout.

An account has at most one live refresh token at a time; its argon2 digest
sits in `accounts.refresh_token_hash`. Every login and every refresh
overwrites that digest (last writer wins), which makes the previous refresh
token permanently unusable. Logout clears it.
"""

from typing import Optional

from starlette.concurrency import run_in_threadpool

from expense_tracker.auth.federation import IdentityFederator, OAuth2Profile
from expense_tracker.auth.jwt import TokenError, TokenIssuer, TokenType, get_token_issuer
from expense_tracker.auth.password import verify_password
from expense_tracker.auth.refresh_hash import hash_refresh_token, verify_refresh_token
from expense_tracker.core.errors import CredentialRejectedError, NotFoundError, TokenRejectedError
from expense_tracker.core.logging import get_logger
from expense_tracker.models.account import Account
from expense_tracker.repositories.accounts import AccountStore
from expense_tracker.schemas.auth import AuthResponse

logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_REFRESH_TOKEN = "Invalid refresh token"


class SessionManager:

    def __init__(
        self,
        store: AccountStore,
        issuer: Optional[TokenIssuer] = None,
        federator: Optional[IdentityFederator] = None,
    ):
        self.store = store
        self.issuer = issuer or get_token_issuer()
        self.federator = federator or IdentityFederator(store)

    async def authenticate(self, email: str, password: str) -> Account:
        """
        Check an email/password pair.

        Unknown email and wrong password fail with the same message.
        """
        account = await self.store.find_by_email(email)
        if account is None or not await run_in_threadpool(
            verify_password, password, account.password_hash
        ):
            logger.info("login_failure", reason="invalid_credentials")
            raise CredentialRejectedError(INVALID_CREDENTIALS)
        return account

    async def _issue(self, identity: dict, message: str) -> AuthResponse:
        pair = self.issuer.create_token_pair(identity)
        digest = await run_in_threadpool(hash_refresh_token, pair.refresh_token)

        # Overwrites any previous session for this account
        if not await self.store.update(identity["id"], refresh_token_hash=digest):
            raise CredentialRejectedError("User not found")

        return AuthResponse(
            message=message,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expires_in=self.issuer.access_ttl_seconds,
            **identity,
        )

    async def login(self, account_id: int) -> AuthResponse:
        """Mint a token pair for an authenticated account and persist the refresh digest."""
        account = await self.store.find_by_id(account_id)
        if account is None:
            raise CredentialRejectedError("User not found")

        result = await self._issue(account.public_identity(), "Login successful")
        logger.info("login_success", account_id=account_id)
        return result

    async def login_with_password(self, email: str, password: str) -> AuthResponse:
        account = await self.authenticate(email, password)
        return await self.login(account.id)

    async def login_with_oauth(self, profile: OAuth2Profile) -> AuthResponse:
        account = await self.federator.reconcile(profile)
        logger.info("oauth_login", account_id=account.id, provider=profile.provider.value)
        return await self.login(account.id)

    async def verify_refresh(self, account_id: int, presented_token: str) -> dict:
        """
        Check a presented refresh token against the stored digest.

        Returns the account's public identity. Rotates nothing.
        """
        account = await self.store.find_by_id(account_id)
        if account is None or not account.refresh_token_hash:
            logger.info("refresh_rejected", account_id=account_id, reason="no_session")
            raise CredentialRejectedError(INVALID_REFRESH_TOKEN)

        if not await run_in_threadpool(
            verify_refresh_token, presented_token, account.refresh_token_hash
        ):
            logger.info("refresh_rejected", account_id=account_id, reason="digest_mismatch")
            raise CredentialRejectedError(INVALID_REFRESH_TOKEN)

        return account.public_identity()

    async def refresh(self, identity: dict) -> AuthResponse:
        """Rotate: mint a new pair and overwrite the stored refresh digest."""
        result = await self._issue(identity, "Token refreshed successfully")
        logger.info("token_refreshed", account_id=identity["id"])
        return result

    async def refresh_with_token(self, presented_token: str) -> AuthResponse:
        """Full refresh flow for a bearer refresh token."""
        try:
            payload = self.issuer.verify(presented_token, TokenType.REFRESH)
        except TokenError as e:
            raise TokenRejectedError(e.reason)

        identity = await self.verify_refresh(payload.sub, presented_token)
        return await self.refresh(identity)

    async def logout(self, account_id: int) -> None:
        """Drop the live refresh digest. Logging out twice is fine."""
        if not await self.store.update(account_id, refresh_token_hash=None):
            raise NotFoundError("Account not found")
        logger.info("logout", account_id=account_id)
