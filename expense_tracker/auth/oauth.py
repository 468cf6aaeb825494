"""
OAuth2 authorization-code client for the supported identity providers.

The caller may pass a post-login redirect target. It is carried opaquely
through the provider's `state` parameter: URL-encoded once on the way out,
URL-decoded once on the way back, never parsed or followed here.
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote, unquote, urlencode

import httpx
from pydantic import ValidationError

from expense_tracker.auth.federation import OAuth2Profile, OAuth2Provider, normalize_profile
from expense_tracker.core import config
from expense_tracker.core.errors import CredentialRejectedError, NotFoundError, ServiceError
from expense_tracker.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProviderConfig:
    auth_url: str
    token_url: str
    userinfo_url: str
    scope: str
    client_id: Optional[str]
    client_secret: Optional[str]
    callback_url: str


def default_providers() -> dict[OAuth2Provider, ProviderConfig]:
    return {
        OAuth2Provider.GOOGLE: ProviderConfig(
            auth_url="https://accounts.google.com/o/oauth2/v2/auth",
            token_url="https://oauth2.googleapis.com/token",
            userinfo_url="https://www.googleapis.com/oauth2/v2/userinfo",
            scope="email profile",
            client_id=config.GOOGLE_CLIENT_ID,
            client_secret=config.GOOGLE_CLIENT_SECRET,
            callback_url=config.GOOGLE_CALLBACK_URL,
        ),
        OAuth2Provider.GITHUB: ProviderConfig(
            auth_url="https://github.com/login/oauth/authorize",
            token_url="https://github.com/login/oauth/access_token",
            userinfo_url="https://api.github.com/user",
            scope="user:email",
            client_id=config.GITHUB_CLIENT_ID,
            client_secret=config.GITHUB_CLIENT_SECRET,
            callback_url=config.GITHUB_CALLBACK_URL,
        ),
        OAuth2Provider.FACEBOOK: ProviderConfig(
            auth_url="https://www.facebook.com/v18.0/dialog/oauth",
            token_url="https://graph.facebook.com/v18.0/oauth/access_token",
            userinfo_url=(
                "https://graph.facebook.com/me"
                "?fields=id,email,name,first_name,last_name,picture.type(large)"
            ),
            scope="email,public_profile",
            client_id=config.FACEBOOK_CLIENT_ID,
            client_secret=config.FACEBOOK_CLIENT_SECRET,
            callback_url=config.FACEBOOK_CALLBACK_URL,
        ),
    }


def encode_state(redirect_uri: str) -> str:
    return quote(redirect_uri, safe="")


def decode_state(state: Optional[str]) -> Optional[str]:
    """Recover the caller's redirect target from `state` (None if absent)."""
    if not state:
        return None
    return unquote(state)


class OAuthClient:
    """
    Builds authorization URLs and exchanges callback codes for profiles.

    `transport` lets tests plug an httpx.MockTransport in place of the network.
    """

    def __init__(
        self,
        providers: Optional[dict[OAuth2Provider, ProviderConfig]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = config.OAUTH_HTTP_TIMEOUT,
    ):
        self.providers = providers if providers is not None else default_providers()
        self.transport = transport
        self.timeout = timeout

    def _provider(self, provider: str) -> tuple[OAuth2Provider, ProviderConfig]:
        try:
            key = OAuth2Provider(provider)
        except ValueError:
            raise NotFoundError(f"Unsupported OAuth provider: {provider}")
        provider_config = self.providers.get(key)
        if provider_config is None:
            raise NotFoundError(f"Unsupported OAuth provider: {provider}")
        if not provider_config.client_id or not provider_config.client_secret:
            logger.warning("oauth_not_configured", provider=key.value)
            raise ServiceError(f"OAuth provider {key.value} is not configured")
        return key, provider_config

    def authorization_url(self, provider: str, redirect_uri: Optional[str] = None) -> str:
        """URL to send the browser to; `redirect_uri` rides along in `state`."""
        key, provider_config = self._provider(provider)
        params = {
            "client_id": provider_config.client_id,
            "redirect_uri": provider_config.callback_url,
            "response_type": "code",
            "scope": provider_config.scope,
        }
        if redirect_uri:
            params["state"] = encode_state(redirect_uri)
        return f"{provider_config.auth_url}?{urlencode(params)}"

    async def exchange_code(self, provider: str, code: str) -> OAuth2Profile:
        """
        Trade an authorization code for the caller's normalized profile.

        Raises:
            CredentialRejectedError: if the provider refuses the code or
                returns an unusable profile
        """
        key, provider_config = self._provider(provider)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=False,
                transport=self.transport,
            ) as client:
                token_response = await client.post(
                    provider_config.token_url,
                    data={
                        "client_id": provider_config.client_id,
                        "client_secret": provider_config.client_secret,
                        "code": code,
                        "redirect_uri": provider_config.callback_url,
                        "grant_type": "authorization_code",
                    },
                    headers={"Accept": "application/json"},
                )
                token_response.raise_for_status()
                access_token = token_response.json().get("access_token")
                if not access_token:
                    logger.warning("oauth_no_access_token", provider=key.value)
                    raise CredentialRejectedError("OAuth authentication failed")

                headers = {"Authorization": f"Bearer {access_token}"}
                if key is OAuth2Provider.GITHUB:
                    headers["Accept"] = "application/vnd.github+json"

                userinfo_response = await client.get(provider_config.userinfo_url, headers=headers)
                userinfo_response.raise_for_status()
                userinfo = userinfo_response.json()
                if not isinstance(userinfo, dict):
                    raise CredentialRejectedError("OAuth provider returned an unusable profile")

                # GitHub hides private addresses from /user
                if key is OAuth2Provider.GITHUB and not userinfo.get("email"):
                    userinfo["email"] = await self._github_primary_email(client, headers)
        except httpx.HTTPStatusError as e:
            logger.warning(
                "oauth_exchange_http_error",
                provider=key.value,
                status_code=e.response.status_code,
            )
            raise CredentialRejectedError("OAuth authentication failed") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("oauth_exchange_error", provider=key.value, error=str(e))
            raise CredentialRejectedError("OAuth authentication failed") from e

        try:
            return normalize_profile(key.value, userinfo)
        except ValidationError as e:
            logger.warning("oauth_profile_invalid", provider=key.value, errors=e.error_count())
            raise CredentialRejectedError("OAuth provider returned an unusable profile") from e

    async def _github_primary_email(self, client: httpx.AsyncClient, headers: dict) -> Optional[str]:
        response = await client.get("https://api.github.com/user/emails", headers=headers)
        if response.status_code != 200:
            return None
        return next(
            (e["email"] for e in response.json() if e.get("primary") and e.get("verified")),
            None,
        )


_default_client: Optional[OAuthClient] = None


def get_oauth_client() -> OAuthClient:
    global _default_client
    if _default_client is None:
        _default_client = OAuthClient()
    return _default_client
