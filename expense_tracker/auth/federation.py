"""
OAuth2 identity federation.

Each provider returns a differently shaped userinfo payload. Those shapes are
modelled as one discriminated union on `provider` and normalized into the
canonical OAuth2Profile before any business logic sees them. The federator
then finds or creates the local account for that profile.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from starlette.concurrency import run_in_threadpool

from expense_tracker.auth.password import generate_unusable_password, hash_password
from expense_tracker.core.errors import ConflictError, CredentialRejectedError
from expense_tracker.core.logging import get_logger
from expense_tracker.models.account import Account, Role
from expense_tracker.repositories.accounts import AccountStore

logger = get_logger(__name__)


class OAuth2Provider(str, Enum):
    GOOGLE = "google"
    GITHUB = "github"
    FACEBOOK = "facebook"


class OAuth2Profile(BaseModel):
    """Canonical federated profile. Transient: never persisted as such."""

    provider: OAuth2Provider
    provider_id: str
    email: str
    name: str = ""
    first_name: str = ""
    last_name: str = ""
    picture: Optional[str] = None


def split_display_name(name: str) -> tuple[str, str]:
    """First whitespace-separated token is the first name, the rest the last name."""
    parts = name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


class GoogleUserInfo(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    provider: Literal["google"] = "google"
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    picture: Optional[str] = None

    def to_profile(self) -> OAuth2Profile:
        name = self.name or f"{self.given_name or ''} {self.family_name or ''}".strip()
        return OAuth2Profile(
            provider=OAuth2Provider.GOOGLE,
            provider_id=self.id,
            email=self.email or "",
            name=name,
            first_name=self.given_name or "",
            last_name=self.family_name or "",
            picture=self.picture,
        )


class GitHubUserInfo(BaseModel):
    provider: Literal["github"] = "github"
    id: int
    login: str
    email: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None

    def to_profile(self) -> OAuth2Profile:
        # GitHub only has a display name; the federator splits it
        return OAuth2Profile(
            provider=OAuth2Provider.GITHUB,
            provider_id=str(self.id),
            email=self.email or "",
            name=self.name or self.login,
            picture=self.avatar_url,
        )


class FacebookPictureData(BaseModel):
    url: Optional[str] = None


class FacebookPicture(BaseModel):
    data: Optional[FacebookPictureData] = None


class FacebookUserInfo(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    provider: Literal["facebook"] = "facebook"
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    picture: Optional[FacebookPicture] = None

    def to_profile(self) -> OAuth2Profile:
        name = self.name or f"{self.first_name or ''} {self.last_name or ''}".strip() or "User"
        first, rest = split_display_name(name)
        picture = self.picture.data.url if self.picture and self.picture.data else None
        return OAuth2Profile(
            provider=OAuth2Provider.FACEBOOK,
            provider_id=self.id,
            # Facebook may withhold the address; synthesize a stable one
            email=self.email or f"facebook_{self.id}@facebook.oauth",
            name=name,
            first_name=self.first_name or first or "User",
            last_name=self.last_name or rest,
            picture=picture,
        )


ProviderUserInfo = Annotated[
    Union[GoogleUserInfo, GitHubUserInfo, FacebookUserInfo],
    Field(discriminator="provider"),
]

_userinfo_adapter = TypeAdapter(ProviderUserInfo)


def normalize_profile(provider: str, payload: dict) -> OAuth2Profile:
    """
    Validate a raw provider payload and normalize it to an OAuth2Profile.

    Raises:
        pydantic.ValidationError: if the payload does not fit the provider shape
    """
    userinfo = _userinfo_adapter.validate_python({**payload, "provider": provider})
    return userinfo.to_profile()


class IdentityFederator:
    """Reconciles federated profiles against the local account store."""

    def __init__(self, store: AccountStore):
        self.store = store

    @staticmethod
    def derive_names(profile: OAuth2Profile) -> tuple[str, str]:
        split_first, split_last = split_display_name(profile.name or "")
        first_name = profile.first_name or split_first or profile.email.split("@")[0]
        last_name = profile.last_name or split_last
        return first_name, last_name

    async def reconcile(self, profile: OAuth2Profile) -> Account:
        """
        Find the account for the profile's email, or create it.

        An existing account is returned unchanged: federated login never
        overwrites a local profile.
        """
        if not profile.email:
            raise CredentialRejectedError("OAuth provider did not return an email address")

        account = await self.store.find_by_email(profile.email)
        if account:
            return account

        first_name, last_name = self.derive_names(profile)
        password_hash = await run_in_threadpool(hash_password, generate_unusable_password())
        try:
            account = await self.store.create(
                email=profile.email,
                first_name=first_name,
                last_name=last_name,
                password_hash=password_hash,
                role=Role.USER,
            )
        except ConflictError:
            # A concurrent first login for the same email created it
            account = await self.store.find_by_email(profile.email)
            if account is None:
                raise
            return account

        logger.info(
            "oauth_account_created",
            account_id=account.id,
            provider=profile.provider.value,
        )
        return account
