"""
Authentication-related schemas.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator

from expense_tracker.models.account import Role
from expense_tracker.schemas.common import CamelModel


class SignupRequest(CamelModel):
    """New local account."""

    email: EmailStr = Field(description="User email address")
    password: str = Field(min_length=1, max_length=128, description="User password")
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        return v.strip()


class LoginRequest(BaseModel):
    """Login request with email and password."""

    email: EmailStr = Field(description="User email address")
    password: str = Field(min_length=1, max_length=128, description="User password")


class AuthResponse(BaseModel):
    """Published identity payload returned by login, refresh and OAuth callbacks."""

    message: str
    access_token: str = Field(description="JWT access token")
    refresh_token: str = Field(description="JWT refresh token for token renewal")
    expires_in: int = Field(description="Access token expiration in seconds")

    id: int
    email: str
    firstName: str
    lastName: str
    role: Role

    def identity(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.firstName,
            "lastName": self.lastName,
            "role": self.role.value,
        }
