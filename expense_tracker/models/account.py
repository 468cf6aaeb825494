"""
Account model: identity, credentials and the owner -> employee edge.

Security considerations:
- Passwords are stored as bcrypt digests, never in plaintext
- The refresh token is stored as an argon2id digest; NULL means no live session
- All timestamps use UTC
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Enum
from sqlalchemy.orm import Mapped, mapped_column

from expense_tracker.core.database import Base


class Role(str, PyEnum):
    """Account roles, least privileged first."""
    USER = "user"
    OWNER = "owner"
    ADMIN = "admin"


# Roles that may have employees and see their rows
PRIVILEGED_ROLES = frozenset({Role.OWNER, Role.ADMIN})


class Account(Base):
    """
    Account record.

    An account may point at one owner through `owner_id`. Visibility over
    subordinates is one hop only: an owner's own owner is irrelevant.
    """

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Authentication
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Profile
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    role: Mapped[Role] = mapped_column(
        Enum(Role, values_callable=lambda roles: [r.value for r in roles]),
        nullable=False,
        default=Role.USER,
    )

    # Session state: digest of the single live refresh token
    refresh_token_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Ownership edge (employee -> owner)
    owner_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<Account {self.email}>"

    def public_identity(self) -> dict:
        """Identity fields safe to publish in tokens and responses."""
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role.value,
        }
