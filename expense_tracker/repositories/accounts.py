"""Account store: durable storage for identities, credentials and ownership links."""

from typing import Any, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from expense_tracker.core.errors import ConflictError
from expense_tracker.models.account import Account


class AccountStore:
    """
    Point lookups and single-statement updates over the accounts table.

    Every write commits on its own; no operation spans more than one row
    except the subordinate listing, which is a single-predicate read.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, account_id: int) -> Optional[Account]:
        result = await self.session.execute(
            select(Account).where(Account.id == account_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> Optional[Account]:
        result = await self.session.execute(
            select(Account).where(Account.email == email)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_where_owner_id(self, owner_id: int) -> List[Account]:
        result = await self.session.execute(
            select(Account)
            .where(Account.owner_id == owner_id)
            .order_by(Account.created_at.desc(), Account.id.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def subordinate_ids(self, owner_id: int) -> set[int]:
        result = await self.session.execute(
            select(Account.id).where(Account.owner_id == owner_id)
        )
        return set(result.scalars().all())

    async def list_all(self) -> List[Account]:
        result = await self.session.execute(
            select(Account)
            .order_by(Account.created_at.desc(), Account.id.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_by_ids(self, account_ids) -> List[Account]:
        result = await self.session.execute(
            select(Account)
            .where(Account.id.in_(list(account_ids)))
            .order_by(Account.created_at.desc(), Account.id.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(Account.id)))
        return result.scalar() or 0

    async def create(self, **fields: Any) -> Account:
        """Insert a new account. A duplicate email raises ConflictError."""
        account = Account(**fields)
        self.session.add(account)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError("User with this email already exists") from exc
        await self.session.refresh(account)
        return account

    async def update(self, account_id: int, **fields: Any) -> bool:
        """
        Apply a partial update in one UPDATE statement.

        Returns False when no row matched (the account is gone).
        """
        try:
            result = await self.session.execute(
                update(Account)
                .where(Account.id == account_id)
                .values(**fields)
                .execution_options(synchronize_session="fetch")
            )
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError("User with this email already exists") from exc
        return result.rowcount > 0

    async def delete(self, account_id: int) -> bool:
        result = await self.session.execute(
            delete(Account).where(Account.id == account_id)
        )
        await self.session.commit()
        return result.rowcount > 0
