"""Credential store: durable lookup and update of Account records."""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer

from accounts.app.core.errors import ConflictError, ServerFault
from accounts.app.models.account import Account

logger = logging.getLogger(__name__)


class AccountStore:
    """Account persistence over an async SQLAlchemy session.

    Every storage failure surfaces as ServerFault, except a duplicate email on
    insert, which is reported as ConflictError.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _one(self, stmt, include_password: bool) -> Account | None:
        if include_password:
            stmt = stmt.options(undefer(Account.password_hash)).execution_options(
                populate_existing=True
            )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            logger.exception("Account lookup failed")
            raise ServerFault("Server Error") from exc
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str, include_password: bool = False) -> Account | None:
        return await self._one(select(Account).where(Account.email == email), include_password)

    async def find_by_id(self, account_id: str, include_password: bool = False) -> Account | None:
        return await self._one(select(Account).where(Account.id == account_id), include_password)

    async def find_by_reset_token(self, token_hash: str, now: datetime) -> Account | None:
        """Account holding this reset hash whose reset window is still open."""
        stmt = select(Account).where(
            Account.reset_token_hash == token_hash,
            Account.reset_token_expires_at > now,
        )
        return await self._one(stmt, include_password=False)

    async def insert(self, account: Account) -> Account:
        self.session.add(account)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError("Email already registered") from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Account insert failed")
            raise ServerFault("Server Error") from exc
        return account

    async def update(self, account: Account) -> Account:
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Account update failed for %s", account.id)
            raise ServerFault("Server Error") from exc
        return account

    async def delete(self, account: Account) -> None:
        try:
            await self.session.delete(account)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Account delete failed for %s", account.id)
            raise ServerFault("Server Error") from exc
