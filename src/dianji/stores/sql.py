"""SQLAlchemy-backed credential store.

Learn: one AsyncSession per request. Each write commits on its own, so a
registration is two commits (family, then account); the service layer
compensates if the second one fails. Unique violations on the account
handle columns surface as DuplicateHandleError, which also closes the race
between two concurrent registrations of the same email. Any other database
failure, other integrity errors included, becomes StoreUnavailableError
(a generic 500).
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

import structlog
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dianji.db.models import Account, Family
from dianji.errors import DuplicateHandleError, StoreUnavailableError

logger = structlog.get_logger()

# Postgres reports the constraint name, SQLite the table.column
_HANDLE_CONFLICT_MARKERS = (
    "uq_accounts_email",
    "uq_accounts_phone",
    "accounts.email",
    "accounts.phone",
)


def _is_handle_conflict(error: IntegrityError) -> bool:
    message = str(error.orig)
    return any(marker in message for marker in _HANDLE_CONFLICT_MARKERS)


class SqlCredentialStore:
    """CredentialStore over an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _guarded(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            await self.db.rollback()
            # orig keeps bound parameters (password hashes) out of the log
            logger.error(
                "credential_store.error", operation=operation, error=str(getattr(e, "orig", e))
            )
            raise StoreUnavailableError() from e

    # ─── Accounts ───────────────────────────────────────

    async def find_account_by_handle(self, handle: str) -> Optional[Account]:
        async with self._guarded("find_account_by_handle"):
            result = await self.db.execute(
                select(Account).where(or_(Account.email == handle, Account.phone == handle))
            )
            return result.scalars().first()

    async def find_account_by_id(self, account_id: str) -> Optional[Account]:
        async with self._guarded("find_account_by_id"):
            return await self.db.get(Account, account_id)

    async def insert_account(self, account: Account) -> None:
        async with self._guarded("insert_account"):
            self.db.add(account)
            try:
                await self.db.commit()
            except IntegrityError as e:
                if not _is_handle_conflict(e):
                    raise
                await self.db.rollback()
                raise DuplicateHandleError() from e

    # ─── Families ───────────────────────────────────────

    async def find_family_by_id(self, family_id: str) -> Optional[Family]:
        async with self._guarded("find_family_by_id"):
            return await self.db.get(Family, family_id)

    async def find_family_by_invite_code(self, code: str) -> Optional[Family]:
        async with self._guarded("find_family_by_invite_code"):
            result = await self.db.execute(select(Family).where(Family.invite_code == code))
            return result.scalars().first()

    async def count_family_members(self, family_id: str) -> int:
        async with self._guarded("count_family_members"):
            result = await self.db.execute(
                select(func.count()).select_from(Account).where(Account.family_id == family_id)
            )
            return int(result.scalar_one())

    async def list_family_members(self, family_id: str) -> list[Account]:
        async with self._guarded("list_family_members"):
            result = await self.db.execute(
                select(Account)
                .where(Account.family_id == family_id)
                .order_by(Account.created_at)
            )
            return list(result.scalars().all())

    async def insert_family(self, family: Family) -> None:
        async with self._guarded("insert_family"):
            self.db.add(family)
            await self.db.commit()

    async def update_family_invite(
        self, family_id: str, code: str, expires_at: datetime
    ) -> None:
        async with self._guarded("update_family_invite"):
            await self.db.execute(
                update(Family)
                .where(Family.id == family_id)
                .values(invite_code=code, invite_expires_at=expires_at)
            )
            await self.db.commit()

    async def delete_family(self, family_id: str) -> None:
        async with self._guarded("delete_family"):
            await self.db.execute(delete(Family).where(Family.id == family_id))
            await self.db.commit()
