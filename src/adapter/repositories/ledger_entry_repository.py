"""SQLAlchemy implementation of LedgerEntryRepository

Append-only point ledger. Balances are derived from the latest entry per
user; appends are serialized per user by the unique (user_id, version)
constraint, with optional row locks on the latest entry.
"""

import json
from typing import Any, Dict, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.app.services.user_directory import UserDirectory
from src.domain.errors import ConcurrentUpdateError, NotFoundError
from src.domain.ledger_entry import LedgerEntry, LedgerEventType


class SqlAlchemyLedgerEntryRepository(LedgerEntryRepository):
    """
    SQLAlchemy implementation of LedgerEntryRepository

    Features:
    - Latest-entry lookup via the (user_id, version) unique index
    - Pessimistic locking via SELECT FOR UPDATE where the backend supports it
    - Compare-and-swap appends: a lost race raises ConcurrentUpdateError
    """

    def __init__(self, session: AsyncSession, user_directory: UserDirectory):
        self.session = session
        self.user_directory = user_directory

    async def current_balance(self, user_id: int, for_update: bool = False) -> int:
        balance, _ = await self.balance_snapshot(user_id, for_update=for_update)
        return balance

    async def balance_snapshot(self, user_id: int, for_update: bool = False) -> Tuple[int, int]:
        """
        Balance and version read from the same latest entry

        Falls back to the user's seed balance at version 0 when no entry exists.
        """
        latest = await self.latest_entry(user_id, for_update=for_update)
        if latest is not None:
            return latest.balance_after, latest.version

        user = await self.user_directory.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError(f"user {user_id} not found")
        return user.points, 0

    async def latest_entry(self, user_id: int, for_update: bool = False) -> Optional[LedgerEntry]:
        stmt = (
            select(LedgerEntry)
            .where(LedgerEntry.user_id == user_id)
            .order_by(LedgerEntry.version.desc())
            .limit(1)
        )

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def append(
        self,
        user_id: int,
        change: int,
        balance_after: int,
        event_type: LedgerEventType,
        expected_version: Optional[int] = None,
        transfer_id: Optional[int] = None,
        reference: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> LedgerEntry:
        """
        Append an entry as the user's next version

        With expected_version the entry is written as expected_version + 1,
        so a balance_after computed from a stale read collides with the
        entry that superseded it.

        Note:
            On ConcurrentUpdateError the session must be rolled back by the caller.
        """
        if expected_version is None:
            latest = await self.latest_entry(user_id)
            expected_version = latest.version if latest is not None else 0
        version = expected_version + 1

        entry = LedgerEntry(
            user_id=user_id,
            version=version,
            change=change,
            balance_after=balance_after,
            event_type=event_type,
            transfer_id=transfer_id,
            reference=reference,
            metadata_json=json.dumps(metadata, sort_keys=True) if metadata is not None else None,
        )
        self.session.add(entry)

        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConcurrentUpdateError(
                f"ledger version {version} of user {user_id} was written concurrently"
            ) from e

        await self.session.refresh(entry)
        return entry

    async def list_by_user(self, user_id: int, limit: int = 20, offset: int = 0) -> list[LedgerEntry]:
        stmt = (
            select(LedgerEntry)
            .where(LedgerEntry.user_id == user_id)
            .order_by(LedgerEntry.version.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_transfer(self, transfer_id: int) -> list[LedgerEntry]:
        stmt = (
            select(LedgerEntry)
            .where(LedgerEntry.transfer_id == transfer_id)
            .order_by(LedgerEntry.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_history(self, user_id: int) -> list[LedgerEntry]:
        stmt = (
            select(LedgerEntry)
            .where(LedgerEntry.user_id == user_id)
            .order_by(LedgerEntry.version.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_user_ids(self) -> list[int]:
        stmt = select(LedgerEntry.user_id).distinct().order_by(LedgerEntry.user_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
