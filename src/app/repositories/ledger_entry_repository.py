"""Ledger Entry Repository Interface

Defines the contract for the append-only point ledger.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple
from src.domain.ledger_entry import LedgerEntry, LedgerEventType


class LedgerEntryRepository(ABC):
    """
    Repository interface for LedgerEntry persistence

    The ledger is the single source of truth for balances. Entries are
    never updated or deleted. Appends for one user are serialized by the
    unique (user_id, version) pair.
    """

    @abstractmethod
    async def current_balance(self, user_id: int, for_update: bool = False) -> int:
        """
        Current balance of a user

        Args:
            user_id: User identifier
            for_update: If True, lock the user's latest entry (SELECT FOR UPDATE)

        Returns:
            balance_after of the latest entry, or the user's seed balance
            if no entry exists

        Raises:
            NotFoundError: User has no entries and is unknown to the directory
        """
        pass

    @abstractmethod
    async def balance_snapshot(self, user_id: int, for_update: bool = False) -> Tuple[int, int]:
        """
        Balance together with the version it was read at

        Args:
            user_id: User identifier
            for_update: If True, lock the user's latest entry (SELECT FOR UPDATE)

        Returns:
            (balance_after, version) of the latest entry, or (seed balance, 0)
            if no entry exists

        Raises:
            NotFoundError: User has no entries and is unknown to the directory
        """
        pass

    @abstractmethod
    async def latest_entry(self, user_id: int, for_update: bool = False) -> Optional[LedgerEntry]:
        """
        Most recent entry of a user

        Args:
            user_id: User identifier
            for_update: If True, lock the row with SELECT FOR UPDATE

        Returns:
            LedgerEntry if the user has history, None otherwise
        """
        pass

    @abstractmethod
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

        No business validation is performed; the caller is trusted.

        Args:
            expected_version: Version the caller read balance_after from. The
                entry is written as expected_version + 1. When omitted the
                current latest version is used.

        Returns:
            Persisted LedgerEntry with ID, version and timestamp

        Raises:
            ConcurrentUpdateError: Another writer appended this user's next version
        """
        pass

    @abstractmethod
    async def list_by_user(self, user_id: int, limit: int = 20, offset: int = 0) -> list[LedgerEntry]:
        """
        Retrieve a user's entries, newest first

        Args:
            user_id: User identifier
            limit: Maximum number of entries to return
            offset: Number of entries to skip

        Returns:
            List of LedgerEntry
        """
        pass

    @abstractmethod
    async def list_by_transfer(self, transfer_id: int) -> list[LedgerEntry]:
        """
        Retrieve entries referencing a transfer, in creation order

        Args:
            transfer_id: Transfer ID

        Returns:
            List of LedgerEntry (two for a completed transfer)
        """
        pass

    @abstractmethod
    async def get_history(self, user_id: int) -> list[LedgerEntry]:
        """
        Retrieve a user's full history, oldest first

        Args:
            user_id: User identifier

        Returns:
            List of LedgerEntry ordered by version
        """
        pass

    @abstractmethod
    async def list_user_ids(self) -> list[int]:
        """
        Retrieve ids of all users with at least one entry

        Returns:
            Sorted list of user ids
        """
        pass
