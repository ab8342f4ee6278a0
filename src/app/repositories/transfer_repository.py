"""Transfer Repository Interface

Defines the contract for transfer persistence operations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from src.domain.transfer import Transfer, TransferStatus


class TransferRepository(ABC):
    """
    Repository interface for Transfer persistence

    Transfers are keyed by a store-generated idempotency key and are
    never deleted. Status changes go through update_status only.
    """

    @abstractmethod
    async def create(
        self,
        from_user_id: int,
        to_user_id: int,
        amount: int,
        note: Optional[str] = None,
    ) -> Transfer:
        """
        Validate and persist a new PENDING transfer

        Args:
            from_user_id: Sender user ID
            to_user_id: Receiver user ID
            amount: Points to move (> 0)
            note: Optional note (max 512 characters)

        Returns:
            Created Transfer with generated ID and idempotency key

        Raises:
            ValidationError: Invalid amount, ids or note
            SameUserError: from_user_id == to_user_id
        """
        pass

    @abstractmethod
    async def get_by_idempotency_key(self, idempotency_key: str) -> Optional[Transfer]:
        """
        Retrieve transfer by idempotency key

        Args:
            idempotency_key: Unique transfer key

        Returns:
            Transfer if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_by_user(
        self, user_id: int, page: int, page_size: int
    ) -> tuple[list[Transfer], int]:
        """
        Retrieve transfers sent or received by a user, newest first

        Args:
            user_id: User identifier
            page: 1-based page number
            page_size: Page size (1..200)

        Returns:
            Tuple of (transfers on the page, total matching transfers)

        Raises:
            ValidationError: page or page_size out of bounds
        """
        pass

    @abstractmethod
    async def update_status(
        self,
        idempotency_key: str,
        status: TransferStatus,
        completed_at: Optional[datetime] = None,
        fail_reason: Optional[str] = None,
    ) -> None:
        """
        Transition a transfer and refresh updated_at

        Args:
            idempotency_key: Transfer key
            status: Target status
            completed_at: Completion timestamp (COMPLETED only)
            fail_reason: Failure cause (FAILED only)

        Raises:
            NotFoundError: Unknown idempotency key
            InvalidTransitionError: Transition not allowed from current status
        """
        pass

    @abstractmethod
    async def list_pending_before(self, cutoff: datetime, limit: int = 100) -> list[Transfer]:
        """
        Retrieve transfers still PENDING that were created before cutoff

        Used by the reconciler to resolve transfers abandoned mid-processing.

        Args:
            cutoff: Creation time upper bound (exclusive)
            limit: Maximum number of transfers to return

        Returns:
            Pending transfers, oldest first
        """
        pass

    @abstractmethod
    async def list_by_status(
        self, status: TransferStatus, limit: int = 100, offset: int = 0
    ) -> list[Transfer]:
        """
        Retrieve transfers by status, oldest first

        Args:
            status: Status to filter by
            limit: Maximum number of transfers to return
            offset: Number of transfers to skip

        Returns:
            List of transfers
        """
        pass
