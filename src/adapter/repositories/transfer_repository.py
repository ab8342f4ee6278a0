"""SQLAlchemy implementation of TransferRepository

Provides persistence for Transfer entities. Idempotency keys are generated
here and protected by a unique constraint; status changes are checked
against the transfer state machine.
"""

from datetime import datetime
from typing import Optional
from sqlmodel import select, func, or_
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.transfer_repository import TransferRepository
from src.domain.base import generate_uuid
from src.domain.errors import InvalidTransitionError, NotFoundError, ValidationError
from src.domain.transfer import (
    Transfer,
    TransferStatus,
    can_transition,
    validate_pagination,
    validate_transfer_request,
)


class SqlAlchemyTransferRepository(TransferRepository):
    """
    SQLAlchemy implementation of TransferRepository

    Features:
    - Store-generated UUID idempotency keys
    - Paginated lookup by participant with total count
    - State machine enforcement on status updates
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        from_user_id: int,
        to_user_id: int,
        amount: int,
        note: Optional[str] = None,
    ) -> Transfer:
        """
        Validate and persist a new PENDING transfer

        Returns:
            Created Transfer with generated ID and idempotency key
        """
        validate_transfer_request(from_user_id, to_user_id, amount, note)

        now = datetime.utcnow()
        transfer = Transfer(
            idempotency_key=generate_uuid(),
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=amount,
            status=TransferStatus.PENDING,
            note=note,
            created_at=now,
            updated_at=now,
        )
        self.session.add(transfer)
        await self.session.flush()
        await self.session.refresh(transfer)
        return transfer

    async def get_by_idempotency_key(self, idempotency_key: str) -> Optional[Transfer]:
        stmt = select(Transfer).where(Transfer.idempotency_key == idempotency_key)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_user(
        self, user_id: int, page: int, page_size: int
    ) -> tuple[list[Transfer], int]:
        """
        Retrieve transfers sent or received by a user, newest first

        Returns:
            Tuple of (transfers on the page, total matching transfers)
        """
        validate_pagination(page, page_size)

        involves_user = or_(Transfer.from_user_id == user_id, Transfer.to_user_id == user_id)

        # Get total count
        count_stmt = select(func.count()).select_from(Transfer).where(involves_user)
        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar()

        # Get the requested page ordered by created_at DESC
        stmt = (
            select(Transfer)
            .where(involves_user)
            .order_by(Transfer.created_at.desc(), Transfer.id.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        result = await self.session.execute(stmt)
        transfers = list(result.scalars().all())

        return transfers, total

    async def update_status(
        self,
        idempotency_key: str,
        status: TransferStatus,
        completed_at: Optional[datetime] = None,
        fail_reason: Optional[str] = None,
    ) -> None:
        """
        Transition a transfer and refresh updated_at

        Note:
            completed_at defaults to now for COMPLETED; fail_reason is
            required for FAILED. Both are cleared for any other status.
        """
        transfer = await self.get_by_idempotency_key(idempotency_key)
        if transfer is None:
            raise NotFoundError(f"transfer {idempotency_key} not found")

        if transfer.is_terminal:
            raise InvalidTransitionError(
                f"transfer {idempotency_key} is already {TransferStatus(transfer.status).value}"
            )

        if not can_transition(transfer.status, status):
            raise InvalidTransitionError(
                f"cannot move transfer {idempotency_key} from {TransferStatus(transfer.status).value} "
                f"to {TransferStatus(status).value}"
            )

        if status == TransferStatus.FAILED and not fail_reason:
            raise ValidationError("fail_reason is required for failed transfers")

        now = datetime.utcnow()
        transfer.status = status
        transfer.updated_at = now
        transfer.completed_at = (completed_at or now) if status == TransferStatus.COMPLETED else None
        transfer.fail_reason = fail_reason if status == TransferStatus.FAILED else None

        self.session.add(transfer)
        await self.session.flush()

    async def list_pending_before(self, cutoff: datetime, limit: int = 100) -> list[Transfer]:
        stmt = (
            select(Transfer)
            .where(Transfer.status == TransferStatus.PENDING, Transfer.created_at < cutoff)
            .order_by(Transfer.created_at.asc(), Transfer.id.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_status(
        self, status: TransferStatus, limit: int = 100, offset: int = 0
    ) -> list[Transfer]:
        stmt = (
            select(Transfer)
            .where(Transfer.status == status)
            .order_by(Transfer.id.asc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
