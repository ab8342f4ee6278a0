"""CreateTransfer Use Case

Moves points from one user to another. The balance move (re-check, debit
entry, credit entry, completion) commits as one database transaction, so a
transfer either completes with both ledger entries or leaves none.
"""

import logging
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.user_directory import UserDirectory
from src.app.repositories.transfer_repository import TransferRepository
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.domain.errors import (
    ConcurrentUpdateError,
    InsufficientFundsError,
    NotFoundError,
    SameUserError,
    ValidationError,
)
from src.domain.ledger_entry import LedgerEventType
from src.domain.transfer import TransferStatus, validate_transfer_request
from .dtos import CreateTransferCommandDTO, TransferResponseDTO

logger = logging.getLogger(__name__)

RETRY_LIMIT_REASON = "concurrent balance updates, retry limit reached"


class CreateTransfer:
    """
    Use Case: Transfer points between two users

    Business Rules:
    1. amount > 0, sender != receiver, note <= 512 characters
    2. Both users must exist
    3. Sender balance must cover the amount (checked before and during the move)
    4. Every attempt that passes the pre-check leaves an auditable Transfer row
    5. Completed transfers have exactly one transfer_out and one transfer_in entry

    Flow:
    1. Validate request
    2. Resolve sender and receiver
    3. Pre-check sender balance (no lock)
    4. Persist PENDING transfer and commit
    5. Lock balances, re-check, append both entries, mark COMPLETED, commit
       (retried on concurrent ledger appends)
    6. On re-check failure or exhausted retries, mark FAILED and commit
    7. Return the final transfer
    """

    def __init__(
        self,
        uow: UnitOfWork,
        transfer_repo: TransferRepository,
        ledger_repo: LedgerEntryRepository,
        user_directory: UserDirectory,
        max_attempts: int = 3,
    ):
        self.uow = uow
        self.transfer_repo = transfer_repo
        self.ledger_repo = ledger_repo
        self.user_directory = user_directory
        self.max_attempts = max(1, max_attempts)

    async def execute(self, command: CreateTransferCommandDTO) -> Result[TransferResponseDTO]:
        """
        Execute a point transfer

        Args:
            command: CreateTransferCommandDTO with from_user_id, to_user_id, amount, note

        Returns:
            Result[TransferResponseDTO]: The transfer in its terminal state, or error

        Errors:
            VALIDATION_ERROR: Malformed request
            SAME_USER: Sender and receiver are the same user
            USER_NOT_FOUND: Sender or receiver does not exist
            INSUFFICIENT_POINTS: Pre-check failed, no transfer recorded
            STORAGE_ERROR: Store failure; a created transfer stays PENDING
        """
        # Step 1: Validate request shape
        try:
            validate_transfer_request(
                command.from_user_id, command.to_user_id, command.amount, command.note
            )
        except SameUserError as e:
            return Return.err(Error(code="SAME_USER", message=str(e)))
        except ValidationError as e:
            return Return.err(Error(code="VALIDATION_ERROR", message=str(e)))

        try:
            # Step 2: Resolve both parties
            sender = await self.user_directory.get_user_by_id(command.from_user_id)
            if sender is None:
                return Return.err(
                    Error(
                        code="USER_NOT_FOUND",
                        message="sender user not found",
                        reason=f"user_id={command.from_user_id}",
                    )
                )

            receiver = await self.user_directory.get_user_by_id(command.to_user_id)
            if receiver is None:
                return Return.err(
                    Error(
                        code="USER_NOT_FOUND",
                        message="receiver user not found",
                        reason=f"user_id={command.to_user_id}",
                    )
                )

            # Step 3: Balance pre-check (authoritative re-check happens in step 5)
            balance = await self.ledger_repo.current_balance(command.from_user_id)
            if balance < command.amount:
                return Return.err(
                    Error(
                        code="INSUFFICIENT_POINTS",
                        message=f"Insufficient points. Required: {command.amount}, Available: {balance}",
                        reason=f"balance={balance}, required={command.amount}",
                    )
                )

            # Step 4: Persist PENDING transfer
            transfer = await self.transfer_repo.create(
                from_user_id=command.from_user_id,
                to_user_id=command.to_user_id,
                amount=command.amount,
                note=command.note,
            )
            transfer_id = transfer.id
            idempotency_key = transfer.idempotency_key
            await self.uow.commit()

            logger.info(
                f"Transfer {idempotency_key} created: {command.from_user_id} -> "
                f"{command.to_user_id}, amount={command.amount}"
            )

            # Steps 5-6: Balance move, then FAILED transition if it did not complete
            fail_reason = await self._move_points(transfer_id, idempotency_key, command)

            if fail_reason is not None:
                await self.transfer_repo.update_status(
                    idempotency_key, TransferStatus.FAILED, fail_reason=fail_reason
                )
                await self.uow.commit()
                logger.warning(f"Transfer {idempotency_key} failed: {fail_reason}")
            else:
                logger.info(f"Transfer {idempotency_key} completed")

            # Step 7: Return the final record
            final_transfer = await self.transfer_repo.get_by_idempotency_key(idempotency_key)
            return Return.ok(TransferResponseDTO.from_entity(final_transfer))

        except SameUserError as e:
            await self.uow.rollback()
            return Return.err(Error(code="SAME_USER", message=str(e)))
        except ValidationError as e:
            await self.uow.rollback()
            return Return.err(Error(code="VALIDATION_ERROR", message=str(e)))
        except NotFoundError as e:
            await self.uow.rollback()
            return Return.err(Error(code="USER_NOT_FOUND", message=str(e)))
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Transfer processing failed: {e}")
            return Return.err(
                Error(
                    code="STORAGE_ERROR",
                    message="Failed to process transfer",
                    reason=str(e),
                )
            )

    async def _move_points(
        self, transfer_id: int, idempotency_key: str, command: CreateTransferCommandDTO
    ) -> Optional[str]:
        """
        Apply the balance move and complete the transfer atomically

        Returns:
            None when the transfer completed, otherwise the failure reason.
            Storage errors propagate and leave the transfer PENDING.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                await self._append_entries(transfer_id, idempotency_key, command)
                await self.transfer_repo.update_status(
                    idempotency_key,
                    TransferStatus.COMPLETED,
                    completed_at=datetime.utcnow(),
                )
                await self.uow.commit()
                return None

            except InsufficientFundsError as e:
                await self.uow.rollback()
                return str(e)

            except ConcurrentUpdateError as e:
                await self.uow.rollback()
                logger.warning(
                    f"Concurrent ledger update on transfer {idempotency_key} "
                    f"(attempt {attempt}/{self.max_attempts}): {e}"
                )

        return RETRY_LIMIT_REASON

    async def _append_entries(
        self, transfer_id: int, idempotency_key: str, command: CreateTransferCommandDTO
    ) -> None:
        sender_id = command.from_user_id
        receiver_id = command.to_user_id
        amount = command.amount

        # Lock in ascending user id order so opposite transfers cannot deadlock.
        # The version each balance was read at is the append's CAS token.
        snapshots = {}
        for user_id in sorted((sender_id, receiver_id)):
            snapshots[user_id] = await self.ledger_repo.balance_snapshot(user_id, for_update=True)

        sender_balance, sender_version = snapshots[sender_id]
        receiver_balance, receiver_version = snapshots[receiver_id]

        if sender_balance < amount:
            raise InsufficientFundsError(sender_id, sender_balance, amount)

        metadata = {
            "transfer_id": transfer_id,
            "idempotency_key": idempotency_key,
            "note": command.note,
        }

        await self.ledger_repo.append(
            user_id=sender_id,
            change=-amount,
            balance_after=sender_balance - amount,
            event_type=LedgerEventType.TRANSFER_OUT,
            expected_version=sender_version,
            transfer_id=transfer_id,
            reference=idempotency_key,
            metadata=metadata,
        )
        await self.ledger_repo.append(
            user_id=receiver_id,
            change=amount,
            balance_after=receiver_balance + amount,
            event_type=LedgerEventType.TRANSFER_IN,
            expected_version=receiver_version,
            transfer_id=transfer_id,
            reference=idempotency_key,
            metadata=metadata,
        )
