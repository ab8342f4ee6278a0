"""ResolvePendingTransfers Use Case

Finishes transfers left PENDING by a crash or a failed status write.
"""

import logging
from datetime import datetime, timedelta
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.app.repositories.transfer_repository import TransferRepository
from src.domain.ledger_entry import transfer_entries_problem
from src.domain.transfer import TransferStatus
from .dtos import ResolvePendingResultDTO

logger = logging.getLogger(__name__)

ABANDONED_REASON = "abandoned while pending"


class ResolvePendingTransfers:
    """
    Use Case: Resolve stale PENDING transfers

    Business Rules:
    1. Only transfers PENDING for longer than the timeout are touched
    2. A balanced entry pair means points moved: mark COMPLETED
    3. No entries means points never moved: mark FAILED
    4. Any other shape is left PENDING and reported for manual review
    5. Each transfer is committed on its own
    """

    def __init__(
        self,
        uow: UnitOfWork,
        transfer_repo: TransferRepository,
        ledger_repo: LedgerEntryRepository,
        timeout_seconds: int = 300,
        batch_size: int = 100,
    ):
        self.uow = uow
        self.transfer_repo = transfer_repo
        self.ledger_repo = ledger_repo
        self.timeout_seconds = timeout_seconds
        self.batch_size = batch_size

    async def execute(self) -> Result[ResolvePendingResultDTO]:
        cutoff = datetime.utcnow() - timedelta(seconds=self.timeout_seconds)
        result = ResolvePendingResultDTO(transfers_checked=0)

        try:
            pending = await self.transfer_repo.list_pending_before(cutoff, limit=self.batch_size)
            result.transfers_checked = len(pending)

            for transfer in pending:
                key = transfer.idempotency_key
                entries = await self.ledger_repo.list_by_transfer(transfer.id)

                if not entries:
                    await self.transfer_repo.update_status(
                        key, TransferStatus.FAILED, fail_reason=ABANDONED_REASON
                    )
                    await self.uow.commit()
                    result.failed.append(key)
                    logger.info(f"Pending transfer {key} marked failed: {ABANDONED_REASON}")
                    continue

                problem = transfer_entries_problem(
                    entries, transfer.from_user_id, transfer.to_user_id, transfer.amount
                )
                if problem:
                    result.skipped.append(key)
                    logger.error(f"Pending transfer {key} needs manual review: {problem}")
                    continue

                await self.transfer_repo.update_status(
                    key,
                    TransferStatus.COMPLETED,
                    completed_at=max(e.created_at for e in entries),
                )
                await self.uow.commit()
                result.completed.append(key)
                logger.info(f"Pending transfer {key} marked completed from ledger entries")

            return Return.ok(result)

        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Resolving pending transfers failed: {e}")
            return Return.err(
                Error(
                    code="RESOLVE_PENDING_FAILED",
                    message="Failed to resolve pending transfers",
                    reason=str(e),
                )
            )
