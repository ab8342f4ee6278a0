"""ReconcileLedger Use Case

Audits the point ledger against itself and against transfer records.
"""

import logging
import time
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.app.repositories.transfer_repository import TransferRepository
from src.app.services.user_directory import UserDirectory
from src.domain.ledger_entry import transfer_entries_problem
from src.domain.transfer import TransferStatus
from .dtos import LedgerDiscrepancyDTO, ReconciliationResultDTO

logger = logging.getLogger(__name__)


class ReconcileLedger:
    """
    Use Case: Reconcile point ledger

    Business Rules:
    1. Each user's versions run 1, 2, 3, ... without gaps
    2. balance_after of each entry equals the previous balance_after plus change;
       the first entry builds on the user's seed balance
    3. No balance_after is negative
    4. Each completed transfer has a balanced transfer_out/transfer_in pair
    5. Failed transfers have no ledger entries
    6. Does NOT modify any data (read-only reconciliation)
    """

    def __init__(
        self,
        transfer_repo: TransferRepository,
        ledger_repo: LedgerEntryRepository,
        user_directory: UserDirectory,
        batch_size: int = 500,
    ):
        self.transfer_repo = transfer_repo
        self.ledger_repo = ledger_repo
        self.user_directory = user_directory
        self.batch_size = batch_size

    async def execute(self) -> Result[ReconciliationResultDTO]:
        """
        Execute ledger reconciliation

        Returns:
            Result[ReconciliationResultDTO]: Reconciliation result with any discrepancies
        """
        start_time = time.time()
        reconciliation_time = datetime.utcnow()

        try:
            logger.info("Starting point ledger reconciliation")

            discrepancies: list[LedgerDiscrepancyDTO] = []

            # Step 1: Per-user balance chains
            user_ids = await self.ledger_repo.list_user_ids()
            logger.info(f"Found {len(user_ids)} users with ledger history")

            for user_id in user_ids:
                history = await self.ledger_repo.get_history(user_id)
                user = await self.user_directory.get_user_by_id(user_id)
                if user is None:
                    discrepancies.append(
                        LedgerDiscrepancyDTO(
                            kind="unknown_user",
                            user_id=user_id,
                            detail=f"{len(history)} ledger entries for an unknown user",
                        )
                    )
                seed = user.points if user is not None else None
                discrepancies.extend(self._check_chain(user_id, history, seed))

            # Step 2: Conservation per completed transfer
            transfers_checked = 0
            async for transfer in self._iter_transfers(TransferStatus.COMPLETED):
                transfers_checked += 1
                entries = await self.ledger_repo.list_by_transfer(transfer.id)
                problem = transfer_entries_problem(
                    entries, transfer.from_user_id, transfer.to_user_id, transfer.amount
                )
                if problem:
                    discrepancies.append(
                        LedgerDiscrepancyDTO(
                            kind="unbalanced_transfer",
                            transfer_id=transfer.id,
                            detail=f"Transfer {transfer.idempotency_key}: {problem}",
                        )
                    )

            # Step 3: Failed transfers must not have moved points
            async for transfer in self._iter_transfers(TransferStatus.FAILED):
                transfers_checked += 1
                entries = await self.ledger_repo.list_by_transfer(transfer.id)
                if entries:
                    discrepancies.append(
                        LedgerDiscrepancyDTO(
                            kind="orphan_entries",
                            transfer_id=transfer.id,
                            detail=(
                                f"Failed transfer {transfer.idempotency_key} "
                                f"has {len(entries)} ledger entries"
                            ),
                        )
                    )

            for d in discrepancies:
                logger.warning(f"Ledger discrepancy [{d.kind}]: {d.detail}")

            execution_time_ms = int((time.time() - start_time) * 1000)

            logger.info(
                f"Reconciliation complete: {len(user_ids)} users, {transfers_checked} transfers, "
                f"{len(discrepancies)} discrepancies in {execution_time_ms}ms"
            )

            return Return.ok(
                ReconciliationResultDTO(
                    users_checked=len(user_ids),
                    transfers_checked=transfers_checked,
                    discrepancies_found=len(discrepancies),
                    discrepancies=discrepancies,
                    reconciliation_time=reconciliation_time,
                    execution_time_ms=execution_time_ms,
                )
            )

        except Exception as e:
            logger.error(f"Ledger reconciliation failed: {e}")
            return Return.err(
                Error(
                    code="RECONCILIATION_FAILED",
                    message="Failed to reconcile ledger",
                    reason=str(e),
                )
            )

    async def _iter_transfers(self, status: TransferStatus):
        offset = 0
        while True:
            batch = await self.transfer_repo.list_by_status(
                status, limit=self.batch_size, offset=offset
            )
            for transfer in batch:
                yield transfer
            if len(batch) < self.batch_size:
                return
            offset += self.batch_size

    def _check_chain(
        self, user_id: int, history: list, seed: Optional[int]
    ) -> list[LedgerDiscrepancyDTO]:
        found = []
        previous = None
        expected_version = 1

        for entry in history:
            if entry.version != expected_version:
                found.append(
                    LedgerDiscrepancyDTO(
                        kind="version_gap",
                        user_id=user_id,
                        ledger_entry_id=entry.id,
                        detail=f"expected version {expected_version}, found {entry.version}",
                    )
                )

            if previous is not None:
                base, label = previous.balance_after, str(previous.balance_after)
            else:
                base, label = seed, f"seed {seed}"

            if base is not None and entry.balance_after != base + entry.change:
                found.append(
                    LedgerDiscrepancyDTO(
                        kind="chain_break",
                        user_id=user_id,
                        ledger_entry_id=entry.id,
                        detail=f"balance_after={entry.balance_after}, expected {label} + {entry.change}",
                    )
                )

            if entry.balance_after < 0:
                found.append(
                    LedgerDiscrepancyDTO(
                        kind="negative_balance",
                        user_id=user_id,
                        ledger_entry_id=entry.id,
                        detail=f"balance_after={entry.balance_after}",
                    )
                )

            previous = entry
            expected_version = entry.version + 1

        return found
