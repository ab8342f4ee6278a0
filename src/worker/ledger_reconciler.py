"""Ledger Reconciliation Background Worker

Periodically finishes stale pending transfers and audits the point ledger.
Can be run as a standalone script or integrated with a scheduler.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories.ledger_entry_repository import SqlAlchemyLedgerEntryRepository
from src.adapter.repositories.transfer_repository import SqlAlchemyTransferRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.adapter.services.user_directory import SqlAlchemyUserDirectory
from src.app.use_cases.transfers import (
    ReconcileLedger,
    ReconciliationResultDTO,
    ResolvePendingTransfers,
    ResolvePendingResultDTO,
)

logger = logging.getLogger(__name__)


class LedgerReconcilerWorker:
    """
    Background worker for point ledger maintenance

    Features:
    - Resolves transfers stuck in PENDING past the timeout
    - Verifies balance chains and per-transfer conservation
    - Logs discrepancies for investigation
    - Can run once or continuously

    Usage:
        # Run once
        worker = LedgerReconcilerWorker()
        result = await worker.run_once()

        # Run continuously
        worker = LedgerReconcilerWorker()
        await worker.run_forever(interval_seconds=86400)  # Daily
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        pending_timeout_seconds: Optional[int] = None,
    ):
        """
        Initialize the worker

        Args:
            db_uri: Database URI (defaults to ApplicationConfig.DB_URI)
            pending_timeout_seconds: Age after which a PENDING transfer is resolved
                (defaults to ApplicationConfig.PENDING_TRANSFER_TIMEOUT_SECONDS)
        """
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        if pending_timeout_seconds is None:
            pending_timeout_seconds = ApplicationConfig.PENDING_TRANSFER_TIMEOUT_SECONDS
        self.pending_timeout_seconds = pending_timeout_seconds

        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info("LedgerReconcilerWorker initialized")

    async def resolve_pending(self) -> ResolvePendingResultDTO:
        """Move stale PENDING transfers to a terminal state"""
        async with self.async_session_factory() as session:
            uow = SqlAlchemyUnitOfWork(session)
            user_directory = SqlAlchemyUserDirectory(session)

            use_case = ResolvePendingTransfers(
                uow=uow,
                transfer_repo=SqlAlchemyTransferRepository(session),
                ledger_repo=SqlAlchemyLedgerEntryRepository(session, user_directory),
                timeout_seconds=self.pending_timeout_seconds,
            )

            result = await use_case.execute()

            if result.is_err():
                logger.error(f"Resolving pending transfers failed: {result.error.message}")
                raise RuntimeError(f"Resolving pending transfers failed: {result.error.message}")

            response = result.value
            if response.skipped:
                logger.error(
                    f"ALERT: {len(response.skipped)} pending transfers need manual review: "
                    f"{', '.join(response.skipped)}"
                )
            return response

    async def run_once(self) -> ReconciliationResultDTO:
        """
        Resolve stale transfers, then run reconciliation once

        Returns:
            ReconciliationResultDTO with reconciliation results
        """
        if not ApplicationConfig.RECONCILIATION_ENABLED:
            logger.info("Ledger reconciliation is disabled, skipping")
            return ReconciliationResultDTO(
                users_checked=0,
                transfers_checked=0,
                discrepancies_found=0,
                discrepancies=[],
                reconciliation_time=datetime.utcnow(),
                execution_time_ms=0,
            )

        resolved = await self.resolve_pending()
        logger.info(
            f"Pending transfers: {resolved.transfers_checked} checked, "
            f"{len(resolved.completed)} completed, {len(resolved.failed)} failed"
        )

        async with self.async_session_factory() as session:
            user_directory = SqlAlchemyUserDirectory(session)

            use_case = ReconcileLedger(
                transfer_repo=SqlAlchemyTransferRepository(session),
                ledger_repo=SqlAlchemyLedgerEntryRepository(session, user_directory),
                user_directory=user_directory,
            )

            result = await use_case.execute()

            if result.is_err():
                logger.error(f"Reconciliation failed: {result.error.message}")
                raise RuntimeError(f"Reconciliation failed: {result.error.message}")

            response = result.value

            if response.discrepancies_found > 0:
                logger.error(
                    f"ALERT: {response.discrepancies_found} ledger discrepancies found!"
                )
                for d in response.discrepancies:
                    logger.error(
                        f"  - [{d.kind}] user={d.user_id} transfer={d.transfer_id} "
                        f"entry={d.ledger_entry_id}: {d.detail}"
                    )

            return response

    async def run_forever(self, interval_seconds: int = 86400):
        """
        Run reconciliation continuously at specified interval

        Args:
            interval_seconds: Seconds between reconciliation runs (default: 24 hours)
        """
        logger.info(
            f"Starting continuous ledger reconciliation with {interval_seconds}s interval"
        )

        while True:
            try:
                result = await self.run_once()
                logger.info(
                    f"Reconciliation cycle complete. "
                    f"Checked {result.users_checked} users and {result.transfers_checked} transfers, "
                    f"found {result.discrepancies_found} discrepancies "
                    f"in {result.execution_time_ms}ms"
                )
            except Exception as e:
                logger.error(f"Reconciliation cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.engine.dispose()
        logger.info("LedgerReconcilerWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        # Run once
        python -m src.worker.ledger_reconciler --once

        # Run continuously (default: RECONCILIATION_INTERVAL_SECONDS)
        python -m src.worker.ledger_reconciler

        # Run continuously with custom interval (in seconds)
        python -m src.worker.ledger_reconciler --interval 3600
    """
    import argparse

    logging.basicConfig(
        level=getattr(logging, str(ApplicationConfig.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Point Ledger Reconciliation Worker")
    parser.add_argument(
        "--once", action="store_true", help="Run once and exit"
    )
    parser.add_argument(
        "--interval", type=int, default=ApplicationConfig.RECONCILIATION_INTERVAL_SECONDS,
        help="Interval between runs in seconds (default: 86400 = 24 hours)"
    )
    args = parser.parse_args()

    worker = LedgerReconcilerWorker()

    try:
        if args.once:
            result = await worker.run_once()
            print("Reconciliation complete:")
            print(f"  Users checked: {result.users_checked}")
            print(f"  Transfers checked: {result.transfers_checked}")
            print(f"  Discrepancies found: {result.discrepancies_found}")
            print(f"  Execution time: {result.execution_time_ms}ms")
            if result.discrepancies:
                print("\nDiscrepancies:")
                for d in result.discrepancies:
                    print(f"  - [{d.kind}] {d.detail}")
        else:
            await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
