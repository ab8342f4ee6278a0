"""Unit tests for LedgerReconcilerWorker

Tests cover:
- Worker initialization with configuration
- run_once resolving pending transfers, then reconciling
- Reconciliation disabled scenario
- Use case errors
- run_forever continuous execution
- Shutdown and cleanup
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from datetime import datetime

from src.worker.ledger_reconciler import LedgerReconcilerWorker
from src.app.use_cases.transfers.dtos import (
    LedgerDiscrepancyDTO,
    ReconciliationResultDTO,
    ResolvePendingResultDTO,
)


class StopLoop(BaseException):
    """Breaks out of run_forever in tests"""


@pytest.fixture
def sample_reconciliation_result():
    """Sample successful reconciliation result"""
    return ReconciliationResultDTO(
        users_checked=10,
        transfers_checked=25,
        discrepancies_found=0,
        discrepancies=[],
        reconciliation_time=datetime.utcnow(),
        execution_time_ms=150,
    )


@pytest.fixture
def sample_discrepancy_result():
    """Sample reconciliation result with discrepancies"""
    return ReconciliationResultDTO(
        users_checked=10,
        transfers_checked=25,
        discrepancies_found=2,
        discrepancies=[
            LedgerDiscrepancyDTO(
                kind="chain_break",
                user_id=3,
                ledger_entry_id=41,
                detail="balance_after=900, expected 1000 + -50",
            ),
            LedgerDiscrepancyDTO(
                kind="unbalanced_transfer",
                transfer_id=7,
                detail="Transfer key-7: expected 2 ledger entries, found 1",
            ),
        ],
        reconciliation_time=datetime.utcnow(),
        execution_time_ms=250,
    )


def _ok(value):
    result = MagicMock()
    result.is_err.return_value = False
    result.value = value
    return result


def _err(message):
    result = MagicMock()
    result.is_err.return_value = True
    result.error = MagicMock(message=message)
    return result


def _session_factory():
    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=session)


class TestLedgerReconcilerWorkerInit:
    """Test worker initialization"""

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    def test_initializes_with_default_config(self, mock_create_engine, mock_app_config):
        mock_app_config.DB_URI = "sqlite+aiosqlite:///./default.db"
        mock_app_config.PENDING_TRANSFER_TIMEOUT_SECONDS = 300
        mock_create_engine.return_value = MagicMock()

        worker = LedgerReconcilerWorker()

        assert worker.db_uri == "sqlite+aiosqlite:///./default.db"
        assert worker.pending_timeout_seconds == 300
        mock_create_engine.assert_called_once()

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    def test_initializes_with_custom_values(self, mock_create_engine, mock_app_config):
        mock_app_config.DB_URI = "sqlite+aiosqlite:///./default.db"
        mock_create_engine.return_value = MagicMock()

        worker = LedgerReconcilerWorker(
            db_uri="sqlite+aiosqlite:///./custom.db", pending_timeout_seconds=60
        )

        assert worker.db_uri == "sqlite+aiosqlite:///./custom.db"
        assert worker.pending_timeout_seconds == 60


@pytest.mark.asyncio
class TestLedgerReconcilerWorkerRunOnce:
    """Test run_once execution"""

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.ReconcileLedger")
    @patch("src.worker.ledger_reconciler.ResolvePendingTransfers")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    @patch("src.worker.ledger_reconciler.sessionmaker")
    async def test_run_once_resolves_then_reconciles(
        self,
        mock_sessionmaker,
        mock_create_engine,
        mock_resolve_class,
        mock_reconcile_class,
        mock_app_config,
        sample_reconciliation_result,
    ):
        """
        Given: Reconciliation is enabled
        When: run_once is called
        Then: Pending transfers are resolved and the ledger is reconciled
        """
        mock_app_config.RECONCILIATION_ENABLED = True
        mock_sessionmaker.return_value = _session_factory()
        mock_create_engine.return_value = MagicMock()

        mock_resolve_class.return_value.execute = AsyncMock(
            return_value=_ok(ResolvePendingResultDTO(transfers_checked=1, failed=["key-1"]))
        )
        mock_reconcile_class.return_value.execute = AsyncMock(
            return_value=_ok(sample_reconciliation_result)
        )

        worker = LedgerReconcilerWorker(pending_timeout_seconds=120)
        result = await worker.run_once()

        assert result.users_checked == 10
        assert result.discrepancies_found == 0
        mock_resolve_class.return_value.execute.assert_awaited_once()
        mock_reconcile_class.return_value.execute.assert_awaited_once()
        assert mock_resolve_class.call_args.kwargs["timeout_seconds"] == 120

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.ReconcileLedger")
    @patch("src.worker.ledger_reconciler.ResolvePendingTransfers")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    @patch("src.worker.ledger_reconciler.sessionmaker")
    async def test_run_once_returns_discrepancies(
        self,
        mock_sessionmaker,
        mock_create_engine,
        mock_resolve_class,
        mock_reconcile_class,
        mock_app_config,
        sample_discrepancy_result,
    ):
        mock_app_config.RECONCILIATION_ENABLED = True
        mock_sessionmaker.return_value = _session_factory()
        mock_create_engine.return_value = MagicMock()

        mock_resolve_class.return_value.execute = AsyncMock(
            return_value=_ok(ResolvePendingResultDTO(transfers_checked=1, skipped=["key-7"]))
        )
        mock_reconcile_class.return_value.execute = AsyncMock(
            return_value=_ok(sample_discrepancy_result)
        )

        worker = LedgerReconcilerWorker()
        result = await worker.run_once()

        assert result.discrepancies_found == 2
        assert [d.kind for d in result.discrepancies] == ["chain_break", "unbalanced_transfer"]

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.ReconcileLedger")
    @patch("src.worker.ledger_reconciler.ResolvePendingTransfers")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    async def test_run_once_skips_when_disabled(
        self, mock_create_engine, mock_resolve_class, mock_reconcile_class, mock_app_config
    ):
        mock_app_config.RECONCILIATION_ENABLED = False
        mock_create_engine.return_value = MagicMock()

        worker = LedgerReconcilerWorker()
        result = await worker.run_once()

        assert result.users_checked == 0
        assert result.discrepancies_found == 0
        assert result.execution_time_ms == 0
        mock_resolve_class.assert_not_called()
        mock_reconcile_class.assert_not_called()

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.ReconcileLedger")
    @patch("src.worker.ledger_reconciler.ResolvePendingTransfers")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    @patch("src.worker.ledger_reconciler.sessionmaker")
    async def test_run_once_raises_on_reconciliation_error(
        self,
        mock_sessionmaker,
        mock_create_engine,
        mock_resolve_class,
        mock_reconcile_class,
        mock_app_config,
    ):
        mock_app_config.RECONCILIATION_ENABLED = True
        mock_sessionmaker.return_value = _session_factory()
        mock_create_engine.return_value = MagicMock()

        mock_resolve_class.return_value.execute = AsyncMock(
            return_value=_ok(ResolvePendingResultDTO(transfers_checked=0))
        )
        mock_reconcile_class.return_value.execute = AsyncMock(
            return_value=_err("Failed to reconcile ledger")
        )

        worker = LedgerReconcilerWorker()
        with pytest.raises(RuntimeError, match="Reconciliation failed"):
            await worker.run_once()

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.ReconcileLedger")
    @patch("src.worker.ledger_reconciler.ResolvePendingTransfers")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    @patch("src.worker.ledger_reconciler.sessionmaker")
    async def test_run_once_raises_on_resolve_error(
        self,
        mock_sessionmaker,
        mock_create_engine,
        mock_resolve_class,
        mock_reconcile_class,
        mock_app_config,
    ):
        mock_app_config.RECONCILIATION_ENABLED = True
        mock_sessionmaker.return_value = _session_factory()
        mock_create_engine.return_value = MagicMock()

        mock_resolve_class.return_value.execute = AsyncMock(
            return_value=_err("Failed to resolve pending transfers")
        )

        worker = LedgerReconcilerWorker()
        with pytest.raises(RuntimeError, match="Resolving pending transfers failed"):
            await worker.run_once()

        mock_reconcile_class.assert_not_called()


@pytest.mark.asyncio
class TestLedgerReconcilerWorkerShutdown:
    """Test shutdown and cleanup"""

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    async def test_shutdown_disposes_engine(self, mock_create_engine, mock_app_config):
        mock_engine = MagicMock()
        mock_engine.dispose = AsyncMock()
        mock_create_engine.return_value = mock_engine

        worker = LedgerReconcilerWorker()
        await worker.shutdown()

        mock_engine.dispose.assert_awaited_once()


@pytest.mark.asyncio
class TestLedgerReconcilerWorkerRunForever:
    """Test run_forever continuous execution"""

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.asyncio.sleep")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    async def test_run_forever_sleeps_between_runs(
        self, mock_create_engine, mock_sleep, mock_app_config
    ):
        mock_app_config.RECONCILIATION_ENABLED = False
        mock_create_engine.return_value = MagicMock()

        call_count = 0

        async def limited_sleep(seconds):
            nonlocal call_count
            call_count += 1
            if call_count >= 2:
                raise StopLoop()

        mock_sleep.side_effect = limited_sleep

        worker = LedgerReconcilerWorker()
        with pytest.raises(StopLoop):
            await worker.run_forever(interval_seconds=3600)

        assert mock_sleep.call_count == 2
        mock_sleep.assert_called_with(3600)

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.asyncio.sleep")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    async def test_run_forever_continues_after_failure(
        self, mock_create_engine, mock_sleep, mock_app_config
    ):
        mock_create_engine.return_value = MagicMock()
        mock_sleep.side_effect = [None, StopLoop()]

        worker = LedgerReconcilerWorker()
        worker.run_once = AsyncMock(side_effect=[RuntimeError("boom"), RuntimeError("boom again")])

        with pytest.raises(StopLoop):
            await worker.run_forever(interval_seconds=10)

        assert worker.run_once.await_count == 2
