"""Unit tests for GetBalance and ListLedgerEntries use cases"""

import pytest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.transfers.get_balance import GetBalance
from src.app.use_cases.transfers.list_ledger_entries import ListLedgerEntries
from src.domain.ledger_entry import LedgerEntry, LedgerEventType
from src.domain.user import User


@pytest.fixture
def mock_ledger_repo():
    return MagicMock()


@pytest.fixture
def mock_user_directory():
    directory = MagicMock()
    user = User(id=1, first_name="A", last_name="B", email="a@example.com", points=1500)
    directory.get_user_by_id = AsyncMock(side_effect=lambda user_id: user if user_id == 1 else None)
    return directory


def _entry(version, change, balance_after):
    return LedgerEntry(
        id=version,
        user_id=1,
        version=version,
        change=change,
        balance_after=balance_after,
        event_type=LedgerEventType.TRANSFER_OUT if change < 0 else LedgerEventType.TRANSFER_IN,
        transfer_id=version,
        metadata_json='{"note": null, "transfer_id": 1}',
        created_at=datetime(2024, 1, 1, 12, version),
    )


@pytest.mark.asyncio
class TestGetBalance:
    """Test balance derivation"""

    async def test_seed_balance_without_history(self, mock_ledger_repo, mock_user_directory):
        mock_ledger_repo.latest_entry = AsyncMock(return_value=None)

        result = await GetBalance(mock_ledger_repo, mock_user_directory).execute(1)

        assert result.is_ok()
        assert result.value.balance == 1500
        assert result.value.last_updated is None

    async def test_latest_entry_balance(self, mock_ledger_repo, mock_user_directory):
        latest = _entry(2, -500, 1000)
        mock_ledger_repo.latest_entry = AsyncMock(return_value=latest)

        result = await GetBalance(mock_ledger_repo, mock_user_directory).execute(1)

        assert result.is_ok()
        assert result.value.balance == 1000
        assert result.value.last_updated == latest.created_at
        assert result.value.model_dump(by_alias=True)["userId"] == 1

    async def test_unknown_user(self, mock_ledger_repo, mock_user_directory):
        mock_ledger_repo.latest_entry = AsyncMock()

        result = await GetBalance(mock_ledger_repo, mock_user_directory).execute(9)

        assert result.is_err()
        assert result.error.code == "USER_NOT_FOUND"
        mock_ledger_repo.latest_entry.assert_not_called()


@pytest.mark.asyncio
class TestListLedgerEntries:
    """Test ledger history listing"""

    async def test_lists_entries(self, mock_ledger_repo, mock_user_directory):
        mock_ledger_repo.list_by_user = AsyncMock(return_value=[_entry(2, 500, 2000), _entry(1, -500, 1000)])

        result = await ListLedgerEntries(mock_ledger_repo, mock_user_directory).execute(1, limit=10, offset=0)

        assert result.is_ok()
        assert [e.version for e in result.value.data] == [2, 1]
        assert result.value.data[0].event_type == "transfer_in"
        assert result.value.data[1].metadata == {"note": None, "transfer_id": 1}
        mock_ledger_repo.list_by_user.assert_awaited_once_with(1, limit=10, offset=0)

    @pytest.mark.parametrize("limit,offset", [(0, 0), (201, 0), (10, -1)])
    async def test_invalid_window(self, mock_ledger_repo, mock_user_directory, limit, offset):
        result = await ListLedgerEntries(mock_ledger_repo, mock_user_directory).execute(
            1, limit=limit, offset=offset
        )

        assert result.is_err()
        assert result.error.code == "VALIDATION_ERROR"

    async def test_unknown_user(self, mock_ledger_repo, mock_user_directory):
        result = await ListLedgerEntries(mock_ledger_repo, mock_user_directory).execute(5)

        assert result.is_err()
        assert result.error.code == "USER_NOT_FOUND"
