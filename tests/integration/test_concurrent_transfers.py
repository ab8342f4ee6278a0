"""Integration tests for transfers racing on the same sender

Each test runs two CreateTransfer executions on separate sessions of a
file-backed SQLite database. The first transfer commits after the second
one has read the sender's balance under lock but before it appends.

Tests cover:
- A race that would overdraw the sender fails the second transfer
- A race both transfers can afford retries the second one and completes
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import src.domain  # noqa: F401
from src.adapter.repositories.ledger_entry_repository import SqlAlchemyLedgerEntryRepository
from src.adapter.repositories.transfer_repository import SqlAlchemyTransferRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.adapter.services.user_directory import SqlAlchemyUserDirectory
from src.app.use_cases.transfers import CreateTransfer, CreateTransferCommandDTO, ReconcileLedger
from src.domain.user import User


class InterleavingLedgerRepository(SqlAlchemyLedgerEntryRepository):
    """Runs another coroutine right after the first locked balance read"""

    def __init__(self, session, user_directory, interleave):
        super().__init__(session, user_directory)
        self.interleave = interleave
        self.locked_reads = []

    async def balance_snapshot(self, user_id, for_update=False):
        snapshot = await super().balance_snapshot(user_id, for_update=for_update)
        if for_update:
            self.locked_reads.append(user_id)
            if self.interleave is not None:
                interleave, self.interleave = self.interleave, None
                await interleave()
        return snapshot


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Sessions on a file-backed database, each on its own connection"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'points.db'}", echo=False, future=True)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


async def _seed(session_factory, *points):
    async with session_factory() as session:
        users = [
            User(first_name="Test", last_name="User", email=f"racer{i}@example.com", points=p)
            for i, p in enumerate(points, 1)
        ]
        session.add_all(users)
        await session.commit()
        return [user.id for user in users]


def _create_transfer(session, ledger_repo=None):
    user_directory = SqlAlchemyUserDirectory(session)
    if ledger_repo is None:
        ledger_repo = SqlAlchemyLedgerEntryRepository(session, user_directory)
    return CreateTransfer(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyTransferRepository(session),
        ledger_repo,
        user_directory,
    )


async def _race(session_factory, sender_id, first_to, second_to, amount):
    """Run two transfers from sender_id, the first landing inside the second"""
    outcome = {}

    async def first_transfer():
        async with session_factory() as session:
            outcome["first"] = await _create_transfer(session).execute(
                CreateTransferCommandDTO(from_user_id=sender_id, to_user_id=first_to, amount=amount)
            )

    async with session_factory() as session:
        ledger_repo = InterleavingLedgerRepository(
            session, SqlAlchemyUserDirectory(session), first_transfer
        )
        outcome["second"] = await _create_transfer(session, ledger_repo).execute(
            CreateTransferCommandDTO(from_user_id=sender_id, to_user_id=second_to, amount=amount)
        )
        outcome["locked_reads"] = ledger_repo.locked_reads

    return outcome


async def _ledger_state(session_factory, user_ids):
    async with session_factory() as session:
        user_directory = SqlAlchemyUserDirectory(session)
        ledger_repo = SqlAlchemyLedgerEntryRepository(session, user_directory)
        balances = [await ledger_repo.current_balance(user_id) for user_id in user_ids]
        history = [
            (e.version, e.change, e.balance_after)
            for e in await ledger_repo.get_history(user_ids[0])
        ]
        audit = await ReconcileLedger(
            SqlAlchemyTransferRepository(session), ledger_repo, user_directory
        ).execute()
        return balances, history, audit


@pytest.mark.asyncio
class TestConcurrentTransfers:
    """Two transfers from one sender committing in between each other"""

    async def test_race_that_would_overdraw_fails_second_transfer(self, session_factory):
        """
        Given: Sender has 1000 points and two transfers of 800 pass the pre-check
        When: The first completes after the second has read the sender at 1000
        Then: The second loses its append, re-reads 200 and fails; no points are created
        """
        sender_id, bob_id, carol_id = await _seed(session_factory, 1000, 0, 0)

        outcome = await _race(session_factory, sender_id, carol_id, bob_id, 800)

        assert outcome["first"].value.status == "completed"
        second = outcome["second"].value
        assert second.status == "failed"
        assert second.fail_reason == "Insufficient points. Required: 800, Available: 200"
        # sender, receiver, then the sender again on the retry
        assert outcome["locked_reads"] == [sender_id, bob_id, sender_id]

        balances, history, audit = await _ledger_state(session_factory, [sender_id, bob_id, carol_id])
        assert balances == [200, 0, 800]
        assert sum(balances) == 1000
        assert history == [(1, -800, 200)]
        assert audit.value.discrepancies == []

    async def test_race_both_can_afford_retries_and_completes(self, session_factory):
        """
        Given: Sender has 1000 points and two transfers of 300
        When: The first completes after the second has read the sender at 1000
        Then: The second retries against the new balance and both complete
        """
        sender_id, bob_id, carol_id = await _seed(session_factory, 1000, 0, 0)

        outcome = await _race(session_factory, sender_id, carol_id, bob_id, 300)

        assert outcome["first"].value.status == "completed"
        assert outcome["second"].value.status == "completed"
        assert outcome["locked_reads"] == [sender_id, bob_id, sender_id, bob_id]

        balances, history, audit = await _ledger_state(session_factory, [sender_id, bob_id, carol_id])
        assert balances == [400, 300, 300]
        assert sum(balances) == 1000
        assert history == [(1, -300, 700), (2, -300, 400)]
        assert audit.value.discrepancies == []
