import itertools
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import src.domain  # noqa: F401
from src.depends import get_session
from src.domain.user import User


@pytest_asyncio.fixture(scope="function")
async def engine():
    """Create an isolated in-memory SQLite database per test"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    """Create a new database session for each test"""
    Session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with Session() as session:
        yield session


@pytest_asyncio.fixture
async def make_user(db_session):
    """Factory inserting a user with a seed balance"""
    counter = itertools.count(1)

    async def _make_user(points: int = 0, email: str = None) -> User:
        user = User(
            first_name="Test",
            last_name="User",
            email=email or f"user{next(counter)}@example.com",
            points=points,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest_asyncio.fixture
async def client(db_session):
    """Create test client with database session override"""
    from src.api.app import create_app
    from config import ApplicationConfig

    app = create_app(ApplicationConfig)

    # Override the session dependency to use test session
    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session

    # Use ASGITransport for httpx AsyncClient
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
