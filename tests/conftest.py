"""
Pytest fixtures for test database, client, and authentication.

Each test gets its own file-backed SQLite database (so that independent
sessions can run concurrently against it) with tables created from the
models and dropped afterwards.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_bootstrap.db")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("NOTIFIER", "log")
os.environ.setdefault("REMINDER_SWEEP_ENABLED", "false")

from datetime import date, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from tablerewards.main import app
from tablerewards.db.base import Base
from tablerewards.db.session import create_engine_for_url, get_db, make_session_factory
from tablerewards.core.security import create_access_token, hash_password
from tablerewards.models.user import User, UserRole
from tablerewards.models.restaurant import Restaurant
from tablerewards.services.interfaces.notifier import BookingNotifier
from tablerewards.services.notifier_factory import get_notifier
from tablerewards.services.notification_service import drain_notifications


class RecordingNotifier(BookingNotifier):
    """Test double that records calls and can be told to fail."""

    def __init__(self):
        self.confirmations: list[int] = []
        self.reminders: list[int] = []
        self.fail_reminders_for: set[int] = set()
        self.fail_confirmations = False

    async def notify_booking_confirmed(self, booking_id: int) -> None:
        if self.fail_confirmations:
            raise RuntimeError("email provider down")
        self.confirmations.append(booking_id)

    async def send_booking_reminder(self, booking_id: int) -> None:
        if booking_id in self.fail_reminders_for:
            raise RuntimeError("email provider down")
        self.reminders.append(booking_id)


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    test_engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await drain_notifications()
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, notifier: RecordingNotifier) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB and notifier dependencies."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _make_user(db: AsyncSession, email: str, name: str, role: UserRole) -> User:
    user = User(
        email=email,
        name=name,
        hashed_password=hash_password("testpassword123"),
        role=role.value,
        points=0,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """A customer."""
    return await _make_user(db_session, "test@example.com", "Thandi", UserRole.CUSTOMER)


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "other@example.com", "Sipho", UserRole.CUSTOMER)


@pytest_asyncio.fixture
async def manager_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "manager@example.com", "Lerato", UserRole.RESTAURANT_MANAGER)


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "admin@example.com", "Admin", UserRole.ADMIN)


def _headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(user.id)})}"}


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Authorization headers with Bearer token."""
    return _headers(test_user)


@pytest.fixture
def other_headers(other_user: User) -> dict:
    return _headers(other_user)


@pytest.fixture
def manager_headers(manager_user: User) -> dict:
    return _headers(manager_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return _headers(admin_user)


@pytest_asyncio.fixture
async def test_restaurant(db_session: AsyncSession, manager_user: User) -> Restaurant:
    """A small restaurant: 4 covers per slot, run by manager_user."""
    restaurant = Restaurant(
        name="Test Bistro",
        cuisine="Italian",
        location="Cape Town",
        description="A test restaurant",
        capacity=4,
        admin_id=manager_user.id,
    )
    db_session.add(restaurant)
    await db_session.flush()
    await db_session.refresh(restaurant)
    await db_session.commit()
    return restaurant


@pytest.fixture
def booking_date() -> date:
    return date.today() + timedelta(days=7)
