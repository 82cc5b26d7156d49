"""
Pytest fixtures for loginvault tests.
"""

import os
import tempfile
import uuid
from datetime import datetime, timedelta
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, List, Tuple

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

# Use file-based SQLite so all connections share the same DB (in-memory is per-connection)
_tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_tmp.close()
TEST_DB_PATH = _tmp.name
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from loginvault.config import CredentialPolicy, get_settings

get_settings.cache_clear()

from loginvault.database import build_engine, build_session_maker
from loginvault.kernel.events.event_types import NotificationEvent
from loginvault.kernel.events.notifier import Notifier
from loginvault.kernel.identity.password import PasswordHasher
from loginvault.kernel.models.base import Base, utc_now
from loginvault.kernel.models.user import User
from loginvault.kernel.stores.record_store import RecordStore
from loginvault.kernel.stores.user_store import UserStore


class RecordingNotifier(Notifier):
    """Keeps every sent event in memory."""

    def __init__(self):
        self.events: List[Tuple[NotificationEvent, Dict[str, Any]]] = []

    def send(self, event: NotificationEvent, payload: Dict[str, Any]) -> None:
        self.events.append((event, payload))

    def of(self, event: NotificationEvent) -> List[Dict[str, Any]]:
        return [payload for name, payload in self.events if name == event]


class BrokenNotifier(Notifier):
    """Fails on every send."""

    def send(self, event: NotificationEvent, payload: Dict[str, Any]) -> None:
        raise RuntimeError("notification pipeline down")


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None):
        self.now = start or utc_now()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


def pytest_sessionfinish(session, exitstatus):
    """Clean up temp DB file after test run."""
    for suffix in ("", "-wal", "-shm"):
        path = TEST_DB_PATH + suffix
        if os.path.exists(path):
            os.unlink(path)


@pytest_asyncio.fixture(scope="function")
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine with fresh tables."""
    engine = build_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_maker(db_engine)


@pytest.fixture
def records(session_maker) -> RecordStore:
    return RecordStore(session_maker)


@pytest.fixture
def users(records: RecordStore) -> UserStore:
    return UserStore(records)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def policy() -> CredentialPolicy:
    """Default windows with the cheapest bcrypt cost."""
    return CredentialPolicy(hash_work_factor=4)


@pytest.fixture
def hasher(policy: CredentialPolicy) -> PasswordHasher:
    return PasswordHasher(policy.hash_work_factor)


@pytest.fixture
def app_url() -> str:
    return "https://app.example.org"


@pytest.fixture
def broken_notifier() -> BrokenNotifier:
    return BrokenNotifier()


@pytest.fixture
def make_user(records: RecordStore) -> Callable[..., Awaitable[User]]:
    """Factory inserting users with sensible defaults."""

    async def _make(username: str, **fields: Any) -> User:
        user = User(
            id=uuid.uuid4(),
            username=username,
            email=fields.pop("email", f"{username}@example.com"),
            full_name=fields.pop("full_name", username.title()),
            **fields,
        )
        return await records.insert(user)

    return _make


@pytest_asyncio.fixture
async def test_user(make_user) -> User:
    """Create a test user."""
    return await make_user("testuser", verified=True)


@pytest_asyncio.fixture
async def other_user(make_user) -> User:
    """Create a second user."""
    return await make_user("otheruser")
