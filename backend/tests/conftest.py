"""Shared test configuration and fixtures.

Each test gets a fresh in-memory SQLite database (aiosqlite) with all tables
created, so services are free to commit. The connection hooks below hand
transaction control to SQLAlchemy so SAVEPOINTs behave as on PostgreSQL.
"""

from collections.abc import AsyncGenerator
from datetime import datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from membership_access import models  # noqa: F401  (registers tables on Base.metadata)
from membership_access.auth.jwt import create_subject_token
from membership_access.database import Base, get_db
from membership_access.events import clear_listeners
from membership_access.main import app
from membership_access.models.membership import Membership, MembershipStatus
from membership_access.notifications import get_notification_sender, set_notification_sender
from membership_access.services.entitlements import clear_access_overrides
from membership_access.services.membership_store import create_membership

ADMIN_ID = 1
MEMBER_ID = 42


def _enable_savepoints(engine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Disable the driver's own BEGIN handling
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


# ---------------------------------------------------------------------------
# Per-test database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine():
    """A private in-memory database with the schema created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    _enable_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to use the test DB session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Process-wide registries are reset around every test
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_registries():
    sender = get_notification_sender()
    yield
    clear_listeners()
    clear_access_overrides()
    set_notification_sender(sender)


# ---------------------------------------------------------------------------
# Convenience fixtures: identities and memberships
# ---------------------------------------------------------------------------


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_subject_token(ADMIN_ID, role='admin')}"}


@pytest.fixture
def member_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_subject_token(MEMBER_ID)}"}


@pytest.fixture
def make_membership(db_session: AsyncSession):
    """Factory that inserts and commits a membership with sensible defaults."""

    async def _make(
        *,
        subject_id: int = MEMBER_ID,
        plan_id: int = 10,
        order_id: int = 1000,
        started_at: datetime = datetime(2024, 1, 1),
        expires_at: datetime = datetime(2024, 1, 31),
        status: MembershipStatus = MembershipStatus.ACTIVE,
        tier: str = "standard",
        created_at: datetime | None = None,
    ) -> Membership:
        membership = await create_membership(
            db_session,
            subject_id=subject_id,
            plan_id=plan_id,
            order_id=order_id,
            started_at=started_at,
            expires_at=expires_at,
            status=status,
            tier=tier,
        )
        if created_at is not None:
            # Backdate both stamps, as if the row had been written at created_at
            await db_session.execute(
                update(Membership)
                .where(Membership.id == membership.id)
                .values(created_at=created_at, updated_at=created_at)
            )
            await db_session.refresh(membership)
        await db_session.commit()
        return membership

    return _make


class RecordingSender:
    """Notification sender that records calls and can be told to fail."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[tuple[int, str, dict]] = []

    async def send(self, subject_id: int, template: str, context: dict[str, str]) -> None:
        if self.fail:
            raise RuntimeError("mailer unavailable")
        self.sent.append((subject_id, template, context))


@pytest.fixture
def recording_sender() -> RecordingSender:
    sender = RecordingSender()
    set_notification_sender(sender)
    return sender
