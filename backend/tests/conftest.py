"""
Pytest fixtures for test database, client, identities and booking factories.

Each test gets its own SQLite database (aiosqlite) so tests stay isolated
and need no running Postgres or Redis.
"""

import os

os.environ["REDIS_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ.pop("CRON_SECRET", None)

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from cowork_booking.core.config import get_settings
from cowork_booking.core.security import create_access_token
from cowork_booking.db.base import Base
from cowork_booking.db.session import get_db
from cowork_booking.main import app
from cowork_booking.models import Area, Booking, BookingStatus, Notification, Settlement, Space
from cowork_booking.services.interfaces.refund import RefundGateway, RefundRequestError
from cowork_booking.services.strategy_factory import get_refund_gateway

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
PARTNER_ID = "partner-1"
CUSTOMER_ID = "customer-1"


class FakeRefundGateway(RefundGateway):
    def __init__(self):
        self.calls = []
        self.fail = False

    async def request_refund(self, payment_id, amount_minor, reason, metadata=None):
        self.calls.append({"payment_id": payment_id, "amount_minor": amount_minor, "reason": reason})
        if self.fail:
            raise RefundRequestError("gateway unavailable")
        return "ref_test"


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture(scope="function")
async def db_session(tmp_path) -> AsyncGenerator[AsyncSession, None]:
    """Create tables in a throwaway SQLite file and yield a session."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def refund_gateway() -> FakeRefundGateway:
    return FakeRefundGateway()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, refund_gateway: FakeRefundGateway) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB and refund gateway dependencies."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_refund_gateway] = lambda: refund_gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def _headers(user_id: str, role: str) -> dict:
    token = create_access_token(data={"sub": user_id, "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def customer_headers() -> dict:
    return _headers(CUSTOMER_ID, "customer")


@pytest.fixture
def other_customer_headers() -> dict:
    return _headers("customer-2", "customer")


@pytest.fixture
def partner_headers() -> dict:
    return _headers(PARTNER_ID, "partner")


@pytest.fixture
def admin_headers() -> dict:
    return _headers("admin-1", "admin")


@pytest_asyncio.fixture
async def space(db_session: AsyncSession) -> Space:
    space = Space(name="Makati Hub", partner_id=PARTNER_ID, is_published=True)
    db_session.add(space)
    await db_session.commit()
    return space


@pytest.fixture
def make_area(db_session: AsyncSession, space: Space):
    async def _make(
        max_capacity: Optional[int] = 10,
        automatic_booking_enabled: bool = True,
        request_approval_at_capacity: bool = False,
        name: str = "Hot Desks",
    ) -> Area:
        area = Area(
            space_id=space.id,
            name=name,
            max_capacity=max_capacity,
            automatic_booking_enabled=automatic_booking_enabled,
            request_approval_at_capacity=request_approval_at_capacity,
        )
        db_session.add(area)
        await db_session.commit()
        return area

    return _make


@pytest.fixture
def make_booking(db_session: AsyncSession, space: Space):
    """Insert a booking row directly, bypassing admission."""

    async def _make(
        area: Area,
        status: BookingStatus = BookingStatus.PENDING,
        start_at: datetime = NOW + timedelta(hours=2),
        hours: int = 2,
        guest_count: int = 1,
        created_at: datetime = NOW - timedelta(minutes=1),
        customer_id: str = CUSTOMER_ID,
        price_minor: Optional[int] = None,
    ) -> Booking:
        booking = Booking(
            space_id=space.id,
            space_name=space.name,
            area_id=area.id,
            area_name=area.name,
            customer_id=customer_id,
            partner_id=space.partner_id,
            start_at=start_at,
            expires_at=start_at + timedelta(hours=hours),
            booking_hours=hours,
            guest_count=guest_count,
            area_max_capacity=area.max_capacity,
            price_minor=price_minor,
            status=status.value,
            created_at=created_at,
            updated_at=created_at,
        )
        db_session.add(booking)
        await db_session.commit()
        return booking

    return _make


@pytest.fixture
def add_settlement(db_session: AsyncSession):
    counter = {"n": 0}

    async def _add(booking: Booking, status: str = "succeeded", amount_minor: int = 50000) -> Settlement:
        counter["n"] += 1
        settlement = Settlement(
            booking_id=booking.id,
            status=status,
            amount_minor=amount_minor,
            external_reference=f"pay_{booking.id[:8]}_{counter['n']}",
        )
        db_session.add(settlement)
        await db_session.commit()
        return settlement

    return _add


async def reload(db: AsyncSession, booking_id: str) -> Booking:
    return await db.get(Booking, booking_id, populate_existing=True)


async def count_notifications(db: AsyncSession, booking_id: str, notification_type: Optional[str] = None) -> int:
    query = select(func.count()).select_from(Notification).where(Notification.booking_id == booking_id)
    if notification_type is not None:
        query = query.where(Notification.type == notification_type)
    return (await db.execute(query)).scalar_one()
