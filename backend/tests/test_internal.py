"""
Tests for the scheduler and payment-capture endpoints.
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from cowork_booking.models.booking import BookingStatus
from cowork_booking.models.notification import NotificationType

from conftest import count_notifications, reload

CRON_URL = "/api/v1/internal/cron/bookings"
CAPTURE_URL = "/api/v1/internal/payments/captured"


def _capture(booking, reference: str = "pay_abc123", amount_minor: int = 50000) -> dict:
    return {
        "booking_id": booking.id,
        "external_reference": reference,
        "amount_minor": amount_minor,
        "currency": "PHP",
    }


@pytest.fixture
def cron_secret(monkeypatch):
    from cowork_booking.core.config import get_settings

    monkeypatch.setenv("CRON_SECRET", "s3cret")
    get_settings.cache_clear()
    yield "s3cret"
    get_settings.cache_clear()


@pytest.mark.asyncio
async def test_cron_reports_counters(client: AsyncClient, make_area, make_booking, add_settlement):
    area = await make_area()
    now = datetime.now(timezone.utc)
    start = now + timedelta(days=1)
    paid = await make_booking(area, start_at=start, created_at=now - timedelta(minutes=12))
    await add_settlement(paid)
    await make_booking(area, start_at=start, created_at=now - timedelta(minutes=45))

    response = await client.post(CRON_URL)

    assert response.status_code == 200
    assert response.json() == {
        "autoConfirmed": 1,
        "expired": 1,
        "capacityWarnings": 0,
        "failed": 0,
        "checked": {"paidPending": 1},
    }


@pytest.mark.asyncio
async def test_cron_accepts_get(client: AsyncClient):
    response = await client.get(CRON_URL)
    assert response.status_code == 200
    assert response.json()["autoConfirmed"] == 0


@pytest.mark.asyncio
async def test_cron_requires_secret_when_configured(client: AsyncClient, cron_secret):
    missing = await client.post(CRON_URL)
    wrong = await client.post(CRON_URL, headers={"x-cron-secret": "nope"})
    right = await client.post(CRON_URL, headers={"x-cron-secret": cron_secret})

    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert right.status_code == 200


@pytest.mark.asyncio
async def test_capture_confirms_pending_that_fits(client: AsyncClient, db_session, make_area, make_booking):
    area = await make_area(max_capacity=5)
    booking = await make_booking(area)

    response = await client.post(CAPTURE_URL, json=_capture(booking))

    assert response.status_code == 200
    data = response.json()
    assert data["received"] is True
    assert data["outcome"] == "auto_confirmed"
    assert data["status"] == "confirmed"
    assert await count_notifications(db_session, booking.id, NotificationType.BOOKING_CONFIRMED.value) == 1


@pytest.mark.asyncio
async def test_capture_over_capacity_asks_for_review(client: AsyncClient, db_session, make_area, make_booking):
    area = await make_area(max_capacity=2)
    await make_booking(area, BookingStatus.CONFIRMED, guest_count=2)
    booking = await make_booking(area)

    response = await client.post(CAPTURE_URL, json=_capture(booking))

    data = response.json()
    assert data["outcome"] == "pending_review"
    assert data["status"] == "pending"
    assert await count_notifications(db_session, booking.id, NotificationType.PENDING_REVIEW.value) == 2


@pytest.mark.asyncio
async def test_capture_on_manual_area_asks_for_review(client: AsyncClient, make_area, make_booking):
    area = await make_area(automatic_booking_enabled=False)
    booking = await make_booking(area)

    response = await client.post(CAPTURE_URL, json=_capture(booking))

    assert response.json()["outcome"] == "pending_review"
    assert response.json()["status"] == "pending"


@pytest.mark.asyncio
async def test_capture_replay_is_idempotent(client: AsyncClient, db_session, make_area, make_booking):
    area = await make_area()
    booking = await make_booking(area)

    first = await client.post(CAPTURE_URL, json=_capture(booking))
    second = await client.post(CAPTURE_URL, json=_capture(booking))

    assert first.json()["outcome"] == "auto_confirmed"
    assert second.json()["outcome"] == "no_change"
    assert (await reload(db_session, booking.id)).status == "confirmed"
    assert await count_notifications(db_session, booking.id, NotificationType.BOOKING_CONFIRMED.value) == 1


@pytest.mark.asyncio
async def test_capture_on_cancelled_booking_changes_nothing(client: AsyncClient, make_area, make_booking):
    area = await make_area()
    booking = await make_booking(area, BookingStatus.CANCELLED)

    response = await client.post(CAPTURE_URL, json=_capture(booking))

    assert response.json()["outcome"] == "no_change"
    assert response.json()["status"] == "cancelled"


@pytest.mark.asyncio
async def test_capture_unknown_booking(client: AsyncClient):
    response = await client.post(
        CAPTURE_URL,
        json={"booking_id": "missing", "external_reference": "pay_x", "amount_minor": 100},
    )

    assert response.status_code == 200
    assert response.json()["outcome"] == "unknown_booking"
    assert response.json()["status"] is None


@pytest.mark.asyncio
async def test_capture_requires_secret_when_configured(client: AsyncClient, make_area, make_booking, cron_secret):
    area = await make_area()
    booking = await make_booking(area)

    response = await client.post(CAPTURE_URL, json=_capture(booking))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_capture_reference_reused_for_other_booking(client: AsyncClient, db_session, make_area, make_booking):
    area = await make_area()
    paid = await make_booking(area)
    other = await make_booking(area)

    first = await client.post(CAPTURE_URL, json=_capture(paid, reference="pay_shared"))
    second = await client.post(CAPTURE_URL, json=_capture(other, reference="pay_shared"))

    assert first.json()["outcome"] == "auto_confirmed"
    assert second.json()["outcome"] == "reference_conflict"
    assert second.json()["status"] == "pending"
    assert (await reload(db_session, other.id)).status == "pending"
    assert await count_notifications(db_session, other.id) == 0
