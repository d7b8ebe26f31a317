"""
Tests for health, metrics and request correlation.
"""

import pytest
from httpx import AsyncClient

from cowork_booking.core.logging import get_logger, setup_logging


@pytest.mark.asyncio
async def test_health_reports_disabled_cache(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["cache"] == {"status": "disabled"}


@pytest.mark.asyncio
async def test_metrics_exposes_booking_counters(client: AsyncClient):
    await client.post("/api/v1/internal/cron/bookings")

    response = await client.get("/metrics")

    assert response.status_code == 200
    assert "booking_reconcile_runs_total" in response.text
    assert "booking_admission_decisions_total" in response.text


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "sched-42"})

    assert response.headers["X-Request-ID"] == "sched-42"
    assert response.headers["X-Response-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_request_id_is_generated(client: AsyncClient):
    response = await client.get("/health")
    assert len(response.headers["X-Request-ID"]) == 8


def test_setup_logging_is_idempotent():
    setup_logging()
    setup_logging()
    get_logger("tests").info("logging_configured", check=True)
