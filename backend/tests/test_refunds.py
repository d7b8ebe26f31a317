"""
Tests for refund gateways and gateway selection.
"""

import json

import httpx
import pytest

from cowork_booking.core.config import get_settings
from cowork_booking.services import strategy_factory
from cowork_booking.services.interfaces import NoopRefundGateway, RefundRequestError
from cowork_booking.services.refund_service import PaymongoRefundGateway, build_paymongo_gateway


def _gateway(handler) -> PaymongoRefundGateway:
    return PaymongoRefundGateway(
        secret_key="sk_test_123",
        api_url="https://paymongo.test/v1/",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_paymongo_refund_success():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": {"id": "ref_001"}})

    refund_id = await _gateway(handler).request_refund(
        payment_id="pay_abc",
        amount_minor=45000,
        reason="requested_by_customer",
        metadata={"booking_id": "b-1"},
    )

    assert refund_id == "ref_001"
    assert seen["url"] == "https://paymongo.test/v1/refunds"
    assert seen["auth"].startswith("Basic ")
    attributes = seen["body"]["data"]["attributes"]
    assert attributes == {
        "amount": 45000,
        "payment_id": "pay_abc",
        "reason": "requested_by_customer",
        "metadata": {"booking_id": "b-1"},
    }


@pytest.mark.asyncio
async def test_paymongo_refund_rejected():
    gateway = _gateway(lambda request: httpx.Response(400, json={"errors": []}))

    with pytest.raises(RefundRequestError):
        await gateway.request_refund("pay_abc", 100, "requested_by_customer")


@pytest.mark.asyncio
async def test_paymongo_refund_unreachable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RefundRequestError):
        await _gateway(handler).request_refund("pay_abc", 100, "requested_by_customer")


@pytest.mark.asyncio
async def test_noop_gateway_issues_nothing():
    assert await NoopRefundGateway().request_refund("pay_abc", 100, "requested_by_customer") is None


def test_default_strategy_is_noop():
    assert isinstance(strategy_factory.get_refund_gateway_strategy(), NoopRefundGateway)


def test_paymongo_strategy(monkeypatch):
    monkeypatch.setenv("REFUND_GATEWAY", "paymongo")
    monkeypatch.setenv("PAYMONGO_SECRET_KEY", "sk_test_123")
    get_settings.cache_clear()

    assert isinstance(strategy_factory.get_refund_gateway_strategy(), PaymongoRefundGateway)


def test_paymongo_requires_secret(monkeypatch):
    monkeypatch.setenv("REFUND_GATEWAY", "paymongo")
    monkeypatch.delenv("PAYMONGO_SECRET_KEY", raising=False)
    get_settings.cache_clear()

    with pytest.raises(RuntimeError):
        build_paymongo_gateway()
