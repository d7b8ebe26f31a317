"""
PayMongo refund gateway.
Implements RefundGateway over the PayMongo REST API using httpx.

Failure handling:
  Any transport error or non-2xx response becomes RefundRequestError.
  The caller (cancellation) has already committed the status change by the
  time a refund is requested, so a failure here is logged and left for
  financial reconciliation; the booking is not un-cancelled.
"""

from typing import Optional

import httpx

from cowork_booking.core.config import get_settings
from cowork_booking.core.logging import get_logger
from cowork_booking.services.interfaces.refund import RefundGateway, RefundRequestError

logger = get_logger(__name__)


class PaymongoRefundGateway(RefundGateway):
    def __init__(
        self,
        secret_key: str,
        api_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def request_refund(
        self,
        payment_id: str,
        amount_minor: int,
        reason: str,
        metadata: Optional[dict] = None,
    ) -> Optional[str]:
        payload = {
            "data": {
                "attributes": {
                    "amount": amount_minor,
                    "payment_id": payment_id,
                    "reason": reason,
                    "metadata": {k: str(v) for k, v in (metadata or {}).items()},
                }
            }
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.api_url}/refunds",
                    json=payload,
                    auth=(self.secret_key, ""),
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RefundRequestError(
                f"Refund rejected with status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise RefundRequestError(f"Refund request failed: {e}") from e

        refund_id = response.json().get("data", {}).get("id")
        logger.info("refund_requested", payment_id=payment_id, refund_id=refund_id, amount_minor=amount_minor)
        return refund_id


def build_paymongo_gateway() -> PaymongoRefundGateway:
    settings = get_settings()
    if not settings.PAYMONGO_SECRET_KEY:
        raise RuntimeError("REFUND_GATEWAY=paymongo requires PAYMONGO_SECRET_KEY")
    return PaymongoRefundGateway(
        secret_key=settings.PAYMONGO_SECRET_KEY,
        api_url=settings.PAYMONGO_API_URL,
        timeout=settings.REFUND_TIMEOUT_SECONDS,
    )
