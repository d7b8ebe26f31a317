"""
No-op refund gateway for environments without a payment provider.
"""

from typing import Optional

from cowork_booking.core.logging import get_logger
from cowork_booking.services.interfaces.refund import RefundGateway

logger = get_logger(__name__)


class NoopRefundGateway(RefundGateway):
    """
    Records the refund request in the log and returns.

    Use when:
    - Local development and tests
    - Refunds are settled manually by an operator
    """

    async def request_refund(
        self,
        payment_id: str,
        amount_minor: int,
        reason: str,
        metadata: Optional[dict] = None,
    ) -> Optional[str]:
        logger.info(
            "refund_request_skipped",
            payment_id=payment_id,
            amount_minor=amount_minor,
            reason=reason,
        )
        return None
