"""
Refund gateway interface.
Cancellation issues refunds through this boundary; the gateway protocol
itself lives behind the implementation.
"""

from abc import ABC, abstractmethod
from typing import Optional


class RefundRequestError(Exception):
    """The gateway did not accept a refund request."""


class RefundGateway(ABC):
    """
    Interface for refund gateways.

    Implementations:
    - NoopRefundGateway: logs the request, talks to nothing
    - PaymongoRefundGateway: creates refunds over the PayMongo REST API
    """

    @abstractmethod
    async def request_refund(
        self,
        payment_id: str,
        amount_minor: int,
        reason: str,
        metadata: Optional[dict] = None,
    ) -> Optional[str]:
        """
        Ask the gateway to refund a captured payment.

        Args:
            payment_id: Gateway payment id (settlement external_reference)
            amount_minor: Amount in minor currency units
            reason: Gateway reason code
            metadata: Extra key/values attached to the refund

        Returns:
            Gateway refund id, if the gateway issued one

        Raises:
            RefundRequestError: the gateway rejected or could not be reached
        """
        pass
