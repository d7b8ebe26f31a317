"""
Refund gateway factory.
Configures which refund gateway cancellation uses.
"""

from typing import Optional

from cowork_booking.services.interfaces.refund import RefundGateway
from cowork_booking.services.interfaces.noop_refund import NoopRefundGateway
from cowork_booking.services.refund_service import build_paymongo_gateway
from cowork_booking.core.config import get_settings


def get_refund_gateway_strategy() -> RefundGateway:
    """
    Build the configured refund gateway.

    Strategy selection via REFUND_GATEWAY:
    - noop (default): log only
    - paymongo: live refunds through PayMongo
    """
    strategy = get_settings().REFUND_GATEWAY.lower()

    if strategy == 'paymongo':
        return build_paymongo_gateway()
    return NoopRefundGateway()


# Singleton instance
_gateway: Optional[RefundGateway] = None


def get_refund_gateway() -> RefundGateway:
    """Get refund gateway singleton. Usable as a FastAPI dependency."""
    global _gateway
    if _gateway is None:
        _gateway = get_refund_gateway_strategy()
    return _gateway
