"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .refund import RefundGateway, RefundRequestError
from .noop_refund import NoopRefundGateway

__all__ = ['RefundGateway', 'RefundRequestError', 'NoopRefundGateway']
