"""
Payment capture notifications forwarded by the payment integration.
"""

from typing import Optional
from pydantic import BaseModel, Field


class PaymentCaptured(BaseModel):
    booking_id: str = Field(..., min_length=1, max_length=36)
    external_reference: str = Field(..., min_length=1, max_length=128)
    amount_minor: int = Field(..., ge=0)
    currency: str = Field(default="PHP", min_length=3, max_length=3)
    payment_method: str = Field(default="paymongo", max_length=32)
    livemode: bool = False


class PaymentCaptureResponse(BaseModel):
    received: bool = True
    booking_id: str
    status: Optional[str]
    outcome: str
