"""
Response schema for one reconciliation cycle.
"""

from pydantic import BaseModel, ConfigDict, Field


class ReconciliationChecked(BaseModel):
    paid_pending: int = Field(serialization_alias="paidPending")


class ReconciliationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    auto_confirmed: int = Field(serialization_alias="autoConfirmed")
    expired: int
    capacity_warnings: int = Field(serialization_alias="capacityWarnings")
    failed: int
    checked: ReconciliationChecked
