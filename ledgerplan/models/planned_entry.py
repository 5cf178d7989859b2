from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal

from ledgerplan.db.core import FlowType, PlannedStatus, to_naive_utc

# ===== PLANNED ENTRY PYDANTIC MODELS =====

class PlannedEntryCreate(BaseModel):
    """Manually created entry; status always starts as planned and is then reconciled."""
    recurring_plan_id: Optional[int] = None
    recurring_plan_version: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=255)
    flow_type: FlowType
    category_id: int
    account_expected_id: int
    contact_id: Optional[int] = None
    amount_estimated: Decimal = Field(..., ge=0)
    due_date: datetime
    notes: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return v.strip()

    @field_validator('amount_estimated')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return round(v, 2)

    @field_validator('due_date')
    @classmethod
    def validate_due_date(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class PlannedEntryUpdate(BaseModel):
    """Update entry - all fields optional. Only 'cancelled' sticks as an explicit status."""
    recurring_plan_id: Optional[int] = None
    recurring_plan_version: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    flow_type: Optional[FlowType] = None
    category_id: Optional[int] = None
    account_expected_id: Optional[int] = None
    contact_id: Optional[int] = None
    amount_estimated: Optional[Decimal] = Field(None, ge=0)
    due_date: Optional[datetime] = None
    status: Optional[PlannedStatus] = None
    notes: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

    @field_validator('amount_estimated')
    @classmethod
    def validate_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return round(v, 2) if v is not None else v

    @field_validator('due_date')
    @classmethod
    def validate_due_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class PlannedEntryResponse(BaseModel):
    id: int
    company_id: int
    recurring_plan_id: Optional[int]
    recurring_plan_version: Optional[int]
    name: str
    flow_type: FlowType
    category_id: int
    account_expected_id: int
    contact_id: Optional[int]
    amount_estimated: Decimal
    due_date: datetime
    status: PlannedStatus
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
