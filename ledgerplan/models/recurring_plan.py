from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from typing_extensions import Self
from datetime import datetime
from decimal import Decimal

from ledgerplan.db.core import FlowType, to_naive_utc

# ===== RECURRING PLAN PYDANTIC MODELS =====

class RecurringPlanCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Plan name, e.g. 'Rent'")
    flow_type: FlowType
    category_id: int
    account_expected_id: int = Field(..., description="Account the money is expected to move through")
    contact_id: Optional[int] = None
    amount_estimated: Decimal = Field(..., ge=0)
    frequency: str = Field(default="monthly", min_length=1, max_length=20, description="monthly, weekly, biweekly; anything else steps every 30 days")
    day_of_month: Optional[int] = Field(None, ge=1, le=31, description="Monthly anchor day, clamped to short months")
    start_date: datetime
    end_date: Optional[datetime] = None
    is_active: bool = True
    notes: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return v.strip()

    @field_validator('frequency')
    @classmethod
    def validate_frequency(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator('amount_estimated')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return round(v, 2)

    @field_validator('start_date', 'end_date')
    @classmethod
    def validate_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)

    @model_validator(mode="after")
    def check_date_range(self) -> Self:
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class RecurringPlanUpdate(BaseModel):
    """Update plan - all fields optional"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    flow_type: Optional[FlowType] = None
    category_id: Optional[int] = None
    account_expected_id: Optional[int] = None
    contact_id: Optional[int] = None
    amount_estimated: Optional[Decimal] = Field(None, ge=0)
    frequency: Optional[str] = Field(None, min_length=1, max_length=20)
    day_of_month: Optional[int] = Field(None, ge=1, le=31)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None
    notes: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

    @field_validator('frequency')
    @classmethod
    def validate_frequency(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v else v

    @field_validator('amount_estimated')
    @classmethod
    def validate_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return round(v, 2) if v is not None else v

    @field_validator('start_date', 'end_date')
    @classmethod
    def validate_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class RecurringPlanResponse(BaseModel):
    id: int
    company_id: int
    name: str
    flow_type: FlowType
    category_id: int
    account_expected_id: int
    contact_id: Optional[int]
    amount_estimated: Decimal
    frequency: str
    day_of_month: Optional[int]
    start_date: datetime
    end_date: Optional[datetime]
    is_active: bool
    version: int
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
