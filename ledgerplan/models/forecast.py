from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from typing_extensions import Self
from datetime import datetime
from decimal import Decimal

from ledgerplan.db.core import to_naive_utc

# ===== FORECAST PYDANTIC MODELS =====

class ForecastCreate(BaseModel):
    generated_by: Optional[str] = Field(None, max_length=255)
    start_date: datetime
    end_date: datetime
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    projected_income_total: Decimal = Decimal("0.00")
    projected_expense_total: Decimal = Decimal("0.00")
    projected_net: Optional[Decimal] = Field(None, description="Defaults to income minus expense")
    initial_balance: Optional[Decimal] = None
    final_balance: Optional[Decimal] = None
    details: Optional[str] = None
    scenario_name: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None

    @field_validator('start_date', 'end_date')
    @classmethod
    def validate_dates(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @model_validator(mode="after")
    def fill_projected_net(self) -> Self:
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        if self.projected_net is None:
            self.projected_net = self.projected_income_total - self.projected_expense_total
        return self


class ForecastUpdate(BaseModel):
    generated_by: Optional[str] = Field(None, max_length=255)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    projected_income_total: Optional[Decimal] = None
    projected_expense_total: Optional[Decimal] = None
    projected_net: Optional[Decimal] = None
    initial_balance: Optional[Decimal] = None
    final_balance: Optional[Decimal] = None
    details: Optional[str] = None
    scenario_name: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None

    @field_validator('start_date', 'end_date')
    @classmethod
    def validate_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class ForecastResponse(BaseModel):
    id: int
    company_id: int
    generated_at: datetime
    generated_by: Optional[str]
    start_date: datetime
    end_date: datetime
    currency: str
    projected_income_total: Decimal
    projected_expense_total: Decimal
    projected_net: Decimal
    initial_balance: Optional[Decimal]
    final_balance: Optional[Decimal]
    details: Optional[str]
    scenario_name: Optional[str]
    notes: Optional[str]

    class Config:
        from_attributes = True
