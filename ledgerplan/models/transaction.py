from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal

from ledgerplan.db.core import TransactionType, to_naive_utc

# ===== TRANSACTION PYDANTIC MODELS =====

class TransactionCreate(BaseModel):
    date: datetime = Field(..., description="When the money moved")
    description: str = Field(..., min_length=1, max_length=500)
    transaction_type: TransactionType
    category_id: int
    account_from_id: Optional[int] = Field(None, description="Source account (expense, transfer)")
    account_to_id: Optional[int] = Field(None, description="Destination account (income, transfer)")
    amount: Decimal = Field(..., description="Transaction amount")
    planned_entry_id: Optional[int] = Field(None, description="Planned entry this transaction covers")
    is_confirmed: bool = True
    notes: Optional[str] = None

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return round(v, 2)

    @field_validator('description')
    @classmethod
    def validate_description(cls, v: str) -> str:
        return v.strip()

    @field_validator('date')
    @classmethod
    def validate_date(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class TransactionUpdate(BaseModel):
    """Update transaction - all fields optional; links are re-validated as a whole"""
    date: Optional[datetime] = None
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    transaction_type: Optional[TransactionType] = None
    category_id: Optional[int] = None
    account_from_id: Optional[int] = None
    account_to_id: Optional[int] = None
    amount: Optional[Decimal] = None
    planned_entry_id: Optional[int] = None
    is_confirmed: Optional[bool] = None
    notes: Optional[str] = None

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return round(v, 2) if v is not None else v

    @field_validator('description')
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

    @field_validator('date')
    @classmethod
    def validate_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class TransactionResponse(BaseModel):
    """Transaction data returned to client"""
    id: int
    company_id: int
    date: datetime
    description: str
    transaction_type: TransactionType
    category_id: int
    account_from_id: Optional[int]
    account_to_id: Optional[int]
    amount: Decimal
    planned_entry_id: Optional[int]
    is_confirmed: bool
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
