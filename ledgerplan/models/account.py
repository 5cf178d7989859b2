from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime

from ledgerplan.db.core import AccountType


# ===== ACCOUNT PYDANTIC MODELS =====

class AccountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Account name")
    account_type: AccountType = Field(..., description="Type of account")
    currency: Optional[str] = Field(None, min_length=3, max_length=3, description="ISO currency code, defaults to the company's")
    is_active: bool = Field(default=True)
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return v.strip()

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class AccountUpdate(BaseModel):
    """Update account - all fields optional"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    account_type: Optional[AccountType] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    is_active: Optional[bool] = None
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class AccountResponse(BaseModel):
    id: int
    company_id: int
    name: str
    account_type: AccountType
    currency: str
    is_active: bool
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
