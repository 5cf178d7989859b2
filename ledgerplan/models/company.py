from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime

# ===== COMPANY PYDANTIC MODELS =====

class CompanyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Company (tenant) name")
    default_currency: str = Field(default="MXN", min_length=3, max_length=3)
    is_active: bool = True
    notes: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return v.strip()

    @field_validator('default_currency')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return v.upper()


class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    default_currency: Optional[str] = Field(None, min_length=3, max_length=3)
    is_active: Optional[bool] = None
    notes: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

    @field_validator('default_currency')
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class CompanyResponse(BaseModel):
    id: int
    name: str
    default_currency: str
    is_active: bool
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
