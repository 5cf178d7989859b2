from pydantic import BaseModel, Field
from typing import Optional

from ledgerplan.db.core import ContactType

# ===== CONTACT PYDANTIC MODELS =====

class ContactBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    contact_type: ContactType = Field(default=ContactType.OTHER)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None

class ContactCreate(ContactBase):
    pass

class ContactUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact_type: Optional[ContactType] = None
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None

class ContactResponse(ContactBase):
    id: int
    company_id: int

    class Config:
        from_attributes = True
