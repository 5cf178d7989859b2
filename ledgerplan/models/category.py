from pydantic import BaseModel, Field
from typing import Optional

from ledgerplan.db.core import FlowType

# ===== CATEGORY PYDANTIC MODELS =====

class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Category name")
    flow_type: FlowType = Field(..., description="Whether money in this category comes in or goes out")
    parent_id: Optional[int] = Field(None, description="The ID of the parent category, for sub-categories")
    notes: Optional[str] = None

class CategoryCreate(CategoryBase):
    pass

class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100, description="Category name")
    flow_type: Optional[FlowType] = None
    parent_id: Optional[int] = Field(None, description="The ID of the parent category, for sub-categories")
    notes: Optional[str] = None

class CategoryResponse(CategoryBase):
    id: int
    company_id: int

    class Config:
        from_attributes = True
