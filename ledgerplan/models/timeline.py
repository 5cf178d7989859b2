from pydantic import BaseModel, Field
from typing import List

# ===== TIMELINE PYDANTIC MODELS =====

class TimelineTransactionItem(BaseModel):
    id: int
    description: str
    amount: float
    date: str
    type: str


class TimelinePlannedItem(BaseModel):
    id: int
    name: str
    amount_estimated: float
    due_date: str
    flow_type: str
    status: str


class TimelineBucket(BaseModel):
    """One fixed-width slice of the timeline, oldest first in the response array"""
    start: str
    end: str
    real_income: float = 0.0
    real_expense: float = 0.0
    planned_income: float = 0.0
    planned_expense: float = 0.0
    net_real: float = 0.0
    net_planned: float = 0.0
    cumulative_real: float = 0.0
    cumulative_planned: float = 0.0
    transactions: List[TimelineTransactionItem] = Field(default_factory=list)
    planned_entries: List[TimelinePlannedItem] = Field(default_factory=list)
