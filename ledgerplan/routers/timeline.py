from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from dateutil.parser import isoparse
from datetime import datetime
from typing import List, Optional

from ledgerplan.db.core import get_db, to_naive_utc
from ledgerplan.logging_config import get_logger
from ledgerplan.models.timeline import TimelineBucket
from ledgerplan.routers.deps import get_current_company_id
from ledgerplan.services.timeline import TimelineMode, build_timeline

logger = get_logger(__name__)

router = APIRouter(
    prefix="/timeline",
    tags=["timeline"],
)


def _parse_timestamp(name: str, value: Optional[str]) -> datetime:
    if not value:
        raise ValueError(f"'{name}' is required")
    try:
        return to_naive_utc(isoparse(value))
    except (ValueError, OverflowError):
        raise ValueError(f"'{name}' is not a valid RFC3339 timestamp: {value}")


@router.get("", response_model=List[TimelineBucket])
def read_timeline(
    mode: str = "month",
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = None,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    """
    Real vs planned cash flow bucketed by day, week, month or year, oldest first.
    """
    try:
        timeline_mode = TimelineMode.parse(mode)
        start = _parse_timestamp("from", from_)
        end = _parse_timestamp("to", to)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        return build_timeline(db, company_id, timeline_mode, start, end)
    except SQLAlchemyError as e:
        logger.error(f"Company {company_id}: timeline query failed: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Timeline unavailable")
