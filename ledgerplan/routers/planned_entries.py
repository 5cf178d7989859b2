from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Optional

from ledgerplan.crud import crud_planned_entry
from ledgerplan.models import planned_entry as entry_models
from ledgerplan.db.core import get_db, to_naive_utc, NotFoundError, PlannedStatus
from ledgerplan.routers.deps import get_current_company_id

router = APIRouter(
    prefix="/planned_entries",
    tags=["planned_entries"],
)


@router.post("/", response_model=entry_models.PlannedEntryResponse, status_code=status.HTTP_201_CREATED)
def create_planned_entry(
    entry: entry_models.PlannedEntryCreate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    """
    Create a one-off planned entry.
    """
    try:
        return crud_planned_entry.create_db_planned_entry(db=db, company_id=company_id, entry_data=entry)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/", response_model=List[entry_models.PlannedEntryResponse])
def read_planned_entries(
    status_filter: Optional[PlannedStatus] = None,
    recurring_plan_id: Optional[int] = None,
    due_from: Optional[datetime] = None,
    due_to: Optional[datetime] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    return crud_planned_entry.read_db_planned_entries(
        db=db, company_id=company_id, status=status_filter, recurring_plan_id=recurring_plan_id,
        due_from=to_naive_utc(due_from), due_to=to_naive_utc(due_to), skip=skip, limit=limit
    )


@router.get("/{entry_id}", response_model=entry_models.PlannedEntryResponse)
def read_planned_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    db_entry = crud_planned_entry.read_db_planned_entry(db=db, company_id=company_id, entry_id=entry_id)
    if db_entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Planned entry not found")
    return db_entry


@router.put("/{entry_id}", response_model=entry_models.PlannedEntryResponse)
def update_planned_entry(
    entry_id: int,
    entry: entry_models.PlannedEntryUpdate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    """
    Edit an entry. Send status=cancelled to cancel it; coverage statuses are always recomputed.
    """
    try:
        return crud_planned_entry.update_db_planned_entry(
            db=db, company_id=company_id, entry_id=entry_id, entry_updates=entry
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_planned_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    try:
        crud_planned_entry.delete_db_planned_entry(db=db, company_id=company_id, entry_id=entry_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
