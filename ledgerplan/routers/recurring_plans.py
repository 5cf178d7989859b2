from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from ledgerplan.crud import crud_recurring_plan
from ledgerplan.models import recurring_plan as plan_models
from ledgerplan.models import planned_entry as entry_models
from ledgerplan.db.core import get_db, NotFoundError
from ledgerplan.routers.deps import get_current_company_id

router = APIRouter(
    prefix="/recurring_plans",
    tags=["recurring_plans"],
)


@router.post("/", response_model=plan_models.RecurringPlanResponse, status_code=status.HTTP_201_CREATED)
def create_recurring_plan(
    plan: plan_models.RecurringPlanCreate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    """
    Create a recurring plan and generate its planned entries over the configured horizon.
    """
    try:
        return crud_recurring_plan.create_db_recurring_plan(db=db, company_id=company_id, plan_data=plan)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/", response_model=List[plan_models.RecurringPlanResponse])
def read_recurring_plans(
    active_only: bool = False,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    return crud_recurring_plan.read_db_recurring_plans(
        db=db, company_id=company_id, active_only=active_only, skip=skip, limit=limit
    )


@router.get("/{plan_id}", response_model=plan_models.RecurringPlanResponse)
def read_recurring_plan(
    plan_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    db_plan = crud_recurring_plan.read_db_recurring_plan(db=db, company_id=company_id, plan_id=plan_id)
    if db_plan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recurring plan not found")
    return db_plan


@router.get("/{plan_id}/entries", response_model=List[entry_models.PlannedEntryResponse])
def read_recurring_plan_entries(
    plan_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    """
    All planned entries the plan has produced, across every version.
    """
    if crud_recurring_plan.read_db_recurring_plan(db=db, company_id=company_id, plan_id=plan_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recurring plan not found")
    return crud_recurring_plan.read_db_plan_entries(db=db, company_id=company_id, plan_id=plan_id)


@router.put("/{plan_id}", response_model=plan_models.RecurringPlanResponse)
def update_recurring_plan(
    plan_id: int,
    plan: plan_models.RecurringPlanUpdate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    """
    Edit a plan. Schedule-affecting edits bump the version and rebuild future open entries.
    """
    try:
        return crud_recurring_plan.update_db_recurring_plan(
            db=db, company_id=company_id, plan_id=plan_id, plan_updates=plan
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{plan_id}", response_model=plan_models.RecurringPlanResponse)
def deactivate_recurring_plan(
    plan_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    """
    Deactivate a plan. Past and settled entries are kept as history.
    """
    try:
        return crud_recurring_plan.deactivate_db_recurring_plan(db=db, company_id=company_id, plan_id=plan_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/{plan_id}/regenerate", response_model=List[entry_models.PlannedEntryResponse])
def regenerate_recurring_plan(
    plan_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    """
    Rebuild the plan's future open entries. Returns the entries created.
    """
    try:
        return crud_recurring_plan.regenerate_db_recurring_plan(db=db, company_id=company_id, plan_id=plan_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
