from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from datetime import datetime
from typing import List, Optional

from ledgerplan.db.core import NotFoundError, PlannedEntryDB, PlannedStatus, utcnow
from ledgerplan.models.planned_entry import PlannedEntryCreate, PlannedEntryUpdate
from ledgerplan.services.reconciliation import reconcile_quietly
from ledgerplan.services.validation import validate_company_refs, validate_recurring_plan_ref


# ===== DATABASE OPERATIONS =====

def create_db_planned_entry(
    db: Session,
    company_id: int,
    entry_data: PlannedEntryCreate,
    now: Optional[datetime] = None
) -> PlannedEntryDB:
    """Create a one-off planned entry; status is derived, never taken from the caller"""

    validate_company_refs(
        db, company_id,
        category_id=entry_data.category_id,
        account_id=entry_data.account_expected_id,
        contact_id=entry_data.contact_id,
        flow_type=entry_data.flow_type,
    )
    if entry_data.recurring_plan_id is not None:
        validate_recurring_plan_ref(db, company_id, entry_data.recurring_plan_id)

    db_entry = PlannedEntryDB(company_id=company_id, status=PlannedStatus.PLANNED, **entry_data.model_dump())

    try:
        db.add(db_entry)
        db.commit()
        db.refresh(db_entry)
    except IntegrityError:
        db.rollback()
        raise ValueError("Planned entry creation failed due to database constraint")

    reconcile_quietly(db, company_id, db_entry.id, now=now)
    db.refresh(db_entry)
    return db_entry


def read_db_planned_entry(db: Session, company_id: int, entry_id: int) -> Optional[PlannedEntryDB]:
    return db.query(PlannedEntryDB).filter(
        PlannedEntryDB.id == entry_id,
        PlannedEntryDB.company_id == company_id
    ).first()


def read_db_planned_entries(
    db: Session,
    company_id: int,
    status: Optional[PlannedStatus] = None,
    recurring_plan_id: Optional[int] = None,
    due_from: Optional[datetime] = None,
    due_to: Optional[datetime] = None,
    skip: int = 0,
    limit: int = 100
) -> List[PlannedEntryDB]:
    query = db.query(PlannedEntryDB).filter(PlannedEntryDB.company_id == company_id)

    if status:
        query = query.filter(PlannedEntryDB.status == status)
    if recurring_plan_id is not None:
        query = query.filter(PlannedEntryDB.recurring_plan_id == recurring_plan_id)
    if due_from:
        query = query.filter(PlannedEntryDB.due_date >= due_from)
    if due_to:
        query = query.filter(PlannedEntryDB.due_date < due_to)

    return query.order_by(PlannedEntryDB.due_date, PlannedEntryDB.id).offset(skip).limit(limit).all()


def update_db_planned_entry(
    db: Session,
    company_id: int,
    entry_id: int,
    entry_updates: PlannedEntryUpdate,
    now: Optional[datetime] = None
) -> PlannedEntryDB:
    """
    Edit an entry, then reconcile it.

    Only 'cancelled' is honoured as an explicit status. Any other explicit
    status lifts a cancellation and lets reconciliation recompute the rest.
    """
    db_entry = read_db_planned_entry(db, company_id, entry_id)
    if not db_entry:
        raise NotFoundError(f"Planned entry with id {entry_id} not found")

    update_data = entry_updates.model_dump(exclude_unset=True)
    for required in ('name', 'flow_type', 'category_id', 'account_expected_id', 'amount_estimated', 'due_date'):
        if required in update_data and update_data[required] is None:
            raise ValueError(f"{required} cannot be cleared")

    validate_company_refs(
        db, company_id,
        category_id=update_data.get('category_id', db_entry.category_id),
        account_id=update_data.get('account_expected_id', db_entry.account_expected_id),
        contact_id=update_data.get('contact_id', db_entry.contact_id),
        flow_type=update_data.get('flow_type', db_entry.flow_type),
    )
    if update_data.get('recurring_plan_id') is not None:
        validate_recurring_plan_ref(db, company_id, update_data['recurring_plan_id'])

    requested_status = update_data.pop('status', None)
    for field, value in update_data.items():
        setattr(db_entry, field, value)

    if requested_status == PlannedStatus.CANCELLED:
        db_entry.status = PlannedStatus.CANCELLED
    elif requested_status is not None and db_entry.status == PlannedStatus.CANCELLED:
        db_entry.status = PlannedStatus.PLANNED

    db_entry.updated_at = utcnow()

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError("Planned entry update failed due to database constraint")

    reconcile_quietly(db, company_id, entry_id, now=now)
    db.refresh(db_entry)
    return db_entry


def delete_db_planned_entry(db: Session, company_id: int, entry_id: int) -> bool:
    """Linked transactions keep their planned_entry_id as a dangling weak reference"""
    db_entry = read_db_planned_entry(db, company_id, entry_id)
    if not db_entry:
        raise NotFoundError(f"Planned entry with id {entry_id} not found")

    try:
        db.delete(db_entry)
        db.commit()
        return True
    except IntegrityError:
        db.rollback()
        raise ValueError("Planned entry deletion failed due to database constraint")
