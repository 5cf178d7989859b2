"""
Planned Entry Reconciliation Service

Recomputes a planned entry's coverage status from the transactions linked to
it through planned_entry_id:

    sum <= 0                -> planned
    0 < sum < estimated     -> partially_covered
    sum >= estimated        -> covered

planned / partially_covered entries whose due date has passed become overdue.
cancelled is set by operators only and is never touched here.

Every linked transaction counts, confirmed or not.
"""
from sqlalchemy.orm import Session
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ledgerplan.db.core import (
    OPEN_PLANNED_STATUSES,
    PlannedEntryDB,
    PlannedStatus,
    TransactionDB,
    utcnow,
)
from ledgerplan.logging_config import get_logger

logger = get_logger(__name__)


def compute_status(total: Decimal, estimated: Decimal, due_date: datetime, now: datetime) -> PlannedStatus:
    if total <= 0:
        status = PlannedStatus.PLANNED
    elif total < estimated:
        status = PlannedStatus.PARTIALLY_COVERED
    else:
        status = PlannedStatus.COVERED

    if status in OPEN_PLANNED_STATUSES and due_date < now:
        return PlannedStatus.OVERDUE
    return status


def linked_transactions_total(db: Session, company_id: int, planned_entry_id: int) -> Decimal:
    total = db.query(func.coalesce(func.sum(TransactionDB.amount), 0)).filter(
        TransactionDB.company_id == company_id,
        TransactionDB.planned_entry_id == planned_entry_id
    ).scalar()
    return Decimal(str(total))


def reconcile_planned_entry(
    db: Session,
    company_id: int,
    planned_entry_id: int,
    now: Optional[datetime] = None
) -> Optional[PlannedStatus]:
    """
    Bring one entry's stored status in line with its linked transactions.

    Safe to call any number of times. Returns the resulting status, or None
    when the entry no longer exists (e.g. deleted by a regeneration).
    """
    entry = db.query(PlannedEntryDB).filter(
        PlannedEntryDB.id == planned_entry_id,
        PlannedEntryDB.company_id == company_id
    ).first()
    if entry is None:
        return None

    if entry.status == PlannedStatus.CANCELLED:
        return entry.status

    now = now or utcnow()
    total = linked_transactions_total(db, company_id, planned_entry_id)
    status = compute_status(total, entry.amount_estimated, entry.due_date, now)

    if status != entry.status:
        logger.debug(f"Planned entry {planned_entry_id}: {entry.status.value} -> {status.value} (covered {total})")
        entry.status = status
        entry.updated_at = utcnow()
        db.commit()

    return status


def reconcile_quietly(
    db: Session,
    company_id: int,
    planned_entry_id: Optional[int],
    now: Optional[datetime] = None
) -> Optional[PlannedStatus]:
    """
    Best-effort reconciliation for callers that already committed their own write.

    Store failures are logged and swallowed so the triggering mutation stands;
    the entry's status may stay stale until the next reconciliation.
    """
    if planned_entry_id is None:
        return None
    try:
        return reconcile_planned_entry(db, company_id, planned_entry_id, now=now)
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Reconciliation of planned entry {planned_entry_id} failed: {e}")
        return None


def sweep_overdue_entries(db: Session, company_id: int, now: Optional[datetime] = None) -> int:
    """Reconcile every open entry already past due. Returns how many changed status."""
    now = now or utcnow()
    candidates = db.query(PlannedEntryDB.id, PlannedEntryDB.status).filter(
        PlannedEntryDB.company_id == company_id,
        PlannedEntryDB.status.in_(OPEN_PLANNED_STATUSES),
        PlannedEntryDB.due_date < now
    ).all()

    changed = 0
    for entry_id, previous in candidates:
        status = reconcile_planned_entry(db, company_id, entry_id, now=now)
        if status is not None and status != previous:
            changed += 1

    if changed:
        logger.info(f"Company {company_id}: {changed} planned entries moved by the overdue sweep")
    return changed
