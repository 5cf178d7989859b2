from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from datetime import datetime
from typing import List, Optional

from ledgerplan.db.core import NotFoundError, PlannedEntryDB, RecurringPlanDB, utcnow
from ledgerplan.logging_config import get_logger
from ledgerplan.models.recurring_plan import RecurringPlanCreate, RecurringPlanUpdate
from ledgerplan.services import scheduler
from ledgerplan.services.validation import validate_company_refs

logger = get_logger(__name__)


# ===== DATABASE OPERATIONS =====

def create_db_recurring_plan(
    db: Session,
    company_id: int,
    plan_data: RecurringPlanCreate,
    horizon_months: Optional[int] = None,
    now: Optional[datetime] = None
) -> RecurringPlanDB:
    """Create a plan and materialize its planned entries over the horizon"""

    validate_company_refs(
        db, company_id,
        category_id=plan_data.category_id,
        account_id=plan_data.account_expected_id,
        contact_id=plan_data.contact_id,
        flow_type=plan_data.flow_type,
    )

    db_plan = RecurringPlanDB(company_id=company_id, version=1, **plan_data.model_dump())

    try:
        db.add(db_plan)
        db.commit()
        db.refresh(db_plan)
    except IntegrityError:
        db.rollback()
        raise ValueError("Recurring plan creation failed due to database constraint")

    logger.info(f"Company {company_id}: created recurring plan {db_plan.id} '{db_plan.name}'")
    scheduler.on_plan_created(db, db_plan, horizon_months=horizon_months, now=now)
    return db_plan


def read_db_recurring_plan(db: Session, company_id: int, plan_id: int) -> Optional[RecurringPlanDB]:
    return db.query(RecurringPlanDB).filter(
        RecurringPlanDB.id == plan_id,
        RecurringPlanDB.company_id == company_id
    ).first()


def read_db_recurring_plans(db: Session, company_id: int, active_only: bool = False,
                            skip: int = 0, limit: int = 100) -> List[RecurringPlanDB]:
    query = db.query(RecurringPlanDB).filter(RecurringPlanDB.company_id == company_id)
    if active_only:
        query = query.filter(RecurringPlanDB.is_active.is_(True))
    return query.order_by(RecurringPlanDB.name).offset(skip).limit(limit).all()


def read_db_plan_entries(db: Session, company_id: int, plan_id: int) -> List[PlannedEntryDB]:
    """Every entry a plan has produced, any version, oldest due date first"""
    return db.query(PlannedEntryDB).filter(
        PlannedEntryDB.company_id == company_id,
        PlannedEntryDB.recurring_plan_id == plan_id
    ).order_by(PlannedEntryDB.due_date).all()


def _stamp_end_date(plan: RecurringPlanDB, now: datetime) -> None:
    # A deactivated plan ends now unless it already ended earlier
    if plan.end_date is None or plan.end_date > now:
        plan.end_date = max(now, plan.start_date)


def update_db_recurring_plan(
    db: Session,
    company_id: int,
    plan_id: int,
    plan_updates: RecurringPlanUpdate,
    horizon_months: Optional[int] = None,
    now: Optional[datetime] = None
) -> RecurringPlanDB:
    """
    Apply a partial edit.

    Significant changes bump the version and, on an active plan, replace the
    future open entries. Deactivating drops them and stamps end_date.
    """
    now = now or utcnow()

    db_plan = read_db_recurring_plan(db, company_id, plan_id)
    if not db_plan:
        raise NotFoundError(f"Recurring plan with id {plan_id} not found")

    update_data = plan_updates.model_dump(exclude_unset=True)
    for required in ('name', 'flow_type', 'category_id', 'account_expected_id',
                     'amount_estimated', 'frequency', 'start_date', 'is_active'):
        if required in update_data and update_data[required] is None:
            raise ValueError(f"{required} cannot be cleared")

    merged = {field: update_data.get(field, getattr(db_plan, field)) for field in scheduler.SIGNIFICANT_PLAN_FIELDS}
    if merged['end_date'] is not None and merged['end_date'] < merged['start_date']:
        raise ValueError("end_date must not be before start_date")

    validate_company_refs(
        db, company_id,
        category_id=merged['category_id'],
        account_id=merged['account_expected_id'],
        contact_id=merged['contact_id'],
        flow_type=merged['flow_type'],
    )

    before = scheduler.plan_snapshot(db_plan)

    for field, value in update_data.items():
        setattr(db_plan, field, value)
    if before['is_active'] and not db_plan.is_active:
        _stamp_end_date(db_plan, now)

    changed = scheduler.changed_significant_fields(before, scheduler.plan_snapshot(db_plan))
    if changed:
        db_plan.version += 1
    db_plan.updated_at = utcnow()

    try:
        db.commit()
        db.refresh(db_plan)
    except IntegrityError:
        db.rollback()
        raise ValueError("Recurring plan update failed due to database constraint")

    if changed:
        logger.info(f"Plan {plan_id} now at v{db_plan.version} after changing {sorted(changed)}")
    scheduler.on_plan_updated(db, before, db_plan, horizon_months=horizon_months, now=now)
    return db_plan


def deactivate_db_recurring_plan(
    db: Session,
    company_id: int,
    plan_id: int,
    now: Optional[datetime] = None
) -> RecurringPlanDB:
    """Plans are never hard-deleted: stop generation and drop future open entries"""
    now = now or utcnow()

    db_plan = read_db_recurring_plan(db, company_id, plan_id)
    if not db_plan:
        raise NotFoundError(f"Recurring plan with id {plan_id} not found")

    if db_plan.is_active:
        db_plan.is_active = False
        _stamp_end_date(db_plan, now)
        db_plan.version += 1
        db_plan.updated_at = utcnow()
        db.commit()
        db.refresh(db_plan)
        logger.info(f"Company {company_id}: deactivated recurring plan {plan_id}")

    scheduler.on_plan_deactivated(db, db_plan, now=now)
    return db_plan


def regenerate_db_recurring_plan(
    db: Session,
    company_id: int,
    plan_id: int,
    horizon_months: Optional[int] = None,
    now: Optional[datetime] = None
) -> List[PlannedEntryDB]:
    return scheduler.regenerate_plan(db, company_id, plan_id, horizon_months=horizon_months, now=now)
