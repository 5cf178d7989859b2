"""
Recurring Plan Scheduler

Turns a recurring plan into dated planned entries over a forward horizon and
cleans up the entries a plan edit has made stale.

Only open (planned / partially_covered) entries due now or later are ever
deleted. Covered, cancelled, overdue and past entries are history and
survive every regeneration, which is also what makes regeneration safe to
re-run after a partial failure.
"""
from sqlalchemy.orm import Session
from sqlalchemy import func
from calendar import monthrange
from datetime import datetime, timedelta
from dateutil.relativedelta import relativedelta
from typing import Any, Dict, List, Optional, Set

from ledgerplan.config import get_settings
from ledgerplan.db.core import (
    OPEN_PLANNED_STATUSES,
    NotFoundError,
    PlannedEntryDB,
    PlannedStatus,
    RecurringPlanDB,
    utcnow,
)
from ledgerplan.logging_config import get_logger

logger = get_logger(__name__)


# Edits to any of these bump the plan version and, on an active plan,
# replace its future open entries. Name and notes are not among them.
SIGNIFICANT_PLAN_FIELDS = frozenset({
    "flow_type",
    "category_id",
    "account_expected_id",
    "contact_id",
    "amount_estimated",
    "frequency",
    "day_of_month",
    "start_date",
    "end_date",
    "is_active",
})

STEP_DAYS = {
    "weekly": 7,
    "biweekly": 14,
}
FALLBACK_STEP_DAYS = 30


# ===== PLAN DIFFING =====

def plan_snapshot(plan: RecurringPlanDB) -> Dict[str, Any]:
    return {field: getattr(plan, field) for field in SIGNIFICANT_PLAN_FIELDS}


def changed_significant_fields(before: Dict[str, Any], after: Dict[str, Any]) -> Set[str]:
    return {field for field in SIGNIFICANT_PLAN_FIELDS if before.get(field) != after.get(field)}


# ===== DUE DATE COMPUTATION =====

def clamp_day(year: int, month: int, day: int) -> int:
    """Clamp a day-of-month anchor into the month (31 in February -> 28/29)."""
    return max(1, min(day, monthrange(year, month)[1]))


def align_to_day(dt: datetime, day: int) -> datetime:
    return dt.replace(day=clamp_day(dt.year, dt.month, day))


def _monthly_due_dates(plan: RecurringPlanDB, horizon_months: int, now: datetime) -> List[datetime]:
    start = plan.start_date
    anchor_day = plan.day_of_month or start.day
    anchor = align_to_day(start, anchor_day)

    # Re-anchor to the current month once the plan has started, keeping the
    # plan's time of day so repeated runs produce identical timestamps
    if now.date() > anchor.date():
        base = datetime.combine(now.date().replace(day=1), start.time())
    else:
        base = anchor.replace(day=1)

    dates = []
    for i in range(horizon_months):
        candidate = align_to_day(base + relativedelta(months=i), anchor_day)
        if candidate < start:
            continue
        if plan.end_date is not None and candidate > plan.end_date:
            break
        dates.append(candidate)
    return dates


def _stepped_due_dates(plan: RecurringPlanDB, step_days: int, horizon_steps: int, now: datetime) -> List[datetime]:
    start = plan.start_date
    step = timedelta(days=step_days)

    current = start
    while current + step <= now:
        current += step

    dates = []
    for _ in range(horizon_steps):
        if plan.end_date is not None and current > plan.end_date:
            break
        if current >= start:
            dates.append(current)
        current += step
    return dates


def _fallback_due_dates(plan: RecurringPlanDB, horizon_steps: int, now: datetime) -> List[datetime]:
    start = plan.start_date
    step = timedelta(days=FALLBACK_STEP_DAYS)
    current = datetime.combine(now.date(), start.time()) if now > start else start

    dates = []
    for _ in range(horizon_steps):
        if current >= start:
            if plan.end_date is not None and current > plan.end_date:
                break
            dates.append(current)
        current += step
    return dates


def upcoming_due_dates(plan: RecurringPlanDB, horizon_months: int, now: datetime) -> List[datetime]:
    """
    Due dates a plan should have materialized, oldest first.

    monthly             -> one per calendar month on day_of_month (or the start day), clamped
    weekly / biweekly   -> 7 / 14 day steps from start_date, horizon_months steps from the current one
    anything else       -> best-effort 30 day steps from max(now, start_date)
    """
    frequency = (plan.frequency or "").strip().lower()
    if frequency == "monthly":
        return _monthly_due_dates(plan, horizon_months, now)
    if frequency in STEP_DAYS:
        return _stepped_due_dates(plan, STEP_DAYS[frequency], horizon_months, now)

    logger.debug(f"Plan {plan.id} has unknown frequency '{plan.frequency}', stepping every {FALLBACK_STEP_DAYS} days")
    return _fallback_due_dates(plan, horizon_months, now)


# ===== ENTRY MATERIALIZATION =====

def generate_planned_entries(
    db: Session,
    plan: RecurringPlanDB,
    horizon_months: Optional[int] = None,
    now: Optional[datetime] = None,
    after: Optional[datetime] = None
) -> List[PlannedEntryDB]:
    """
    Create one planned entry per upcoming due date that has no open entry yet.

    A date whose entry is covered, cancelled or overdue gets a fresh open entry.
    Due dates on or before `after` are skipped entirely.
    """
    if plan.id is None or not plan.is_active:
        return []

    if horizon_months is None:
        horizon_months = get_settings().planned_months_ahead
    now = now or utcnow()

    open_dues = {
        due for (due,) in db.query(PlannedEntryDB.due_date).filter(
            PlannedEntryDB.company_id == plan.company_id,
            PlannedEntryDB.recurring_plan_id == plan.id,
            PlannedEntryDB.status.in_(OPEN_PLANNED_STATUSES)
        ).all()
    }

    created = []
    for due in upcoming_due_dates(plan, horizon_months, now):
        if due in open_dues or (after is not None and due <= after):
            continue
        created.append(PlannedEntryDB(
            company_id=plan.company_id,
            recurring_plan_id=plan.id,
            recurring_plan_version=plan.version,
            name=f"{plan.name} {due.date().isoformat()}",
            flow_type=plan.flow_type,
            category_id=plan.category_id,
            account_expected_id=plan.account_expected_id,
            contact_id=plan.contact_id,
            amount_estimated=plan.amount_estimated,
            due_date=due,
            status=PlannedStatus.PLANNED,
            notes=plan.notes,
        ))

    if created:
        db.add_all(created)
        db.commit()
        logger.info(f"Plan {plan.id} v{plan.version}: generated {len(created)} planned entries")
    return created


def delete_future_open_entries(db: Session, plan: RecurringPlanDB, now: Optional[datetime] = None) -> int:
    now = now or utcnow()
    deleted = db.query(PlannedEntryDB).filter(
        PlannedEntryDB.company_id == plan.company_id,
        PlannedEntryDB.recurring_plan_id == plan.id,
        PlannedEntryDB.status.in_(OPEN_PLANNED_STATUSES),
        PlannedEntryDB.due_date >= now
    ).delete(synchronize_session=False)
    db.commit()
    if deleted:
        logger.info(f"Plan {plan.id}: deleted {deleted} future open planned entries")
    return deleted


def regenerate_planned_entries(
    db: Session,
    plan: RecurringPlanDB,
    horizon_months: Optional[int] = None,
    now: Optional[datetime] = None
) -> List[PlannedEntryDB]:
    if plan.id is None or not plan.is_active:
        return []
    now = now or utcnow()
    delete_future_open_entries(db, plan, now=now)
    return generate_planned_entries(db, plan, horizon_months=horizon_months, now=now)


def roll_plan_horizon(
    db: Session,
    plan: RecurringPlanDB,
    horizon_months: Optional[int] = None,
    now: Optional[datetime] = None
) -> List[PlannedEntryDB]:
    """
    Extend a plan's entries up to the horizon without touching existing ones.

    Only due dates after the plan's latest entry are created, so covered,
    partially covered and cancelled entries keep their ids and statuses.
    """
    if plan.id is None or not plan.is_active:
        return []

    latest_due = db.query(func.max(PlannedEntryDB.due_date)).filter(
        PlannedEntryDB.company_id == plan.company_id,
        PlannedEntryDB.recurring_plan_id == plan.id
    ).scalar()

    return generate_planned_entries(db, plan, horizon_months=horizon_months, now=now, after=latest_due)


# ===== PLAN LIFECYCLE HOOKS =====

def on_plan_created(
    db: Session,
    plan: RecurringPlanDB,
    horizon_months: Optional[int] = None,
    now: Optional[datetime] = None
) -> List[PlannedEntryDB]:
    return generate_planned_entries(db, plan, horizon_months=horizon_months, now=now)


def on_plan_deactivated(db: Session, plan: RecurringPlanDB, now: Optional[datetime] = None) -> int:
    return delete_future_open_entries(db, plan, now=now)


def on_plan_updated(
    db: Session,
    before: Dict[str, Any],
    plan: RecurringPlanDB,
    horizon_months: Optional[int] = None,
    now: Optional[datetime] = None
) -> None:
    """
    React to a persisted plan edit.

    `before` is plan_snapshot() taken ahead of the edit. Deactivation always
    drops future open entries; otherwise only significant changes regenerate.
    """
    if not plan.is_active:
        on_plan_deactivated(db, plan, now=now)
        return

    changed = changed_significant_fields(before, plan_snapshot(plan))
    if changed:
        logger.debug(f"Plan {plan.id} changed {sorted(changed)}, regenerating")
        regenerate_planned_entries(db, plan, horizon_months=horizon_months, now=now)


def regenerate_plan(
    db: Session,
    company_id: int,
    plan_id: int,
    horizon_months: Optional[int] = None,
    now: Optional[datetime] = None
) -> List[PlannedEntryDB]:
    """Administrative regenerate action; refuses inactive plans."""
    plan = db.query(RecurringPlanDB).filter(
        RecurringPlanDB.id == plan_id,
        RecurringPlanDB.company_id == company_id
    ).first()
    if not plan:
        raise NotFoundError(f"Recurring plan with id {plan_id} not found")
    if not plan.is_active:
        raise ValueError("recurring plan is inactive")
    return regenerate_planned_entries(db, plan, horizon_months=horizon_months, now=now)
