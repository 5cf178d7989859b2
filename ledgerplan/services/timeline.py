"""
Timeline Aggregator

Buckets a company's transactions and planned entries into a dense series of
fixed-width periods (day, ISO week, calendar month, calendar year) carrying
two parallel tracks:

    real     - what actually happened (transactions)
    planned  - what was committed (non-cancelled planned entries)

Cumulative figures start from everything recorded before the window, so the
first bucket already reflects full history. Read-only.
"""
from sqlalchemy.orm import Session
from sqlalchemy import func
from sqlalchemy.exc import OperationalError
from datetime import datetime, timedelta
from dateutil.relativedelta import relativedelta
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple, TypeVar
import enum
import time

from ledgerplan.config import get_settings
from ledgerplan.db.core import (
    FlowType,
    PlannedEntryDB,
    PlannedStatus,
    TransactionDB,
    TransactionType,
    utcnow,
)
from ledgerplan.logging_config import get_logger
from ledgerplan.models.timeline import TimelineBucket, TimelinePlannedItem, TimelineTransactionItem

logger = get_logger(__name__)

T = TypeVar("T")

RETRY_BACKOFF_SECONDS = 0.2


class TimelineMode(str, enum.Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    @classmethod
    def parse(cls, value: str) -> "TimelineMode":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ValueError(f"Invalid timeline mode '{value}'. Use one of: day, week, month, year")


# ===== BUCKET ARITHMETIC =====

def bucket_start(ts: datetime, mode: TimelineMode) -> datetime:
    day = ts.replace(hour=0, minute=0, second=0, microsecond=0)
    if mode == TimelineMode.DAY:
        return day
    if mode == TimelineMode.WEEK:
        return day - timedelta(days=day.weekday())
    if mode == TimelineMode.MONTH:
        return day.replace(day=1)
    return day.replace(month=1, day=1)


def next_bucket_start(start: datetime, mode: TimelineMode) -> datetime:
    if mode == TimelineMode.DAY:
        return start + timedelta(days=1)
    if mode == TimelineMode.WEEK:
        return start + timedelta(days=7)
    if mode == TimelineMode.MONTH:
        return start + relativedelta(months=1)
    return start + relativedelta(years=1)


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2024-01-01T00:00:00.000Z"""
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"


# ===== STORE ACCESS =====

def with_read_retries(operation: Callable[[], T], retries: Optional[int] = None) -> T:
    """Run a read, retrying transient store errors with linear backoff."""
    if retries is None:
        retries = get_settings().read_retries

    attempt = 0
    while True:
        try:
            return operation()
        except OperationalError as e:
            attempt += 1
            if attempt > retries:
                raise
            logger.warning(f"Timeline read failed (attempt {attempt}/{retries}), retrying: {e}")
            time.sleep(RETRY_BACKOFF_SECONDS * attempt)


def _baseline(db: Session, company_id: int, before: datetime) -> Tuple[Decimal, Decimal]:
    real_rows = db.query(TransactionDB.transaction_type, func.sum(TransactionDB.amount)).filter(
        TransactionDB.company_id == company_id,
        TransactionDB.date < before
    ).group_by(TransactionDB.transaction_type).all()

    planned_rows = db.query(PlannedEntryDB.flow_type, func.sum(PlannedEntryDB.amount_estimated)).filter(
        PlannedEntryDB.company_id == company_id,
        PlannedEntryDB.status != PlannedStatus.CANCELLED,
        PlannedEntryDB.due_date < before
    ).group_by(PlannedEntryDB.flow_type).all()

    real = {kind: Decimal(str(total or 0)) for kind, total in real_rows}
    planned = {flow: Decimal(str(total or 0)) for flow, total in planned_rows}

    running_real = real.get(TransactionType.INCOME, Decimal("0")) - real.get(TransactionType.EXPENSE, Decimal("0"))
    running_planned = planned.get(FlowType.INCOME, Decimal("0")) - planned.get(FlowType.EXPENSE, Decimal("0"))
    return running_real, running_planned


def _window(db: Session, company_id: int, start: datetime, end: datetime):
    transactions = db.query(TransactionDB).filter(
        TransactionDB.company_id == company_id,
        TransactionDB.date >= start,
        TransactionDB.date < end
    ).order_by(TransactionDB.date, TransactionDB.id).all()

    planned_entries = db.query(PlannedEntryDB).filter(
        PlannedEntryDB.company_id == company_id,
        PlannedEntryDB.status != PlannedStatus.CANCELLED,
        PlannedEntryDB.due_date >= start,
        PlannedEntryDB.due_date < end
    ).order_by(PlannedEntryDB.due_date, PlannedEntryDB.id).all()

    return transactions, planned_entries


# ===== AGGREGATION =====

def _empty_bucket(key: datetime, mode: TimelineMode) -> TimelineBucket:
    return TimelineBucket(start=format_timestamp(key), end=format_timestamp(next_bucket_start(key, mode)))


def build_timeline(
    db: Session,
    company_id: int,
    mode: TimelineMode,
    start: datetime,
    end: datetime,
    now: Optional[datetime] = None
) -> List[TimelineBucket]:
    """
    Dense bucket series from the bucket holding `start` up to, not including,
    the bucket holding `end`, oldest first.

    `end` is clamped to now + timeline_max_years. Transfers move money between
    the company's own accounts and are listed without affecting the totals.
    """
    settings = get_settings()
    now = now or utcnow()

    limit = now + timedelta(days=365 * settings.timeline_max_years)
    if end > limit:
        logger.debug(f"Timeline end {end} clamped to {limit}")
        end = limit

    first_bucket = bucket_start(start, mode)
    end_limit = bucket_start(end, mode)
    if end_limit <= first_bucket:
        return []

    running_real, running_planned = with_read_retries(lambda: _baseline(db, company_id, start))
    transactions, planned_entries = with_read_retries(lambda: _window(db, company_id, start, end_limit))

    buckets: Dict[datetime, TimelineBucket] = {}

    for txn in transactions:
        key = bucket_start(txn.date, mode)
        bucket = buckets.setdefault(key, _empty_bucket(key, mode))
        amount = float(txn.amount)
        if txn.transaction_type == TransactionType.INCOME:
            bucket.real_income += amount
        elif txn.transaction_type == TransactionType.EXPENSE:
            bucket.real_expense += amount
        bucket.net_real = bucket.real_income - bucket.real_expense
        bucket.transactions.append(TimelineTransactionItem(
            id=txn.id,
            description=txn.description,
            amount=amount,
            date=format_timestamp(txn.date),
            type=txn.transaction_type.value,
        ))

    for entry in planned_entries:
        key = bucket_start(entry.due_date, mode)
        bucket = buckets.setdefault(key, _empty_bucket(key, mode))
        amount = float(entry.amount_estimated)
        if entry.flow_type == FlowType.INCOME:
            bucket.planned_income += amount
        else:
            bucket.planned_expense += amount
        bucket.net_planned = bucket.planned_income - bucket.planned_expense
        bucket.planned_entries.append(TimelinePlannedItem(
            id=entry.id,
            name=entry.name,
            amount_estimated=amount,
            due_date=format_timestamp(entry.due_date),
            flow_type=entry.flow_type.value,
            status=entry.status.value,
        ))

    cumulative_real = float(running_real)
    cumulative_planned = float(running_planned)

    series = []
    cursor = first_bucket
    while cursor < end_limit:
        bucket = buckets.get(cursor) or _empty_bucket(cursor, mode)
        cumulative_real += bucket.net_real
        cumulative_planned += bucket.net_planned
        bucket.cumulative_real = cumulative_real
        bucket.cumulative_planned = cumulative_planned
        series.append(bucket)
        cursor = next_bucket_start(cursor, mode)

    logger.debug(
        f"Company {company_id}: timeline {mode.value} with {len(series)} buckets, "
        f"{len(transactions)} transactions, {len(planned_entries)} planned entries"
    )
    return series
