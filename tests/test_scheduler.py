"""Tests for recurring plan scheduling."""

from datetime import datetime
from decimal import Decimal

import pytest

from ledgerplan.crud import crud_planned_entry, crud_recurring_plan, crud_transaction
from ledgerplan.db.core import (
    FlowType,
    NotFoundError,
    PlannedEntryDB,
    PlannedStatus,
    RecurringPlanDB,
    TransactionType,
)
from ledgerplan.models.planned_entry import PlannedEntryCreate, PlannedEntryUpdate
from ledgerplan.models.recurring_plan import RecurringPlanCreate, RecurringPlanUpdate
from ledgerplan.models.transaction import TransactionCreate
from ledgerplan.services import scheduler


def _plan(**kwargs):
    values = {
        "id": 1,
        "company_id": 1,
        "name": "Plan",
        "frequency": "monthly",
        "day_of_month": None,
        "start_date": datetime(2024, 1, 10, 9, 0),
        "end_date": None,
        "is_active": True,
        "version": 1,
    }
    values.update(kwargs)
    return RecurringPlanDB(**values)


def _entries(db, plan_id):
    return db.query(PlannedEntryDB).filter(
        PlannedEntryDB.recurring_plan_id == plan_id
    ).order_by(PlannedEntryDB.due_date).all()


# ===== DUE DATES =====

def test_monthly_day_31_clamps_to_short_months():
    plan = _plan(start_date=datetime(2024, 1, 31, 9, 0), day_of_month=31)

    dues = scheduler.upcoming_due_dates(plan, 12, now=datetime(2024, 1, 15))

    assert [d.date().isoformat() for d in dues] == [
        "2024-01-31", "2024-02-29", "2024-03-31", "2024-04-30", "2024-05-31", "2024-06-30",
        "2024-07-31", "2024-08-31", "2024-09-30", "2024-10-31", "2024-11-30", "2024-12-31",
    ]
    assert all(d.time() == plan.start_date.time() for d in dues)


def test_monthly_clamp_does_not_drift_after_february():
    plan = _plan(start_date=datetime(2023, 1, 31), day_of_month=None)

    dues = scheduler.upcoming_due_dates(plan, 3, now=datetime(2023, 1, 1))

    assert [d.day for d in dues] == [31, 28, 31]


def test_monthly_reanchors_to_current_month_once_started():
    plan = _plan(start_date=datetime(2024, 1, 10, 8, 30))

    dues = scheduler.upcoming_due_dates(plan, 3, now=datetime(2024, 3, 20, 17, 0))

    assert dues == [datetime(2024, 3, 10, 8, 30), datetime(2024, 4, 10, 8, 30), datetime(2024, 5, 10, 8, 30)]


def test_monthly_day_before_start_day_skips_first_month():
    plan = _plan(start_date=datetime(2024, 1, 15), day_of_month=5)

    dues = scheduler.upcoming_due_dates(plan, 3, now=datetime(2024, 1, 1))

    assert [d.date().isoformat() for d in dues] == ["2024-02-05", "2024-03-05"]


def test_end_date_is_inclusive_bound():
    plan = _plan(start_date=datetime(2024, 1, 1), end_date=datetime(2024, 3, 15))

    dues = scheduler.upcoming_due_dates(plan, 12, now=datetime(2023, 12, 1))

    assert [d.month for d in dues] == [1, 2, 3]


def test_weekly_steps_from_last_occurrence_not_after_now():
    plan = _plan(frequency="weekly", start_date=datetime(2024, 1, 1, 10, 0))

    dues = scheduler.upcoming_due_dates(plan, 3, now=datetime(2024, 1, 17, 12, 0))

    assert dues == [datetime(2024, 1, 15, 10, 0), datetime(2024, 1, 22, 10, 0), datetime(2024, 1, 29, 10, 0)]


def test_biweekly_before_first_step():
    plan = _plan(frequency="biweekly", start_date=datetime(2024, 1, 1))

    dues = scheduler.upcoming_due_dates(plan, 3, now=datetime(2024, 1, 10))

    assert dues == [datetime(2024, 1, 1), datetime(2024, 1, 15), datetime(2024, 1, 29)]


def test_unknown_frequency_steps_thirty_days_from_today():
    plan = _plan(frequency="quarterly", start_date=datetime(2024, 1, 1, 9, 0))

    dues = scheduler.upcoming_due_dates(plan, 2, now=datetime(2024, 2, 10, 15, 0))

    assert dues == [datetime(2024, 2, 10, 9, 0), datetime(2024, 3, 11, 9, 0)]


def test_significant_fields_exclude_name_and_notes():
    assert "name" not in scheduler.SIGNIFICANT_PLAN_FIELDS
    assert "notes" not in scheduler.SIGNIFICANT_PLAN_FIELDS
    assert {"amount_estimated", "frequency", "day_of_month", "is_active"} <= scheduler.SIGNIFICANT_PLAN_FIELDS


# ===== GENERATION =====

def test_create_plan_generates_entries_with_provenance(db, tenant, make_plan):
    plan = make_plan(now=datetime(2024, 1, 1), horizon_months=3)

    entries = _entries(db, plan.id)

    assert [e.due_date for e in entries] == [
        datetime(2024, 1, 10, 9, 0), datetime(2024, 2, 10, 9, 0), datetime(2024, 3, 10, 9, 0)
    ]
    assert all(e.recurring_plan_version == 1 for e in entries)
    assert all(e.status == PlannedStatus.PLANNED for e in entries)
    assert all(e.amount_estimated == Decimal("1000.00") for e in entries)
    assert all(e.company_id == tenant["company"].id for e in entries)
    assert entries[0].name == "Office rent 2024-01-10"


def test_regenerate_is_idempotent(db, tenant, make_plan):
    now = datetime(2024, 1, 1)
    plan = make_plan(now=now, horizon_months=6)
    first = [e.due_date for e in _entries(db, plan.id)]

    scheduler.regenerate_planned_entries(db, plan, horizon_months=6, now=now)
    scheduler.regenerate_planned_entries(db, plan, horizon_months=6, now=now)

    assert [e.due_date for e in _entries(db, plan.id)] == first


def test_generate_skips_due_dates_that_already_have_open_entries(db, tenant, make_plan):
    now = datetime(2024, 1, 1)
    plan = make_plan(now=now, horizon_months=3)

    created = scheduler.generate_planned_entries(db, plan, horizon_months=4, now=now)

    assert [e.due_date for e in created] == [datetime(2024, 4, 10, 9, 0)]
    assert len(_entries(db, plan.id)) == 4


def test_inactive_plan_generates_nothing(db, tenant, make_plan):
    plan = make_plan(now=datetime(2024, 1, 1), horizon_months=3, is_active=False)

    assert _entries(db, plan.id) == []


# ===== PLAN EDITS =====

def test_name_only_edit_keeps_version_and_entries(db, tenant, make_plan):
    now = datetime(2024, 1, 1)
    plan = make_plan(now=now)
    ids_before = [e.id for e in _entries(db, plan.id)]

    updated = crud_recurring_plan.update_db_recurring_plan(
        db, tenant["company"].id, plan.id, RecurringPlanUpdate(name="HQ rent", notes="renamed"),
        horizon_months=3, now=now
    )

    assert updated.version == 1
    assert [e.id for e in _entries(db, plan.id)] == ids_before


def test_amount_edit_bumps_version_and_rebuilds_future_open_entries(db, tenant, make_plan):
    now = datetime(2024, 1, 1)
    plan = make_plan(now=now)

    updated = crud_recurring_plan.update_db_recurring_plan(
        db, tenant["company"].id, plan.id, RecurringPlanUpdate(amount_estimated=Decimal("1200")),
        horizon_months=3, now=now
    )

    entries = _entries(db, plan.id)
    assert updated.version == 2
    assert len(entries) == 3
    assert all(e.recurring_plan_version == 2 for e in entries)
    assert all(e.amount_estimated == Decimal("1200.00") for e in entries)


def test_covered_entry_survives_regeneration_and_its_date_reopens(db, tenant, make_plan):
    now = datetime(2024, 1, 1)
    plan = make_plan(now=now)
    first = _entries(db, plan.id)[0]

    crud_transaction.create_db_transaction(db, tenant["company"].id, TransactionCreate(
        date=datetime(2024, 1, 9),
        description="January rent",
        transaction_type=TransactionType.EXPENSE,
        category_id=tenant["expense_category"].id,
        account_from_id=tenant["bank"].id,
        amount=Decimal("1000"),
        planned_entry_id=first.id,
    ), now=now)

    crud_recurring_plan.update_db_recurring_plan(
        db, tenant["company"].id, plan.id, RecurringPlanUpdate(amount_estimated=Decimal("1100")),
        horizon_months=3, now=now
    )

    entries = _entries(db, plan.id)
    covered = [e for e in entries if e.status == PlannedStatus.COVERED]
    open_entries = [e for e in entries if e.status == PlannedStatus.PLANNED]

    assert [e.id for e in covered] == [first.id]
    assert covered[0].recurring_plan_version == 1
    assert [e.due_date for e in open_entries] == [
        datetime(2024, 1, 10, 9, 0), datetime(2024, 2, 10, 9, 0), datetime(2024, 3, 10, 9, 0)
    ]
    assert all(e.recurring_plan_version == 2 for e in open_entries)
    assert all(e.amount_estimated == Decimal("1100.00") for e in open_entries)


def test_regenerate_reopens_date_of_cancelled_entry(db, tenant, make_plan):
    now = datetime(2024, 1, 2)
    plan = make_plan(now=now)
    march = _entries(db, plan.id)[2]
    crud_planned_entry.update_db_planned_entry(
        db, tenant["company"].id, march.id, PlannedEntryUpdate(status=PlannedStatus.CANCELLED), now=now
    )

    scheduler.regenerate_planned_entries(db, plan, horizon_months=3, now=now)

    on_march = [e for e in _entries(db, plan.id) if e.due_date == datetime(2024, 3, 10, 9, 0)]
    assert sorted(e.status.value for e in on_march) == ["cancelled", "planned"]
    assert len(_entries(db, plan.id)) == 4


def test_roll_horizon_only_appends_after_latest_entry(db, tenant, make_plan):
    now = datetime(2024, 1, 2)
    plan = make_plan(now=now)
    march = _entries(db, plan.id)[2]
    crud_planned_entry.update_db_planned_entry(
        db, tenant["company"].id, march.id, PlannedEntryUpdate(status=PlannedStatus.CANCELLED), now=now
    )

    created = scheduler.roll_plan_horizon(db, plan, horizon_months=5, now=now)

    assert [e.due_date for e in created] == [datetime(2024, 4, 10, 9, 0), datetime(2024, 5, 10, 9, 0)]
    assert scheduler.roll_plan_horizon(db, plan, horizon_months=5, now=now) == []
    assert len(_entries(db, plan.id)) == 5


def test_deactivate_drops_future_open_entries_and_keeps_history(db, tenant, make_plan):
    now = datetime(2024, 3, 20)
    plan = make_plan(now=now)
    assert len(_entries(db, plan.id)) == 3

    updated = crud_recurring_plan.update_db_recurring_plan(
        db, tenant["company"].id, plan.id, RecurringPlanUpdate(is_active=False, amount_estimated=Decimal("5")),
        horizon_months=3, now=now
    )

    entries = _entries(db, plan.id)
    assert updated.is_active is False
    assert updated.end_date == now
    assert [e.due_date for e in entries] == [datetime(2024, 3, 10, 9, 0)]


def test_delete_deactivates_instead_of_removing(db, tenant, make_plan):
    now = datetime(2024, 1, 1)
    plan = make_plan(now=now)

    result = crud_recurring_plan.deactivate_db_recurring_plan(db, tenant["company"].id, plan.id, now=now)

    assert result.is_active is False
    assert crud_recurring_plan.read_db_recurring_plan(db, tenant["company"].id, plan.id) is not None
    assert _entries(db, plan.id) == []


def test_regenerate_refuses_inactive_plan(db, tenant, make_plan):
    now = datetime(2024, 1, 1)
    plan = make_plan(now=now)
    crud_recurring_plan.deactivate_db_recurring_plan(db, tenant["company"].id, plan.id, now=now)

    with pytest.raises(ValueError, match="inactive"):
        scheduler.regenerate_plan(db, tenant["company"].id, plan.id, horizon_months=3, now=now)


def test_regenerate_unknown_or_foreign_plan_is_not_found(db, tenant, other_tenant, make_plan):
    plan = make_plan(now=datetime(2024, 1, 1))

    with pytest.raises(NotFoundError):
        scheduler.regenerate_plan(db, tenant["company"].id, 9999)
    with pytest.raises(NotFoundError):
        scheduler.regenerate_plan(db, other_tenant["company"].id, plan.id)


def test_plan_with_foreign_category_is_rejected(db, tenant, other_tenant):
    data = RecurringPlanCreate(
        name="Sneaky",
        flow_type=FlowType.EXPENSE,
        category_id=other_tenant["expense_category"].id,
        account_expected_id=tenant["bank"].id,
        amount_estimated=Decimal("10"),
        start_date=datetime(2024, 1, 1),
    )

    with pytest.raises(ValueError, match="another company"):
        crud_recurring_plan.create_db_recurring_plan(db, tenant["company"].id, data, horizon_months=3)


def test_manual_entry_cannot_reference_plan_of_other_company(db, tenant, other_tenant, make_plan):
    plan = make_plan(now=datetime(2024, 1, 1))
    data = PlannedEntryCreate(
        recurring_plan_id=plan.id,
        name="Extra",
        flow_type=FlowType.INCOME,
        category_id=other_tenant["income_category"].id,
        account_expected_id=other_tenant["bank"].id,
        amount_estimated=Decimal("5"),
        due_date=datetime(2024, 6, 1),
    )

    with pytest.raises(ValueError, match="another company"):
        crud_planned_entry.create_db_planned_entry(db, other_tenant["company"].id, data)
