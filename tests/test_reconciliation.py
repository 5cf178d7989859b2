"""Tests for planned entry reconciliation."""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from ledgerplan.crud import crud_planned_entry, crud_transaction
from ledgerplan.db.core import FlowType, PlannedStatus, TransactionType
from ledgerplan.models.planned_entry import PlannedEntryCreate, PlannedEntryUpdate
from ledgerplan.models.transaction import TransactionCreate, TransactionUpdate
from ledgerplan.services import reconciliation
from ledgerplan.services.reconciliation import compute_status, reconcile_planned_entry, sweep_overdue_entries

NOW = datetime(2024, 1, 1)


@pytest.fixture
def entry(db, tenant):
    """Expense entry of 100 due in February."""
    return crud_planned_entry.create_db_planned_entry(db, tenant["company"].id, PlannedEntryCreate(
        name="Supplier invoice",
        flow_type=FlowType.EXPENSE,
        category_id=tenant["expense_category"].id,
        account_expected_id=tenant["bank"].id,
        amount_estimated=Decimal("100"),
        due_date=datetime(2024, 2, 1),
    ), now=NOW)


@pytest.fixture
def pay(db, tenant):
    def _pay(amount, entry_id, now=NOW):
        return crud_transaction.create_db_transaction(db, tenant["company"].id, TransactionCreate(
            date=datetime(2024, 1, 15),
            description="Payment",
            transaction_type=TransactionType.EXPENSE,
            category_id=tenant["expense_category"].id,
            account_from_id=tenant["bank"].id,
            amount=Decimal(amount),
            planned_entry_id=entry_id,
        ), now=now)
    return _pay


def _status(db, entry):
    db.refresh(entry)
    return entry.status


def test_compute_status_thresholds():
    due = datetime(2024, 2, 1)
    assert compute_status(Decimal("0"), Decimal("100"), due, NOW) == PlannedStatus.PLANNED
    assert compute_status(Decimal("-5"), Decimal("100"), due, NOW) == PlannedStatus.PLANNED
    assert compute_status(Decimal("40"), Decimal("100"), due, NOW) == PlannedStatus.PARTIALLY_COVERED
    assert compute_status(Decimal("100"), Decimal("100"), due, NOW) == PlannedStatus.COVERED
    assert compute_status(Decimal("120"), Decimal("100"), due, NOW) == PlannedStatus.COVERED


def test_compute_status_past_due():
    later = datetime(2024, 3, 1)
    due = datetime(2024, 2, 1)
    assert compute_status(Decimal("0"), Decimal("100"), due, later) == PlannedStatus.OVERDUE
    assert compute_status(Decimal("40"), Decimal("100"), due, later) == PlannedStatus.OVERDUE
    assert compute_status(Decimal("100"), Decimal("100"), due, later) == PlannedStatus.COVERED


def test_coverage_progression(db, tenant, entry, pay):
    assert _status(db, entry) == PlannedStatus.PLANNED

    first = pay("40", entry.id)
    assert _status(db, entry) == PlannedStatus.PARTIALLY_COVERED

    second = pay("60", entry.id)
    assert _status(db, entry) == PlannedStatus.COVERED

    crud_transaction.update_db_transaction(
        db, tenant["company"].id, second.id, TransactionUpdate(amount=Decimal("80")), now=NOW
    )
    assert _status(db, entry) == PlannedStatus.COVERED

    crud_transaction.delete_db_transaction(db, tenant["company"].id, second.id, now=NOW)
    assert _status(db, entry) == PlannedStatus.PARTIALLY_COVERED

    crud_transaction.delete_db_transaction(db, tenant["company"].id, first.id, now=NOW)
    assert _status(db, entry) == PlannedStatus.PLANNED


def test_unlinking_after_due_date_makes_entry_overdue(db, tenant, entry, pay):
    later = datetime(2024, 3, 1)
    txn = pay("100", entry.id, now=later)
    assert _status(db, entry) == PlannedStatus.COVERED

    crud_transaction.update_db_transaction(
        db, tenant["company"].id, txn.id, TransactionUpdate(planned_entry_id=None), now=later
    )

    assert _status(db, entry) == PlannedStatus.OVERDUE


def test_relinking_reconciles_both_entries(db, tenant, entry, pay):
    other = crud_planned_entry.create_db_planned_entry(db, tenant["company"].id, PlannedEntryCreate(
        name="Other invoice",
        flow_type=FlowType.EXPENSE,
        category_id=tenant["expense_category"].id,
        account_expected_id=tenant["bank"].id,
        amount_estimated=Decimal("50"),
        due_date=datetime(2024, 2, 1),
    ), now=NOW)
    txn = pay("50", entry.id)
    assert _status(db, entry) == PlannedStatus.PARTIALLY_COVERED

    crud_transaction.update_db_transaction(
        db, tenant["company"].id, txn.id, TransactionUpdate(planned_entry_id=other.id), now=NOW
    )

    assert _status(db, entry) == PlannedStatus.PLANNED
    assert _status(db, other) == PlannedStatus.COVERED


def test_cancelled_entry_is_never_recomputed(db, tenant, entry, pay):
    pay("40", entry.id)

    crud_planned_entry.update_db_planned_entry(
        db, tenant["company"].id, entry.id, PlannedEntryUpdate(status=PlannedStatus.CANCELLED), now=NOW
    )
    assert _status(db, entry) == PlannedStatus.CANCELLED

    assert reconcile_planned_entry(db, tenant["company"].id, entry.id, now=datetime(2025, 1, 1)) == PlannedStatus.CANCELLED
    assert _status(db, entry) == PlannedStatus.CANCELLED


def test_explicit_non_cancelled_status_is_recomputed(db, tenant, entry, pay):
    pay("40", entry.id)

    crud_planned_entry.update_db_planned_entry(
        db, tenant["company"].id, entry.id, PlannedEntryUpdate(status=PlannedStatus.COVERED), now=NOW
    )
    assert _status(db, entry) == PlannedStatus.PARTIALLY_COVERED

    crud_planned_entry.update_db_planned_entry(
        db, tenant["company"].id, entry.id, PlannedEntryUpdate(status=PlannedStatus.CANCELLED), now=NOW
    )
    crud_planned_entry.update_db_planned_entry(
        db, tenant["company"].id, entry.id, PlannedEntryUpdate(status=PlannedStatus.PLANNED), now=NOW
    )
    assert _status(db, entry) == PlannedStatus.PARTIALLY_COVERED


def test_editing_estimate_triggers_reconciliation(db, tenant, entry, pay):
    pay("40", entry.id)

    crud_planned_entry.update_db_planned_entry(
        db, tenant["company"].id, entry.id, PlannedEntryUpdate(amount_estimated=Decimal("40")), now=NOW
    )

    assert _status(db, entry) == PlannedStatus.COVERED


def test_unconfirmed_transactions_count(db, tenant, entry):
    crud_transaction.create_db_transaction(db, tenant["company"].id, TransactionCreate(
        date=datetime(2024, 1, 15),
        description="Pending transfer",
        transaction_type=TransactionType.EXPENSE,
        category_id=tenant["expense_category"].id,
        account_from_id=tenant["bank"].id,
        amount=Decimal("100"),
        planned_entry_id=entry.id,
        is_confirmed=False,
    ), now=NOW)

    assert _status(db, entry) == PlannedStatus.COVERED


def test_missing_entry_is_a_no_op(db, tenant, other_tenant, entry):
    assert reconcile_planned_entry(db, tenant["company"].id, 9999, now=NOW) is None
    # Another company's id behaves as missing
    assert reconcile_planned_entry(db, other_tenant["company"].id, entry.id, now=NOW) is None


def test_reconcile_quietly_swallows_store_errors(db, tenant, entry, monkeypatch):
    def failing(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(reconciliation, "reconcile_planned_entry", failing)

    assert reconciliation.reconcile_quietly(db, tenant["company"].id, entry.id, now=NOW) is None
    assert reconciliation.reconcile_quietly(db, tenant["company"].id, None, now=NOW) is None


def test_transaction_survives_failed_reconciliation(db, tenant, entry, pay, monkeypatch):
    def failing(*args, **kwargs):
        raise OperationalError("UPDATE", {}, Exception("database is locked"))

    monkeypatch.setattr(reconciliation, "reconcile_planned_entry", failing)

    txn = pay("100", entry.id)

    assert crud_transaction.read_db_transaction(db, tenant["company"].id, txn.id) is not None
    assert _status(db, entry) == PlannedStatus.PLANNED


def test_sweep_marks_past_due_open_entries_overdue(db, tenant, entry, pay):
    crud_planned_entry.create_db_planned_entry(db, tenant["company"].id, PlannedEntryCreate(
        name="Later invoice",
        flow_type=FlowType.EXPENSE,
        category_id=tenant["expense_category"].id,
        account_expected_id=tenant["bank"].id,
        amount_estimated=Decimal("10"),
        due_date=datetime(2024, 6, 1),
    ), now=NOW)
    pay("40", entry.id)

    later = datetime(2024, 3, 1)
    assert sweep_overdue_entries(db, tenant["company"].id, now=later) == 1
    assert _status(db, entry) == PlannedStatus.OVERDUE
    assert sweep_overdue_entries(db, tenant["company"].id, now=later) == 0
