"""Tests for transaction and reference validation."""

from datetime import datetime
from decimal import Decimal

import pytest

from ledgerplan.crud import crud_account, crud_planned_entry
from ledgerplan.db.core import FlowType, NotFoundError, PlannedStatus, TransactionType
from ledgerplan.models.account import AccountUpdate
from ledgerplan.models.planned_entry import PlannedEntryCreate, PlannedEntryUpdate
from ledgerplan.services.validation import (
    check_account_fields,
    expected_flow_for,
    validate_company_refs,
    validate_transaction_links,
)


def _links(db, tenant, **overrides):
    values = {
        "transaction_type": TransactionType.EXPENSE,
        "category_id": tenant["expense_category"].id,
        "account_from_id": tenant["bank"].id,
        "account_to_id": None,
        "planned_entry_id": None,
    }
    values.update(overrides)
    validate_transaction_links(db, tenant["company"].id, **values)


def _income_entry(db, tenant):
    return crud_planned_entry.create_db_planned_entry(db, tenant["company"].id, PlannedEntryCreate(
        name="Client retainer",
        flow_type=FlowType.INCOME,
        category_id=tenant["income_category"].id,
        account_expected_id=tenant["bank"].id,
        amount_estimated=Decimal("500"),
        due_date=datetime(2030, 1, 1),
    ))


def test_expected_flow_for_transaction_types():
    assert expected_flow_for(TransactionType.INCOME) == FlowType.INCOME
    assert expected_flow_for(TransactionType.EXPENSE) == FlowType.EXPENSE
    assert expected_flow_for(TransactionType.TRANSFER) is None


@pytest.mark.parametrize("transaction_type, account_from, account_to, message", [
    (TransactionType.INCOME, None, None, "requires account_to_id"),
    (TransactionType.INCOME, 1, 2, "should not set account_from_id"),
    (TransactionType.EXPENSE, None, None, "requires account_from_id"),
    (TransactionType.EXPENSE, 1, 2, "should not set account_to_id"),
    (TransactionType.TRANSFER, None, 2, "needs account_from_id"),
    (TransactionType.TRANSFER, 1, None, "needs account_to_id"),
    (TransactionType.TRANSFER, 1, 1, "must differ"),
])
def test_account_field_rules(transaction_type, account_from, account_to, message):
    with pytest.raises(ValueError, match=message):
        check_account_fields(transaction_type, account_from, account_to)


def test_valid_links_pass(db, tenant):
    _links(db, tenant)
    _links(
        db, tenant,
        transaction_type=TransactionType.TRANSFER,
        category_id=tenant["income_category"].id,
        account_from_id=tenant["cash"].id,
        account_to_id=tenant["bank"].id,
    )


def test_inactive_account_rejected(db, tenant):
    crud_account.update_db_account(db, tenant["company"].id, tenant["bank"].id, AccountUpdate(is_active=False))

    with pytest.raises(ValueError, match="inactive"):
        _links(db, tenant)


def test_foreign_account_rejected(db, tenant, other_tenant):
    with pytest.raises(ValueError, match="another company"):
        _links(db, tenant, account_from_id=other_tenant["bank"].id)


def test_foreign_category_rejected(db, tenant, other_tenant):
    with pytest.raises(ValueError, match="another company"):
        _links(db, tenant, category_id=other_tenant["expense_category"].id)


def test_missing_category_not_found(db, tenant):
    with pytest.raises(NotFoundError):
        _links(db, tenant, category_id=9999)


def test_category_flow_mismatch_rejected(db, tenant):
    with pytest.raises(ValueError, match="expected expense"):
        _links(db, tenant, category_id=tenant["income_category"].id)


def test_planned_entry_flow_mismatch_rejected(db, tenant):
    entry = _income_entry(db, tenant)

    with pytest.raises(ValueError, match="mismatches"):
        _links(db, tenant, planned_entry_id=entry.id)


def test_transfer_cannot_cover_planned_entry(db, tenant):
    entry = _income_entry(db, tenant)

    with pytest.raises(ValueError, match="mismatches"):
        _links(
            db, tenant,
            transaction_type=TransactionType.TRANSFER,
            account_from_id=tenant["cash"].id,
            account_to_id=tenant["bank"].id,
            planned_entry_id=entry.id,
        )


def test_cancelled_planned_entry_rejected(db, tenant):
    entry = _income_entry(db, tenant)
    crud_planned_entry.update_db_planned_entry(
        db, tenant["company"].id, entry.id, PlannedEntryUpdate(status=PlannedStatus.CANCELLED)
    )

    with pytest.raises(ValueError, match="cancelled"):
        _links(
            db, tenant,
            transaction_type=TransactionType.INCOME,
            category_id=tenant["income_category"].id,
            account_from_id=None,
            account_to_id=tenant["bank"].id,
            planned_entry_id=entry.id,
        )


def test_foreign_planned_entry_rejected(db, tenant, other_tenant):
    entry = _income_entry(db, other_tenant)

    with pytest.raises(ValueError, match="another company"):
        _links(
            db, tenant,
            transaction_type=TransactionType.INCOME,
            category_id=tenant["income_category"].id,
            account_from_id=None,
            account_to_id=tenant["bank"].id,
            planned_entry_id=entry.id,
        )


def test_company_refs_check_contact_and_flow(db, tenant, other_tenant):
    validate_company_refs(db, tenant["company"].id, category_id=tenant["income_category"].id, flow_type=FlowType.INCOME)

    with pytest.raises(NotFoundError):
        validate_company_refs(db, tenant["company"].id, contact_id=12345)
    with pytest.raises(ValueError, match="another company"):
        validate_company_refs(db, tenant["company"].id, account_id=other_tenant["cash"].id)
    with pytest.raises(ValueError, match="expected income"):
        validate_company_refs(db, tenant["company"].id, category_id=tenant["expense_category"].id, flow_type=FlowType.INCOME)
