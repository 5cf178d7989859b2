"""
Reference Validation Service

Enforces the cross-entity rules a write must satisfy before it is persisted:
every reference resolves inside the caller's company, transaction types
constrain which account fields are set, and category / planned entry flow
directions agree with the transaction type.

A referenced row that does not exist raises NotFoundError; a row that exists
but breaks a rule (other company, inactive, wrong flow) raises ValueError.
Nothing here writes to the session.
"""
from sqlalchemy.orm import Session
from typing import Optional

from ledgerplan.db.core import (
    AccountDB,
    CategoryDB,
    ContactDB,
    FlowType,
    NotFoundError,
    PlannedEntryDB,
    PlannedStatus,
    RecurringPlanDB,
    TransactionType,
)


def expected_flow_for(transaction_type: TransactionType) -> Optional[FlowType]:
    """Flow a category must have for this transaction type; None for transfers."""
    if transaction_type == TransactionType.INCOME:
        return FlowType.INCOME
    if transaction_type == TransactionType.EXPENSE:
        return FlowType.EXPENSE
    return None


def _get_in_company(db: Session, model, entity_id: int, company_id: int, label: str):
    entity = db.query(model).filter(model.id == entity_id).first()
    if not entity:
        raise NotFoundError(f"{label} with id {entity_id} not found")
    if entity.company_id != company_id:
        raise ValueError(f"{label} {entity_id} belongs to another company")
    return entity


def check_account_fields(
    transaction_type: TransactionType,
    account_from_id: Optional[int],
    account_to_id: Optional[int],
) -> None:
    """Income lands in account_to only, expense leaves account_from only, transfers use both."""
    if transaction_type == TransactionType.INCOME:
        if account_to_id is None:
            raise ValueError("income transaction requires account_to_id")
        if account_from_id is not None:
            raise ValueError("income should not set account_from_id")
    elif transaction_type == TransactionType.EXPENSE:
        if account_from_id is None:
            raise ValueError("expense transaction requires account_from_id")
        if account_to_id is not None:
            raise ValueError("expense should not set account_to_id")
    else:
        if account_from_id is None:
            raise ValueError("transfer needs account_from_id")
        if account_to_id is None:
            raise ValueError("transfer needs account_to_id")
        if account_from_id == account_to_id:
            raise ValueError("transfer accounts must differ")


def ensure_account_active_in_company(db: Session, account_id: int, company_id: int) -> AccountDB:
    account = _get_in_company(db, AccountDB, account_id, company_id, "Account")
    if not account.is_active:
        raise ValueError(f"Account {account_id} is inactive")
    return account


def ensure_category_matches_flow(
    db: Session, category_id: int, company_id: int, flow_type: Optional[FlowType]
) -> CategoryDB:
    category = _get_in_company(db, CategoryDB, category_id, company_id, "Category")
    if flow_type is not None and category.flow_type != flow_type:
        raise ValueError(
            f"Category '{category.name}' is {category.flow_type.value}, expected {flow_type.value}"
        )
    return category


def ensure_planned_entry_alignment(
    db: Session, planned_entry_id: int, company_id: int, transaction_type: TransactionType
) -> PlannedEntryDB:
    entry = _get_in_company(db, PlannedEntryDB, planned_entry_id, company_id, "Planned entry")

    if entry.status == PlannedStatus.CANCELLED:
        raise ValueError(f"Planned entry {planned_entry_id} is cancelled")

    if expected_flow_for(transaction_type) != entry.flow_type:
        raise ValueError("planned entry flow_type mismatches transaction type")

    return entry


def validate_transaction_links(
    db: Session,
    company_id: int,
    transaction_type: TransactionType,
    category_id: int,
    account_from_id: Optional[int],
    account_to_id: Optional[int],
    planned_entry_id: Optional[int],
) -> None:
    """Run before every transaction create/update; raises instead of returning a verdict."""
    check_account_fields(transaction_type, account_from_id, account_to_id)

    if account_from_id is not None:
        ensure_account_active_in_company(db, account_from_id, company_id)
    if account_to_id is not None:
        ensure_account_active_in_company(db, account_to_id, company_id)

    ensure_category_matches_flow(db, category_id, company_id, expected_flow_for(transaction_type))

    if planned_entry_id is not None:
        ensure_planned_entry_alignment(db, planned_entry_id, company_id, transaction_type)


def validate_company_refs(
    db: Session,
    company_id: int,
    category_id: Optional[int] = None,
    account_id: Optional[int] = None,
    contact_id: Optional[int] = None,
    flow_type: Optional[FlowType] = None,
) -> None:
    """Reference checks shared by recurring plan and planned entry writes."""
    if category_id is not None:
        ensure_category_matches_flow(db, category_id, company_id, flow_type)
    if account_id is not None:
        _get_in_company(db, AccountDB, account_id, company_id, "Account")
    if contact_id is not None:
        _get_in_company(db, ContactDB, contact_id, company_id, "Contact")


def validate_recurring_plan_ref(db: Session, company_id: int, plan_id: int) -> RecurringPlanDB:
    return _get_in_company(db, RecurringPlanDB, plan_id, company_id, "Recurring plan")
