from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import or_
from typing import List, Optional

from ledgerplan.db.core import (
    AccountDB,
    AccountType,
    CompanyDB,
    InUseError,
    NotFoundError,
    PlannedEntryDB,
    RecurringPlanDB,
    TransactionDB,
    utcnow,
)
from ledgerplan.models.account import AccountCreate, AccountUpdate


# ===== DATABASE OPERATIONS =====

def create_db_account(db: Session, company_id: int, account_data: AccountCreate) -> AccountDB:
    """Create a new account for a company"""

    company = db.query(CompanyDB).filter(CompanyDB.id == company_id).first()
    if not company:
        raise NotFoundError(f"Company with id {company_id} not found")

    # Check if account name already exists for this company
    existing_account = db.query(AccountDB).filter(
        AccountDB.company_id == company_id,
        AccountDB.name == account_data.name
    ).first()
    if existing_account:
        raise ValueError(f"Account name '{account_data.name}' already exists")

    db_account = AccountDB(
        company_id=company_id,
        name=account_data.name,
        account_type=account_data.account_type,
        currency=account_data.currency or company.default_currency,
        is_active=account_data.is_active,
        notes=account_data.notes,
    )

    try:
        db.add(db_account)
        db.commit()
        db.refresh(db_account)
        return db_account
    except IntegrityError:
        db.rollback()
        raise ValueError("Account creation failed due to database constraint")


def read_db_account(db: Session, company_id: int, account_id: int) -> Optional[AccountDB]:
    return db.query(AccountDB).filter(
        AccountDB.id == account_id,
        AccountDB.company_id == company_id
    ).first()


def read_db_accounts(db: Session, company_id: int, account_type: Optional[AccountType] = None,
                     active_only: bool = False, skip: int = 0, limit: int = 100) -> List[AccountDB]:
    """Read accounts for a company, optionally filtered by type or active flag"""

    query = db.query(AccountDB).filter(AccountDB.company_id == company_id)

    if account_type:
        query = query.filter(AccountDB.account_type == account_type)
    if active_only:
        query = query.filter(AccountDB.is_active.is_(True))

    return query.order_by(AccountDB.name).offset(skip).limit(limit).all()


def update_db_account(db: Session, company_id: int, account_id: int, account_updates: AccountUpdate) -> AccountDB:
    db_account = read_db_account(db, company_id, account_id)
    if not db_account:
        raise NotFoundError(f"Account with id {account_id} not found")

    # Check for account name uniqueness if name is being updated
    if account_updates.name and account_updates.name != db_account.name:
        existing_name = db.query(AccountDB).filter(
            AccountDB.company_id == company_id,
            AccountDB.name == account_updates.name,
            AccountDB.id != account_id
        ).first()
        if existing_name:
            raise ValueError(f"Account name '{account_updates.name}' already exists")

    update_data = account_updates.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_account, field, value)

    db_account.updated_at = utcnow()

    try:
        db.commit()
        db.refresh(db_account)
        return db_account
    except IntegrityError:
        db.rollback()
        raise ValueError("Account update failed due to database constraint")


def account_in_use(db: Session, company_id: int, account_id: int) -> bool:
    """True if any transaction, recurring plan or planned entry references the account"""
    if db.query(TransactionDB.id).filter(
        TransactionDB.company_id == company_id,
        or_(TransactionDB.account_from_id == account_id, TransactionDB.account_to_id == account_id)
    ).first():
        return True
    if db.query(RecurringPlanDB.id).filter(
        RecurringPlanDB.company_id == company_id,
        RecurringPlanDB.account_expected_id == account_id
    ).first():
        return True
    return db.query(PlannedEntryDB.id).filter(
        PlannedEntryDB.company_id == company_id,
        PlannedEntryDB.account_expected_id == account_id
    ).first() is not None


def delete_db_account(db: Session, company_id: int, account_id: int) -> bool:
    """Delete an account (only if nothing references it)"""

    db_account = read_db_account(db, company_id, account_id)
    if not db_account:
        raise NotFoundError(f"Account with id {account_id} not found")

    if account_in_use(db, company_id, account_id):
        raise InUseError("Cannot delete account: it is referenced by transactions or plans. Deactivate it instead")

    try:
        db.delete(db_account)
        db.commit()
        return True
    except IntegrityError:
        db.rollback()
        raise InUseError("Cannot delete account as it is currently in use")
