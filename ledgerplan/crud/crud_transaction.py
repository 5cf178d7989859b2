from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import or_
from datetime import datetime
from typing import List, Optional

from ledgerplan.db.core import NotFoundError, TransactionDB, TransactionType, utcnow
from ledgerplan.logging_config import get_logger
from ledgerplan.models.transaction import TransactionCreate, TransactionUpdate
from ledgerplan.services.reconciliation import reconcile_quietly
from ledgerplan.services.validation import validate_transaction_links

logger = get_logger(__name__)


# ===== DATABASE OPERATIONS =====

def create_db_transaction(
    db: Session,
    company_id: int,
    transaction_data: TransactionCreate,
    now: Optional[datetime] = None
) -> TransactionDB:
    """Validate links, persist, then reconcile the covered planned entry (if any)"""

    validate_transaction_links(
        db, company_id,
        transaction_type=transaction_data.transaction_type,
        category_id=transaction_data.category_id,
        account_from_id=transaction_data.account_from_id,
        account_to_id=transaction_data.account_to_id,
        planned_entry_id=transaction_data.planned_entry_id,
    )

    db_transaction = TransactionDB(company_id=company_id, **transaction_data.model_dump())

    try:
        db.add(db_transaction)
        db.commit()
        db.refresh(db_transaction)
    except IntegrityError:
        db.rollback()
        raise ValueError("Transaction creation failed due to database constraint")

    logger.debug(f"Company {company_id}: created transaction {db_transaction.id}")
    reconcile_quietly(db, company_id, db_transaction.planned_entry_id, now=now)
    return db_transaction


def read_db_transaction(db: Session, company_id: int, transaction_id: int) -> Optional[TransactionDB]:
    return db.query(TransactionDB).filter(
        TransactionDB.id == transaction_id,
        TransactionDB.company_id == company_id
    ).first()


def read_db_transactions(
    db: Session,
    company_id: int,
    transaction_type: Optional[TransactionType] = None,
    category_id: Optional[int] = None,
    account_id: Optional[int] = None,
    planned_entry_id: Optional[int] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    skip: int = 0,
    limit: int = 100
) -> List[TransactionDB]:
    """Read transactions for a company, newest first, with optional filters"""

    query = db.query(TransactionDB).filter(TransactionDB.company_id == company_id)

    if transaction_type:
        query = query.filter(TransactionDB.transaction_type == transaction_type)
    if category_id is not None:
        query = query.filter(TransactionDB.category_id == category_id)
    if account_id is not None:
        query = query.filter(or_(TransactionDB.account_from_id == account_id, TransactionDB.account_to_id == account_id))
    if planned_entry_id is not None:
        query = query.filter(TransactionDB.planned_entry_id == planned_entry_id)
    if date_from:
        query = query.filter(TransactionDB.date >= date_from)
    if date_to:
        query = query.filter(TransactionDB.date < date_to)

    return query.order_by(TransactionDB.date.desc(), TransactionDB.id.desc()).offset(skip).limit(limit).all()


def update_db_transaction(
    db: Session,
    company_id: int,
    transaction_id: int,
    transaction_updates: TransactionUpdate,
    now: Optional[datetime] = None
) -> TransactionDB:
    """
    Apply a partial edit. The merged result is validated as a whole, and both
    the previously and the newly linked planned entries are reconciled.
    """
    db_transaction = read_db_transaction(db, company_id, transaction_id)
    if not db_transaction:
        raise NotFoundError(f"Transaction with id {transaction_id} not found")

    update_data = transaction_updates.model_dump(exclude_unset=True)
    for required in ('date', 'description', 'transaction_type', 'category_id', 'amount', 'is_confirmed'):
        if required in update_data and update_data[required] is None:
            raise ValueError(f"{required} cannot be cleared")

    validate_transaction_links(
        db, company_id,
        transaction_type=update_data.get('transaction_type', db_transaction.transaction_type),
        category_id=update_data.get('category_id', db_transaction.category_id),
        account_from_id=update_data.get('account_from_id', db_transaction.account_from_id),
        account_to_id=update_data.get('account_to_id', db_transaction.account_to_id),
        planned_entry_id=update_data.get('planned_entry_id', db_transaction.planned_entry_id),
    )

    previous_entry_id = db_transaction.planned_entry_id
    for field, value in update_data.items():
        setattr(db_transaction, field, value)
    db_transaction.updated_at = utcnow()

    try:
        db.commit()
        db.refresh(db_transaction)
    except IntegrityError:
        db.rollback()
        raise ValueError("Transaction update failed due to database constraint")

    if previous_entry_id is not None and previous_entry_id != db_transaction.planned_entry_id:
        reconcile_quietly(db, company_id, previous_entry_id, now=now)
    reconcile_quietly(db, company_id, db_transaction.planned_entry_id, now=now)
    return db_transaction


def delete_db_transaction(
    db: Session,
    company_id: int,
    transaction_id: int,
    now: Optional[datetime] = None
) -> bool:
    db_transaction = read_db_transaction(db, company_id, transaction_id)
    if not db_transaction:
        raise NotFoundError(f"Transaction with id {transaction_id} not found")

    planned_entry_id = db_transaction.planned_entry_id

    try:
        db.delete(db_transaction)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError("Transaction deletion failed due to database constraint")

    reconcile_quietly(db, company_id, planned_entry_id, now=now)
    return True
