from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List, Optional

from ledgerplan.db.core import AccountDB, CompanyDB, InUseError, NotFoundError, utcnow
from ledgerplan.models.company import CompanyCreate, CompanyUpdate


# ===== DATABASE OPERATIONS =====

def create_db_company(db: Session, company_data: CompanyCreate) -> CompanyDB:
    """Create a new company (tenant)"""

    existing = db.query(CompanyDB).filter(CompanyDB.name == company_data.name).first()
    if existing:
        raise ValueError(f"Company '{company_data.name}' already exists")

    db_company = CompanyDB(
        name=company_data.name,
        default_currency=company_data.default_currency,
        is_active=company_data.is_active,
        notes=company_data.notes,
    )

    try:
        db.add(db_company)
        db.commit()
        db.refresh(db_company)
        return db_company
    except IntegrityError:
        db.rollback()
        raise ValueError("Company creation failed due to database constraint")


def read_db_company(db: Session, company_id: int) -> Optional[CompanyDB]:
    return db.query(CompanyDB).filter(CompanyDB.id == company_id).first()


def read_db_companies(db: Session, skip: int = 0, limit: int = 100) -> List[CompanyDB]:
    return db.query(CompanyDB).order_by(CompanyDB.name).offset(skip).limit(limit).all()


def update_db_company(db: Session, company_id: int, company_updates: CompanyUpdate) -> CompanyDB:
    db_company = read_db_company(db, company_id)
    if not db_company:
        raise NotFoundError(f"Company with id {company_id} not found")

    update_data = company_updates.model_dump(exclude_unset=True)
    if 'name' in update_data and update_data['name'] != db_company.name:
        existing = db.query(CompanyDB).filter(
            CompanyDB.name == update_data['name'],
            CompanyDB.id != company_id
        ).first()
        if existing:
            raise ValueError(f"Company '{update_data['name']}' already exists")

    for field, value in update_data.items():
        setattr(db_company, field, value)
    db_company.updated_at = utcnow()

    try:
        db.commit()
        db.refresh(db_company)
        return db_company
    except IntegrityError:
        db.rollback()
        raise ValueError("Company update failed due to database constraint")


def delete_db_company(db: Session, company_id: int) -> bool:
    """Delete a company that has no accounts yet; otherwise deactivate it instead"""
    db_company = read_db_company(db, company_id)
    if not db_company:
        raise NotFoundError(f"Company with id {company_id} not found")

    has_accounts = db.query(AccountDB.id).filter(AccountDB.company_id == company_id).first()
    if has_accounts:
        raise InUseError("Cannot delete a company that still has accounts; deactivate it instead")

    try:
        db.delete(db_company)
        db.commit()
        return True
    except IntegrityError:
        db.rollback()
        raise InUseError("Cannot delete company as it is currently in use")
