from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List, Optional

from ledgerplan.db.core import (
    ContactDB,
    ContactType,
    InUseError,
    NotFoundError,
    PlannedEntryDB,
    RecurringPlanDB,
    utcnow,
)
from ledgerplan.models.contact import ContactCreate, ContactUpdate


def create_db_contact(db: Session, company_id: int, contact_data: ContactCreate) -> ContactDB:
    db_contact = ContactDB(company_id=company_id, **contact_data.model_dump())
    try:
        db.add(db_contact)
        db.commit()
        db.refresh(db_contact)
        return db_contact
    except IntegrityError:
        db.rollback()
        raise ValueError("Contact creation failed due to database constraint")


def read_db_contacts(db: Session, company_id: int, contact_type: Optional[ContactType] = None,
                     skip: int = 0, limit: int = 100) -> List[ContactDB]:
    query = db.query(ContactDB).filter(ContactDB.company_id == company_id)
    if contact_type:
        query = query.filter(ContactDB.contact_type == contact_type)
    return query.order_by(ContactDB.name).offset(skip).limit(limit).all()


def read_db_contact(db: Session, company_id: int, contact_id: int) -> Optional[ContactDB]:
    return db.query(ContactDB).filter(
        ContactDB.id == contact_id,
        ContactDB.company_id == company_id
    ).first()


def update_db_contact(db: Session, company_id: int, contact_id: int, contact_updates: ContactUpdate) -> ContactDB:
    db_contact = read_db_contact(db, company_id, contact_id)
    if not db_contact:
        raise NotFoundError(f"Contact with id {contact_id} not found")

    for field, value in contact_updates.model_dump(exclude_unset=True).items():
        setattr(db_contact, field, value)
    db_contact.updated_at = utcnow()

    try:
        db.commit()
        db.refresh(db_contact)
        return db_contact
    except IntegrityError:
        db.rollback()
        raise ValueError("Contact update failed due to database constraint")


def delete_db_contact(db: Session, company_id: int, contact_id: int) -> bool:
    db_contact = read_db_contact(db, company_id, contact_id)
    if not db_contact:
        raise NotFoundError(f"Contact with id {contact_id} not found")

    for model in (RecurringPlanDB, PlannedEntryDB):
        if db.query(model.id).filter(model.company_id == company_id, model.contact_id == contact_id).first():
            raise InUseError("Cannot delete contact as it is referenced by plans")

    try:
        db.delete(db_contact)
        db.commit()
        return True
    except IntegrityError:
        db.rollback()
        raise InUseError("Cannot delete contact as it is currently in use")
