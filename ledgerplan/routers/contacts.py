from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional

from ledgerplan.crud import crud_contact
from ledgerplan.models import contact as contact_models
from ledgerplan.db.core import get_db, ContactType, InUseError, NotFoundError
from ledgerplan.routers.deps import get_current_company_id

router = APIRouter(
    prefix="/contacts",
    tags=["contacts"],
)


@router.post("/", response_model=contact_models.ContactResponse, status_code=status.HTTP_201_CREATED)
def create_contact(
    contact: contact_models.ContactCreate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    try:
        return crud_contact.create_db_contact(db=db, company_id=company_id, contact_data=contact)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/", response_model=List[contact_models.ContactResponse])
def read_contacts(
    contact_type: Optional[ContactType] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    return crud_contact.read_db_contacts(db=db, company_id=company_id, contact_type=contact_type, skip=skip, limit=limit)


@router.get("/{contact_id}", response_model=contact_models.ContactResponse)
def read_contact(
    contact_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    db_contact = crud_contact.read_db_contact(db=db, company_id=company_id, contact_id=contact_id)
    if db_contact is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact not found")
    return db_contact


@router.put("/{contact_id}", response_model=contact_models.ContactResponse)
def update_contact(
    contact_id: int,
    contact: contact_models.ContactUpdate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    try:
        return crud_contact.update_db_contact(db=db, company_id=company_id, contact_id=contact_id, contact_updates=contact)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_contact(
    contact_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    try:
        crud_contact.delete_db_contact(db=db, company_id=company_id, contact_id=contact_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InUseError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
