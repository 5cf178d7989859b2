from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from ledgerplan.crud import crud_company
from ledgerplan.models import company as company_models
from ledgerplan.db.core import get_db, InUseError, NotFoundError

router = APIRouter(
    prefix="/companies",
    tags=["companies"],
)


@router.post("/", response_model=company_models.CompanyResponse, status_code=status.HTTP_201_CREATED)
def create_company(company: company_models.CompanyCreate, db: Session = Depends(get_db)):
    """
    Create a new company (tenant).
    """
    try:
        return crud_company.create_db_company(db=db, company_data=company)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/", response_model=List[company_models.CompanyResponse])
def read_companies(skip: int = 0, limit: int = 100, db: Session = Depends(get_db)):
    return crud_company.read_db_companies(db=db, skip=skip, limit=limit)


@router.get("/{company_id}", response_model=company_models.CompanyResponse)
def read_company(company_id: int, db: Session = Depends(get_db)):
    db_company = crud_company.read_db_company(db=db, company_id=company_id)
    if db_company is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return db_company


@router.put("/{company_id}", response_model=company_models.CompanyResponse)
def update_company(company_id: int, company: company_models.CompanyUpdate, db: Session = Depends(get_db)):
    try:
        return crud_company.update_db_company(db=db, company_id=company_id, company_updates=company)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_company(company_id: int, db: Session = Depends(get_db)):
    """
    Delete a company that owns no accounts yet.
    """
    try:
        crud_company.delete_db_company(db=db, company_id=company_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InUseError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
