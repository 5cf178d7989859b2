from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional

from ledgerplan.crud import crud_account
from ledgerplan.models import account as account_models
from ledgerplan.db.core import get_db, AccountType, InUseError, NotFoundError
from ledgerplan.routers.deps import get_current_company_id

router = APIRouter(
    prefix="/accounts",
    tags=["accounts"],
)


@router.post("/", response_model=account_models.AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(
    account: account_models.AccountCreate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    """
    Create a new account for the current company. Currency defaults to the company's.
    """
    try:
        return crud_account.create_db_account(db=db, company_id=company_id, account_data=account)
    except (ValueError, NotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/", response_model=List[account_models.AccountResponse])
def read_accounts(
    account_type: Optional[AccountType] = None,
    active_only: bool = False,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    return crud_account.read_db_accounts(
        db=db, company_id=company_id, account_type=account_type,
        active_only=active_only, skip=skip, limit=limit
    )


@router.get("/{account_id}", response_model=account_models.AccountResponse)
def read_account(
    account_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    db_account = crud_account.read_db_account(db=db, company_id=company_id, account_id=account_id)
    if db_account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found")
    return db_account


@router.put("/{account_id}", response_model=account_models.AccountResponse)
def update_account(
    account_id: int,
    account: account_models.AccountUpdate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    try:
        return crud_account.update_db_account(
            db=db, company_id=company_id, account_id=account_id, account_updates=account
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    account_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    """
    Delete an account. Refused with 409 while transactions or plans reference it.
    """
    try:
        crud_account.delete_db_account(db=db, company_id=company_id, account_id=account_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InUseError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
