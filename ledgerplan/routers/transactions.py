from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Optional

from ledgerplan.crud import crud_transaction
from ledgerplan.models import transaction as transaction_models
from ledgerplan.db.core import get_db, to_naive_utc, NotFoundError, TransactionType
from ledgerplan.routers.deps import get_current_company_id

router = APIRouter(
    prefix="/transactions",
    tags=["transactions"],
)


@router.post("/", response_model=transaction_models.TransactionResponse, status_code=status.HTTP_201_CREATED)
def create_transaction(
    transaction: transaction_models.TransactionCreate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    """
    Record a transaction. A linked planned entry is reconciled afterwards.
    """
    try:
        return crud_transaction.create_db_transaction(db=db, company_id=company_id, transaction_data=transaction)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/", response_model=List[transaction_models.TransactionResponse])
def read_transactions(
    transaction_type: Optional[TransactionType] = None,
    category_id: Optional[int] = None,
    account_id: Optional[int] = None,
    planned_entry_id: Optional[int] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    """
    Retrieve transactions for the current company, newest first.
    """
    return crud_transaction.read_db_transactions(
        db=db, company_id=company_id, transaction_type=transaction_type, category_id=category_id,
        account_id=account_id, planned_entry_id=planned_entry_id,
        date_from=to_naive_utc(date_from), date_to=to_naive_utc(date_to), skip=skip, limit=limit
    )


@router.get("/{transaction_id}", response_model=transaction_models.TransactionResponse)
def read_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    db_transaction = crud_transaction.read_db_transaction(db=db, company_id=company_id, transaction_id=transaction_id)
    if db_transaction is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    return db_transaction


@router.put("/{transaction_id}", response_model=transaction_models.TransactionResponse)
def update_transaction(
    transaction_id: int,
    transaction: transaction_models.TransactionUpdate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    try:
        return crud_transaction.update_db_transaction(
            db=db, company_id=company_id, transaction_id=transaction_id, transaction_updates=transaction
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    try:
        crud_transaction.delete_db_transaction(db=db, company_id=company_id, transaction_id=transaction_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
