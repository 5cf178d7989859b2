from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional

from ledgerplan.crud import crud_company
from ledgerplan.db.core import get_db


def get_current_company_id(
    x_company_id: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> int:
    """
    Resolve the active tenant from the X-Company-Id header.

    Every finance route is scoped to this company; rows of other companies
    behave as if they did not exist.
    """
    if x_company_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="X-Company-Id header is required")
    try:
        company_id = int(x_company_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="X-Company-Id must be an integer")

    if crud_company.read_db_company(db, company_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return company_id
