from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional

from ledgerplan.crud import crud_category
from ledgerplan.models import category as category_models
from ledgerplan.db.core import get_db, FlowType, InUseError, NotFoundError
from ledgerplan.routers.deps import get_current_company_id

router = APIRouter(
    prefix="/categories",
    tags=["categories"],
)


@router.post("/", response_model=category_models.CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    category: category_models.CategoryCreate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    """
    Create a new category. A parent must belong to the same company.
    """
    try:
        return crud_category.create_db_category(db=db, company_id=company_id, category_data=category)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/", response_model=List[category_models.CategoryResponse])
def read_categories(
    flow_type: Optional[FlowType] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    return crud_category.read_db_categories(db=db, company_id=company_id, flow_type=flow_type, skip=skip, limit=limit)


@router.get("/{category_id}", response_model=category_models.CategoryResponse)
def read_category(
    category_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    db_category = crud_category.read_db_category(db=db, company_id=company_id, category_id=category_id)
    if db_category is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return db_category


@router.put("/{category_id}", response_model=category_models.CategoryResponse)
def update_category(
    category_id: int,
    category: category_models.CategoryUpdate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    try:
        return crud_category.update_db_category(
            db=db, company_id=company_id, category_id=category_id, category_updates=category
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    """
    Delete a category that nothing references.
    """
    try:
        crud_category.delete_db_category(db=db, company_id=company_id, category_id=category_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InUseError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
