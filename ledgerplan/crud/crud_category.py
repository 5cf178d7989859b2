from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List, Optional

from ledgerplan.db.core import (
    CategoryDB,
    FlowType,
    InUseError,
    NotFoundError,
    PlannedEntryDB,
    RecurringPlanDB,
    TransactionDB,
    utcnow,
)
from ledgerplan.models.category import CategoryCreate, CategoryUpdate


def _check_parent(db: Session, company_id: int, parent_id: Optional[int], category_id: Optional[int] = None) -> None:
    if parent_id is None:
        return
    if category_id is not None and parent_id == category_id:
        raise ValueError("A category cannot be its own parent")
    parent = db.query(CategoryDB).filter(CategoryDB.id == parent_id).first()
    if not parent:
        raise NotFoundError(f"Parent category with id {parent_id} not found")
    if parent.company_id != company_id:
        raise ValueError(f"Parent category {parent_id} belongs to another company")


def create_db_category(db: Session, company_id: int, category_data: CategoryCreate) -> CategoryDB:
    """Create a new category for a company"""

    name = category_data.name.strip()
    existing_category = db.query(CategoryDB).filter(
        CategoryDB.company_id == company_id,
        CategoryDB.name.ilike(name),
        CategoryDB.flow_type == category_data.flow_type
    ).first()
    if existing_category:
        raise ValueError(f"Category with name '{name}' already exists")

    _check_parent(db, company_id, category_data.parent_id)

    db_category = CategoryDB(
        company_id=company_id,
        name=name,
        flow_type=category_data.flow_type,
        parent_id=category_data.parent_id,
        notes=category_data.notes,
    )

    try:
        db.add(db_category)
        db.commit()
        db.refresh(db_category)
        return db_category
    except IntegrityError:
        db.rollback()
        raise ValueError("Category creation failed due to a database constraint.")


def read_db_categories(db: Session, company_id: int, flow_type: Optional[FlowType] = None,
                       skip: int = 0, limit: int = 100) -> List[CategoryDB]:
    query = db.query(CategoryDB).filter(CategoryDB.company_id == company_id)
    if flow_type:
        query = query.filter(CategoryDB.flow_type == flow_type)
    return query.order_by(CategoryDB.name).offset(skip).limit(limit).all()


def read_db_category(db: Session, company_id: int, category_id: int) -> Optional[CategoryDB]:
    return db.query(CategoryDB).filter(
        CategoryDB.id == category_id,
        CategoryDB.company_id == company_id
    ).first()


def update_db_category(db: Session, company_id: int, category_id: int, category_updates: CategoryUpdate) -> CategoryDB:
    db_category = read_db_category(db, company_id, category_id)
    if not db_category:
        raise NotFoundError(f"Category with id {category_id} not found")

    update_data = category_updates.model_dump(exclude_unset=True)

    if 'name' in update_data:
        new_name = update_data['name'].strip()
        existing = db.query(CategoryDB).filter(
            CategoryDB.company_id == company_id,
            CategoryDB.name.ilike(new_name),
            CategoryDB.flow_type == update_data.get('flow_type', db_category.flow_type),
            CategoryDB.id != category_id
        ).first()
        if existing:
            raise ValueError(f"Category with name '{new_name}' already exists")
        update_data['name'] = new_name

    if 'parent_id' in update_data:
        _check_parent(db, company_id, update_data['parent_id'], category_id)

    for field, value in update_data.items():
        setattr(db_category, field, value)
    db_category.updated_at = utcnow()

    try:
        db.commit()
        db.refresh(db_category)
        return db_category
    except IntegrityError:
        db.rollback()
        raise ValueError("Category update failed due to a database constraint.")


def category_in_use(db: Session, company_id: int, category_id: int) -> bool:
    for model in (TransactionDB, RecurringPlanDB, PlannedEntryDB):
        if db.query(model.id).filter(model.company_id == company_id, model.category_id == category_id).first():
            return True
    return db.query(CategoryDB.id).filter(CategoryDB.parent_id == category_id).first() is not None


def delete_db_category(db: Session, company_id: int, category_id: int) -> bool:
    db_category = read_db_category(db, company_id, category_id)
    if not db_category:
        raise NotFoundError(f"Category with id {category_id} not found")

    if category_in_use(db, company_id, category_id):
        raise InUseError("Cannot delete category as it is currently in use.")

    try:
        db.delete(db_category)
        db.commit()
        return True
    except IntegrityError:
        db.rollback()
        raise InUseError("Cannot delete category as it is currently in use.")
