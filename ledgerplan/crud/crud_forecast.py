from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List, Optional

from ledgerplan.db.core import CompanyDB, ForecastDB, NotFoundError
from ledgerplan.models.forecast import ForecastCreate, ForecastUpdate


def create_db_forecast(db: Session, company_id: int, forecast_data: ForecastCreate) -> ForecastDB:
    company = db.query(CompanyDB).filter(CompanyDB.id == company_id).first()
    if not company:
        raise NotFoundError(f"Company with id {company_id} not found")

    data = forecast_data.model_dump()
    data['currency'] = data['currency'] or company.default_currency
    db_forecast = ForecastDB(company_id=company_id, **data)

    try:
        db.add(db_forecast)
        db.commit()
        db.refresh(db_forecast)
        return db_forecast
    except IntegrityError:
        db.rollback()
        raise ValueError("Forecast creation failed due to database constraint")


def read_db_forecast(db: Session, company_id: int, forecast_id: int) -> Optional[ForecastDB]:
    return db.query(ForecastDB).filter(
        ForecastDB.id == forecast_id,
        ForecastDB.company_id == company_id
    ).first()


def read_db_forecasts(db: Session, company_id: int, skip: int = 0, limit: int = 100) -> List[ForecastDB]:
    return db.query(ForecastDB).filter(
        ForecastDB.company_id == company_id
    ).order_by(ForecastDB.generated_at.desc()).offset(skip).limit(limit).all()


def update_db_forecast(db: Session, company_id: int, forecast_id: int, forecast_updates: ForecastUpdate) -> ForecastDB:
    db_forecast = read_db_forecast(db, company_id, forecast_id)
    if not db_forecast:
        raise NotFoundError(f"Forecast with id {forecast_id} not found")

    update_data = forecast_updates.model_dump(exclude_unset=True)
    for required in ('start_date', 'end_date', 'currency', 'projected_income_total', 'projected_expense_total'):
        if required in update_data and update_data[required] is None:
            raise ValueError(f"{required} cannot be cleared")

    start = update_data.get('start_date', db_forecast.start_date)
    end = update_data.get('end_date', db_forecast.end_date)
    if end < start:
        raise ValueError("end_date must not be before start_date")

    for field, value in update_data.items():
        setattr(db_forecast, field, value)

    # Keep the derived net in step unless the caller set it explicitly
    if update_data.get('projected_net') is None and (
        'projected_income_total' in update_data or 'projected_expense_total' in update_data
    ):
        db_forecast.projected_net = db_forecast.projected_income_total - db_forecast.projected_expense_total

    try:
        db.commit()
        db.refresh(db_forecast)
        return db_forecast
    except IntegrityError:
        db.rollback()
        raise ValueError("Forecast update failed due to database constraint")


def delete_db_forecast(db: Session, company_id: int, forecast_id: int) -> bool:
    db_forecast = read_db_forecast(db, company_id, forecast_id)
    if not db_forecast:
        raise NotFoundError(f"Forecast with id {forecast_id} not found")

    db.delete(db_forecast)
    db.commit()
    return True
