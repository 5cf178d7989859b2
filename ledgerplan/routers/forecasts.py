from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from ledgerplan.crud import crud_forecast
from ledgerplan.models import forecast as forecast_models
from ledgerplan.db.core import get_db, NotFoundError
from ledgerplan.routers.deps import get_current_company_id

router = APIRouter(
    prefix="/forecasts",
    tags=["forecasts"],
)


@router.post("/", response_model=forecast_models.ForecastResponse, status_code=status.HTTP_201_CREATED)
def create_forecast(
    forecast: forecast_models.ForecastCreate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    """
    Store a forecast scenario. projected_net defaults to income minus expense.
    """
    try:
        return crud_forecast.create_db_forecast(db=db, company_id=company_id, forecast_data=forecast)
    except (ValueError, NotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/", response_model=List[forecast_models.ForecastResponse])
def read_forecasts(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    return crud_forecast.read_db_forecasts(db=db, company_id=company_id, skip=skip, limit=limit)


@router.get("/{forecast_id}", response_model=forecast_models.ForecastResponse)
def read_forecast(
    forecast_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    db_forecast = crud_forecast.read_db_forecast(db=db, company_id=company_id, forecast_id=forecast_id)
    if db_forecast is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Forecast not found")
    return db_forecast


@router.put("/{forecast_id}", response_model=forecast_models.ForecastResponse)
def update_forecast(
    forecast_id: int,
    forecast: forecast_models.ForecastUpdate,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    try:
        return crud_forecast.update_db_forecast(
            db=db, company_id=company_id, forecast_id=forecast_id, forecast_updates=forecast
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{forecast_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_forecast(
    forecast_id: int,
    db: Session = Depends(get_db),
    company_id: int = Depends(get_current_company_id)
):
    try:
        crud_forecast.delete_db_forecast(db=db, company_id=company_id, forecast_id=forecast_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
