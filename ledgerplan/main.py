from contextlib import asynccontextmanager
from fastapi import FastAPI

from ledgerplan.db.core import Base, engine
from ledgerplan.logging_config import get_logger, setup_logging
from ledgerplan.routers.accounts import router as accounts_router
from ledgerplan.routers.categories import router as categories_router
from ledgerplan.routers.companies import router as companies_router
from ledgerplan.routers.contacts import router as contacts_router
from ledgerplan.routers.forecasts import router as forecasts_router
from ledgerplan.routers.planned_entries import router as planned_entries_router
from ledgerplan.routers.recurring_plans import router as recurring_plans_router
from ledgerplan.routers.timeline import router as timeline_router
from ledgerplan.routers.transactions import router as transactions_router


@asynccontextmanager
async def lifespan(_: FastAPI):
    setup_logging()
    # Local SQLite convenience; deployed databases are migrated with alembic
    Base.metadata.create_all(bind=engine)
    get_logger(__name__).info("Ledger service started")
    yield


app = FastAPI(title="ledgerplan", lifespan=lifespan)

app.include_router(companies_router)
app.include_router(accounts_router)
app.include_router(categories_router)
app.include_router(contacts_router)
app.include_router(recurring_plans_router)
app.include_router(planned_entries_router)
app.include_router(transactions_router)
app.include_router(forecasts_router)
app.include_router(timeline_router)


@app.get("/")
def read_root():
    return "Server is running."
