"""Shared pytest fixtures for ledgerplan tests."""

from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ledgerplan.crud import crud_account, crud_category, crud_company, crud_recurring_plan
from ledgerplan.db.core import AccountType, Base, FlowType, get_db
from ledgerplan.main import app
from ledgerplan.models.account import AccountCreate
from ledgerplan.models.category import CategoryCreate
from ledgerplan.models.company import CompanyCreate
from ledgerplan.models.recurring_plan import RecurringPlanCreate


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """API client whose requests use the test database."""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _seed_company(db, name):
    company = crud_company.create_db_company(db, CompanyCreate(name=name, default_currency="MXN"))
    bank = crud_account.create_db_account(db, company.id, AccountCreate(name="Bank", account_type=AccountType.BANK))
    cash = crud_account.create_db_account(db, company.id, AccountCreate(name="Cash", account_type=AccountType.CASH))
    income = crud_category.create_db_category(db, company.id, CategoryCreate(name="Sales", flow_type=FlowType.INCOME))
    expense = crud_category.create_db_category(db, company.id, CategoryCreate(name="Rent", flow_type=FlowType.EXPENSE))
    return {
        "company": company,
        "bank": bank,
        "cash": cash,
        "income_category": income,
        "expense_category": expense,
    }


@pytest.fixture
def tenant(db):
    """A company with two accounts and one income and one expense category."""
    return _seed_company(db, "Acme")


@pytest.fixture
def other_tenant(db):
    return _seed_company(db, "Globex")


@pytest.fixture
def make_plan(db, tenant):
    """Create a recurring plan for the tenant with a fixed clock and horizon."""
    def _make_plan(now, horizon_months=3, **overrides):
        data = {
            "name": "Office rent",
            "flow_type": FlowType.EXPENSE,
            "category_id": tenant["expense_category"].id,
            "account_expected_id": tenant["bank"].id,
            "amount_estimated": Decimal("1000.00"),
            "frequency": "monthly",
            "start_date": datetime(2024, 1, 10, 9, 0),
        }
        data.update(overrides)
        return crud_recurring_plan.create_db_recurring_plan(
            db, tenant["company"].id, RecurringPlanCreate(**data), horizon_months=horizon_months, now=now
        )
    return _make_plan
