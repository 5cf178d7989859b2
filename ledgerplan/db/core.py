from typing import Optional
from sqlalchemy import create_engine, ForeignKey, Index, UniqueConstraint, Boolean, Integer, String, Text, DECIMAL, DateTime
from sqlalchemy.types import Enum
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Mapped, relationship, mapped_column
from datetime import datetime, timezone
from decimal import Decimal
import enum

from ledgerplan.config import get_settings


class NotFoundError(Exception):
    pass


class InUseError(ValueError):
    """Deletion refused because other rows still reference the entity."""


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class FlowType(enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"


class AccountType(enum.Enum):
    BANK = "bank"
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    INVESTMENT = "investment"
    OTHER = "other"


class ContactType(enum.Enum):
    CUSTOMER = "customer"
    SUPPLIER = "supplier"
    SERVICE = "service"
    OTHER = "other"


class TransactionType(enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class PlannedStatus(enum.Enum):
    PLANNED = "planned"
    PARTIALLY_COVERED = "partially_covered"
    COVERED = "covered"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


# Statuses that regeneration may delete and that the overdue sweep revisits
OPEN_PLANNED_STATUSES = (PlannedStatus.PLANNED, PlannedStatus.PARTIALLY_COVERED)


def _enum_column(enum_cls):
    # Persist the lowercase values ("partially_covered"), not the member names
    return Enum(enum_cls, values_callable=lambda members: [m.value for m in members], native_enum=False, length=32)


class CompanyDB(Base):
    __tablename__ = "companies"

    __table_args__ = (
        UniqueConstraint("name", name="uq_company_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    default_currency: Mapped[str] = mapped_column(String(3), default="MXN")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    # Audit Trail
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    accounts = relationship("AccountDB", back_populates="company")
    categories = relationship("CategoryDB", back_populates="company")
    recurring_plans = relationship("RecurringPlanDB", back_populates="company")


class AccountDB(Base):
    __tablename__ = "accounts"

    __table_args__ = (
        # Prevent duplicate account names per tenant
        UniqueConstraint("company_id", "name", name="uq_company_account_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)  # "BBVA Operativa", "Caja chica"
    account_type: Mapped[AccountType] = mapped_column(_enum_column(AccountType))
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    # Audit Trail
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    company = relationship("CompanyDB", back_populates="accounts")


class CategoryDB(Base):
    __tablename__ = "categories"

    __table_args__ = (
        Index("idx_category_company", "company_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    flow_type: Mapped[FlowType] = mapped_column(_enum_column(FlowType))
    # Tree by convention only; no cycle guard beyond self-parenting
    parent_id: Mapped[Optional[int]] = mapped_column(ForeignKey("categories.id"))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    company = relationship("CompanyDB", back_populates="categories")
    parent = relationship("CategoryDB", remote_side=[id], back_populates="children")
    children = relationship("CategoryDB", back_populates="parent")


class ContactDB(Base):
    __tablename__ = "contacts"

    __table_args__ = (
        Index("idx_contact_company", "company_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_type: Mapped[ContactType] = mapped_column(_enum_column(ContactType))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class RecurringPlanDB(Base):
    __tablename__ = "recurring_plans"

    __table_args__ = (
        Index("idx_recurring_plans_company", "company_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    flow_type: Mapped[FlowType] = mapped_column(_enum_column(FlowType))
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id"), nullable=False)
    account_expected_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    contact_id: Mapped[Optional[int]] = mapped_column(ForeignKey("contacts.id"))

    amount_estimated: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    frequency: Mapped[str] = mapped_column(String(20), nullable=False)  # "monthly", "weekly", "biweekly", ...
    day_of_month: Mapped[Optional[int]] = mapped_column(Integer)  # 1-31, clamped per month
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    company = relationship("CompanyDB", back_populates="recurring_plans")
    category = relationship("CategoryDB")
    account_expected = relationship("AccountDB")


class PlannedEntryDB(Base):
    __tablename__ = "planned_entries"

    __table_args__ = (
        Index("idx_planned_entries_company_due", "company_id", "due_date"),
        Index("idx_planned_entries_plan_due", "recurring_plan_id", "due_date"),
        Index("idx_planned_entries_status", "status"),
        # Never reuse ids: transactions point here without a foreign key
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)

    # Provenance: weak reference to the plan revision that produced this entry.
    # No FK so the entry outlives plan edits and deletions.
    recurring_plan_id: Mapped[Optional[int]] = mapped_column(Integer)
    recurring_plan_version: Mapped[Optional[int]] = mapped_column(Integer)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    flow_type: Mapped[FlowType] = mapped_column(_enum_column(FlowType))
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id"), nullable=False)
    account_expected_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    contact_id: Mapped[Optional[int]] = mapped_column(ForeignKey("contacts.id"))

    amount_estimated: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    due_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[PlannedStatus] = mapped_column(_enum_column(PlannedStatus), default=PlannedStatus.PLANNED)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class TransactionDB(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        Index("idx_transactions_company_date", "company_id", "date"),
        Index("idx_transactions_planned_entry", "planned_entry_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)

    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    transaction_type: Mapped[TransactionType] = mapped_column(_enum_column(TransactionType))
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id"), nullable=False)

    # Expenses and transfers leave from account_from; incomes and transfers land in account_to
    account_from_id: Mapped[Optional[int]] = mapped_column(ForeignKey("accounts.id"))
    account_to_id: Mapped[Optional[int]] = mapped_column(ForeignKey("accounts.id"))

    amount: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)

    # Weak reference used only for reconciliation lookups
    planned_entry_id: Mapped[Optional[int]] = mapped_column(Integer)

    is_confirmed: Mapped[bool] = mapped_column(Boolean, default=True)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    category = relationship("CategoryDB")


class ForecastDB(Base):
    __tablename__ = "forecasts"

    __table_args__ = (
        Index("idx_forecasts_company", "company_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)

    generated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    generated_by: Mapped[Optional[str]] = mapped_column(String(255))

    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    projected_income_total: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    projected_expense_total: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    projected_net: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    initial_balance: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(15, 2))
    final_balance: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(15, 2))

    # Free-text scenario fields
    details: Mapped[Optional[str]] = mapped_column(Text)
    scenario_name: Mapped[Optional[str]] = mapped_column(String(255))
    notes: Mapped[Optional[str]] = mapped_column(Text)


def _build_engine():
    settings = get_settings()
    if settings.database_url.startswith("sqlite"):
        return create_engine(
            settings.database_url,
            echo=settings.sql_echo,
            connect_args={"check_same_thread": False, "timeout": settings.store_timeout_seconds},
        )
    return create_engine(
        settings.database_url,
        echo=settings.sql_echo,
        pool_timeout=settings.store_timeout_seconds,
    )


engine = _build_engine()
session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependency to get the database session
def get_db():
    database = session_local()
    try:
        yield database
    finally:
        database.close()
