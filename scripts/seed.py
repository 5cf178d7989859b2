import sys
import os
import random
from sqlalchemy.orm import Session
from datetime import timedelta
from decimal import Decimal
from faker import Faker

# Add the project root to the Python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from ledgerplan.db.core import (
    Base,
    engine,
    session_local,
    utcnow,
    AccountType,
    CompanyDB,
    ContactType,
    FlowType,
    TransactionType,
)
from ledgerplan.crud import (
    crud_account,
    crud_category,
    crud_company,
    crud_contact,
    crud_recurring_plan,
    crud_transaction,
)
from ledgerplan.models.account import AccountCreate
from ledgerplan.models.category import CategoryCreate
from ledgerplan.models.company import CompanyCreate
from ledgerplan.models.contact import ContactCreate
from ledgerplan.models.recurring_plan import RecurringPlanCreate
from ledgerplan.models.transaction import TransactionCreate

fake = Faker()

CATEGORIES_STRUCTURE = {
    FlowType.INCOME: {
        "Ventas": ["Ventas mostrador", "Ventas en linea"],
        "Servicios": ["Consultoria", "Mantenimiento"],
    },
    FlowType.EXPENSE: {
        "Operacion": ["Renta", "Luz", "Internet"],
        "Nomina": ["Sueldos", "IMSS"],
        "Proveedores": ["Materia prima", "Empaque"],
    },
}

# (name, flow, subcategory, amount, frequency, day_of_month)
PLAN_TEMPLATES = [
    ("Renta oficina", FlowType.EXPENSE, "Renta", Decimal("18000"), "monthly", 1),
    ("Internet", FlowType.EXPENSE, "Internet", Decimal("899"), "monthly", 15),
    ("Nomina quincenal", FlowType.EXPENSE, "Sueldos", Decimal("42000"), "biweekly", None),
    ("Iguala cliente", FlowType.INCOME, "Consultoria", Decimal("35000"), "monthly", 31),
    ("Compra semanal", FlowType.EXPENSE, "Materia prima", Decimal("6500"), "weekly", None),
]


def seed_company(db: Session, index: int):
    company = crud_company.create_db_company(db, CompanyCreate(
        name=f"{fake.company()} {index}",
        default_currency="MXN",
    ))
    print(f"--- Seeding company {company.name} (ID: {company.id}) ---")

    bank = crud_account.create_db_account(db, company.id, AccountCreate(name="BBVA Operativa", account_type=AccountType.BANK))
    cash = crud_account.create_db_account(db, company.id, AccountCreate(name="Caja chica", account_type=AccountType.CASH))
    crud_account.create_db_account(db, company.id, AccountCreate(name="Tarjeta empresarial", account_type=AccountType.CREDIT_CARD))

    categories = {}
    for flow_type, parents in CATEGORIES_STRUCTURE.items():
        for parent_name, children in parents.items():
            parent = crud_category.create_db_category(db, company.id, CategoryCreate(name=parent_name, flow_type=flow_type))
            for child_name in children:
                child = crud_category.create_db_category(
                    db, company.id, CategoryCreate(name=child_name, flow_type=flow_type, parent_id=parent.id)
                )
                categories[child_name] = child

    contacts = [
        crud_contact.create_db_contact(db, company.id, ContactCreate(
            name=fake.company(),
            contact_type=random.choice([ContactType.CUSTOMER, ContactType.SUPPLIER]),
            email=fake.company_email(),
            phone=fake.phone_number()[:50],
        ))
        for _ in range(4)
    ]

    now = utcnow()
    start = (now - timedelta(days=120)).replace(hour=9, minute=0, second=0, microsecond=0)

    plans = []
    for name, flow_type, category_name, amount, frequency, day_of_month in PLAN_TEMPLATES:
        plans.append(crud_recurring_plan.create_db_recurring_plan(db, company.id, RecurringPlanCreate(
            name=name,
            flow_type=flow_type,
            category_id=categories[category_name].id,
            account_expected_id=bank.id,
            contact_id=random.choice(contacts).id,
            amount_estimated=amount,
            frequency=frequency,
            day_of_month=day_of_month,
            start_date=start,
        )))
    print(f"{len(plans)} recurring plans created.")

    # Pay part of the generated entries so every coverage status shows up
    paid = 0
    for plan in plans:
        entries = crud_recurring_plan.read_db_plan_entries(db, company.id, plan.id)
        for entry in entries[:3]:
            share = random.choice([Decimal("0.5"), Decimal("1"), Decimal("1.1")])
            income = entry.flow_type == FlowType.INCOME
            crud_transaction.create_db_transaction(db, company.id, TransactionCreate(
                date=entry.due_date,
                description=f"Pago {entry.name}",
                transaction_type=TransactionType.INCOME if income else TransactionType.EXPENSE,
                category_id=entry.category_id,
                account_to_id=bank.id if income else None,
                account_from_id=None if income else bank.id,
                amount=(entry.amount_estimated * share).quantize(Decimal("0.01")),
                planned_entry_id=entry.id,
            ))
            paid += 1

    # Unplanned day-to-day movements
    for _ in range(random.randint(20, 40)):
        income = random.random() < 0.4
        crud_transaction.create_db_transaction(db, company.id, TransactionCreate(
            date=fake.date_time_between(start_date=start, end_date=now),
            description=fake.bs().capitalize(),
            transaction_type=TransactionType.INCOME if income else TransactionType.EXPENSE,
            category_id=categories["Ventas mostrador" if income else "Empaque"].id,
            account_to_id=cash.id if income else None,
            account_from_id=None if income else cash.id,
            amount=Decimal(str(round(random.uniform(100, 5000), 2))),
        ))

    crud_transaction.create_db_transaction(db, company.id, TransactionCreate(
        date=now - timedelta(days=1),
        description="Deposito de caja",
        transaction_type=TransactionType.TRANSFER,
        category_id=categories["Ventas mostrador"].id,
        account_from_id=cash.id,
        account_to_id=bank.id,
        amount=Decimal("2500.00"),
    ))
    print(f"{paid} planned payments and sample transactions created.")


def seed_database(companies: int = 2):
    """
    Fills the database with sample companies, plans and transactions.
    """
    Base.metadata.create_all(bind=engine)
    db: Session = session_local()

    try:
        # Check if data exists to prevent duplicate seeding
        if db.query(CompanyDB).count() > 0:
            print("Database appears to be already seeded. Exiting.")
            return

        print("Seeding database with sample data...")
        for i in range(companies):
            seed_company(db, i + 1)
        print("Seeding complete.")
    finally:
        db.close()


if __name__ == "__main__":
    seed_database()
