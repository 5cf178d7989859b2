"""create companies, accounts, categories, contacts, recurring plans, planned entries, transactions and forecasts

Revision ID: 3c1f0b7d2a91
Revises:
Create Date: 2026-10-17 10:12:44.508131

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f0b7d2a91'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'companies',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('default_currency', sa.String(3), nullable=True),
        sa.Column('is_active', sa.Boolean, nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('name', name='uq_company_name'),
    )
    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('company_id', sa.Integer, sa.ForeignKey('companies.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('account_type', sa.String(32), nullable=False),  # bank, cash, credit_card, investment, other
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('company_id', 'name', name='uq_company_account_name'),
    )
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('company_id', sa.Integer, sa.ForeignKey('companies.id'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('flow_type', sa.String(32), nullable=False),  # income, expense
        sa.Column('parent_id', sa.Integer, sa.ForeignKey('categories.id'), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_category_company', 'categories', ['company_id'])

    op.create_table(
        'contacts',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('company_id', sa.Integer, sa.ForeignKey('companies.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('contact_type', sa.String(32), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_contact_company', 'contacts', ['company_id'])

    op.create_table(
        'recurring_plans',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('company_id', sa.Integer, sa.ForeignKey('companies.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('flow_type', sa.String(32), nullable=False),
        sa.Column('category_id', sa.Integer, sa.ForeignKey('categories.id'), nullable=False),
        sa.Column('account_expected_id', sa.Integer, sa.ForeignKey('accounts.id'), nullable=False),
        sa.Column('contact_id', sa.Integer, sa.ForeignKey('contacts.id'), nullable=True),
        sa.Column('amount_estimated', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('frequency', sa.String(20), nullable=False),
        sa.Column('day_of_month', sa.Integer, nullable=True),
        sa.Column('start_date', sa.DateTime, nullable=False),
        sa.Column('end_date', sa.DateTime, nullable=True),
        sa.Column('is_active', sa.Boolean, nullable=True),
        sa.Column('version', sa.Integer, nullable=False, server_default='1'),
        sa.Column('notes', sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_recurring_plans_company', 'recurring_plans', ['company_id'])

    op.create_table(
        'planned_entries',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('company_id', sa.Integer, sa.ForeignKey('companies.id'), nullable=False),
        sa.Column('recurring_plan_id', sa.Integer, nullable=True),  # weak reference, no FK
        sa.Column('recurring_plan_version', sa.Integer, nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('flow_type', sa.String(32), nullable=False),
        sa.Column('category_id', sa.Integer, sa.ForeignKey('categories.id'), nullable=False),
        sa.Column('account_expected_id', sa.Integer, sa.ForeignKey('accounts.id'), nullable=False),
        sa.Column('contact_id', sa.Integer, sa.ForeignKey('contacts.id'), nullable=True),
        sa.Column('amount_estimated', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('due_date', sa.DateTime, nullable=False),
        sa.Column('status', sa.String(32), nullable=False),  # planned, partially_covered, covered, overdue, cancelled
        sa.Column('notes', sa.Text, nullable=True),
        *_timestamps(),
        sqlite_autoincrement=True,
    )
    op.create_index('idx_planned_entries_company_due', 'planned_entries', ['company_id', 'due_date'])
    op.create_index('idx_planned_entries_plan_due', 'planned_entries', ['recurring_plan_id', 'due_date'])
    op.create_index('idx_planned_entries_status', 'planned_entries', ['status'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('company_id', sa.Integer, sa.ForeignKey('companies.id'), nullable=False),
        sa.Column('date', sa.DateTime, nullable=False),
        sa.Column('description', sa.String(500), nullable=False),
        sa.Column('transaction_type', sa.String(32), nullable=False),  # income, expense, transfer
        sa.Column('category_id', sa.Integer, sa.ForeignKey('categories.id'), nullable=False),
        sa.Column('account_from_id', sa.Integer, sa.ForeignKey('accounts.id'), nullable=True),
        sa.Column('account_to_id', sa.Integer, sa.ForeignKey('accounts.id'), nullable=True),
        sa.Column('amount', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('planned_entry_id', sa.Integer, nullable=True),  # weak reference, no FK
        sa.Column('is_confirmed', sa.Boolean, nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_transactions_company_date', 'transactions', ['company_id', 'date'])
    op.create_index('idx_transactions_planned_entry', 'transactions', ['planned_entry_id'])

    op.create_table(
        'forecasts',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('company_id', sa.Integer, sa.ForeignKey('companies.id'), nullable=False),
        sa.Column('generated_at', sa.DateTime, nullable=True),
        sa.Column('generated_by', sa.String(255), nullable=True),
        sa.Column('start_date', sa.DateTime, nullable=False),
        sa.Column('end_date', sa.DateTime, nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('projected_income_total', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('projected_expense_total', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('projected_net', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('initial_balance', sa.DECIMAL(15, 2), nullable=True),
        sa.Column('final_balance', sa.DECIMAL(15, 2), nullable=True),
        sa.Column('details', sa.Text, nullable=True),
        sa.Column('scenario_name', sa.String(255), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
    )
    op.create_index('idx_forecasts_company', 'forecasts', ['company_id'])


def downgrade() -> None:
    op.drop_table('forecasts')
    op.drop_table('transactions')
    op.drop_table('planned_entries')
    op.drop_table('recurring_plans')
    op.drop_table('contacts')
    op.drop_table('categories')
    op.drop_table('accounts')
    op.drop_table('companies')
