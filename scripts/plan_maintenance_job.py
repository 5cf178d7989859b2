#!/usr/bin/env python
"""
Plan Maintenance Job

Runs daily to:
1. Roll every active recurring plan's horizon forward (existing entries are kept)
2. Sweep open planned entries that are past due into 'overdue'

Both steps are idempotent, so a run interrupted halfway is repaired by the next.

Usage:
    python scripts/plan_maintenance_job.py [--company-id ID] [--horizon MONTHS]

Options:
    --company-id: Process only a specific company (default: all active companies)
    --horizon: Months ahead to materialize (default: PLANNED_MONTHS_AHEAD)
    --skip-sweep: Only roll plan horizons, do not sweep overdue entries
"""
import sys
from pathlib import Path
from argparse import ArgumentParser
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from ledgerplan.db.core import get_db, utcnow, CompanyDB, RecurringPlanDB
from ledgerplan.logging_config import get_logger, setup_logging
from ledgerplan.services.reconciliation import sweep_overdue_entries
from ledgerplan.services.scheduler import roll_plan_horizon

logger = get_logger("plan_maintenance_job")


def run_plan_maintenance(
    company_id: Optional[int] = None,
    horizon_months: Optional[int] = None,
    skip_sweep: bool = False,
    db: Optional[Session] = None,
    now: Optional[datetime] = None
) -> Dict[str, int]:
    """
    Run plan maintenance for all active companies (or a specific one).

    Opens and closes its own session unless one is passed in.
    Returns counts of entries created, entries swept and errors.
    """
    now = now or utcnow()
    logger.info(f"Running plan maintenance job at {now.isoformat()}")

    owns_session = db is None
    if owns_session:
        db = next(get_db())

    summary = {"companies": 0, "created": 0, "swept": 0, "errors": 0}

    try:
        query = db.query(CompanyDB)
        if company_id:
            query = query.filter(CompanyDB.id == company_id)
        else:
            query = query.filter(CompanyDB.is_active.is_(True))
        companies = query.all()

        if company_id and not companies:
            logger.error(f"Company {company_id} not found")
            return summary

        summary["companies"] = len(companies)

        for company in companies:
            logger.info(f"--- Processing company: {company.name} (ID: {company.id}) ---")

            plans = db.query(RecurringPlanDB).filter(
                RecurringPlanDB.company_id == company.id,
                RecurringPlanDB.is_active.is_(True)
            ).all()

            for plan in plans:
                try:
                    created = roll_plan_horizon(db, plan, horizon_months=horizon_months, now=now)
                    summary["created"] += len(created)
                except SQLAlchemyError as e:
                    db.rollback()
                    logger.error(f"Plan {plan.id} horizon roll failed: {e}")
                    summary["errors"] += 1

            if skip_sweep:
                continue

            try:
                summary["swept"] += sweep_overdue_entries(db, company.id, now=now)
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Overdue sweep for company {company.id} failed: {e}")
                summary["errors"] += 1

        logger.info(
            f"Job complete: {summary['companies']} companies, {summary['created']} entries created, "
            f"{summary['swept']} entries moved by sweep, {summary['errors']} errors"
        )
        return summary

    finally:
        if owns_session:
            db.close()


def main():
    parser = ArgumentParser(description="Roll recurring plan horizons and sweep overdue planned entries")

    parser.add_argument(
        '--company-id',
        type=int,
        help='Process only specific company ID'
    )

    parser.add_argument(
        '--horizon',
        type=int,
        help='Months ahead to materialize (default: PLANNED_MONTHS_AHEAD)'
    )

    parser.add_argument(
        '--skip-sweep',
        action='store_true',
        help='Only roll plan horizons'
    )

    args = parser.parse_args()

    if args.horizon is not None and args.horizon < 1:
        print(f"Invalid horizon: {args.horizon}. Use a positive number of months")
        sys.exit(1)

    setup_logging()
    run_plan_maintenance(
        company_id=args.company_id,
        horizon_months=args.horizon,
        skip_sweep=args.skip_sweep
    )


if __name__ == "__main__":
    main()
