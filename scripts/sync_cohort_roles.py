# scripts/sync_cohort_roles.py
"""
Run one cohort role sync pass. Meant to be called by the scheduler (cron, k8s CronJob).

    python -m scripts.sync_cohort_roles
    python -m scripts.sync_cohort_roles --dry-run --verbose

Exit codes: 0 ok, 1 data access failure, 2 another pass is already running.
"""
from __future__ import annotations

import argparse
import logging
import sys

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from cohortroles.core.config import settings
from cohortroles.core.logging_config import setup_logging
from cohortroles.services.cohort_role_sync_service import CohortRoleSyncService
from cohortroles.services.reconciliation_service import ReconcileAlreadyRunning, ReconcileReport
from cohortroles.services.sources import DataAccessFailure

logger = logging.getLogger("cohortroles.sync")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Sync cohort auto roles (add/remove managed role assignments).")
    p.add_argument("--dry-run", action="store_true", help="Compute changes, roll them back.")
    p.add_argument("--verbose", action="store_true", help="DEBUG logging.")
    p.add_argument("--database-url", default=None, help="Override settings.database_url.")
    return p.parse_args(argv)


def print_report(report: ReconcileReport, *, dry_run: bool) -> None:
    prefix = "[dry-run] " if dry_run else ""
    for c in report.added:
        print(f"{prefix}+ role={c.role_id} to={c.user_id_assigned_to} over={c.user_id_assigned_over}")
    for c in report.removed:
        print(f"{prefix}- role={c.role_id} to={c.user_id_assigned_to} over={c.user_id_assigned_over}")
    print(f"{prefix}added={len(report.added)} removed={len(report.removed)}")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging("DEBUG" if args.verbose else settings.log_level)

    engine = create_engine(args.database_url or settings.database_url, future=True)
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)

    try:
        with Session() as db:
            report = CohortRoleSyncService(db).sync_all(dry_run=args.dry_run)
    except ReconcileAlreadyRunning as e:
        logger.error("%s", e)
        return 2
    except DataAccessFailure as e:
        logger.error("cohort role sync failed: %s", e)
        return 1
    finally:
        engine.dispose()

    print_report(report, dry_run=args.dry_run)
    return 0


if __name__ == "__main__":
    sys.exit(main())
