# cohortroles/services/cohort_role_sync_service.py
from __future__ import annotations

import threading

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cohortroles.core.config import Settings, settings as default_settings
from cohortroles.services.reconciliation_service import CohortRoleReconciler, ReconcileReport
from cohortroles.services.sources import DataAccessFailure
from cohortroles.services.sql_sources import (
    SqlManagedGrantStore,
    SqlMappingRuleSource,
    SqlMembershipSource,
    SqlRoleHolderSource,
)


def build_reconciler(
    db: Session,
    *,
    settings: Settings = default_settings,
    lock: threading.Lock | None = None,
) -> CohortRoleReconciler:
    return CohortRoleReconciler(
        rules=SqlMappingRuleSource(db),
        membership=SqlMembershipSource(db),
        role_holders=SqlRoleHolderSource(db, grant_component=settings.grant_component),
        grants=SqlManagedGrantStore(db, grant_component=settings.grant_component),
        exclude_self_grants=settings.exclude_self_grants,
        marker_scope=settings.marker_role_scope,
        lock=lock,
    )


class CohortRoleSyncService:
    """One reconciliation pass against the database, in one transaction."""

    def __init__(self, db: Session, *, settings: Settings = default_settings, lock: threading.Lock | None = None):
        self.db = db
        self.reconciler = build_reconciler(db, settings=settings, lock=lock)

    def sync_all(self, *, dry_run: bool = False) -> ReconcileReport:
        try:
            report = self.reconciler.reconcile_all()
        except Exception:
            self.db.rollback()
            raise

        if dry_run:
            self.db.rollback()
            return report

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DataAccessFailure(f"commit of cohort role sync failed: {e}") from e
        return report
