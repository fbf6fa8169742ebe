# cohortroles/schemas/sync.py

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel

from cohortroles.services.reconciliation_service import ReconcileReport, RoleChange


class RoleChangeOut(BaseModel):
    user_id_assigned_to: UUID
    user_id_assigned_over: UUID
    role_id: UUID

    @classmethod
    def from_change(cls, change: RoleChange) -> RoleChangeOut:
        return cls(
            user_id_assigned_to=change.user_id_assigned_to,
            user_id_assigned_over=change.user_id_assigned_over,
            role_id=change.role_id,
        )


class SyncReportOut(BaseModel):
    added: list[RoleChangeOut]
    removed: list[RoleChangeOut]

    @classmethod
    def from_report(cls, report: ReconcileReport) -> SyncReportOut:
        return cls(
            added=[RoleChangeOut.from_change(c) for c in report.added],
            removed=[RoleChangeOut.from_change(c) for c in report.removed],
        )
