# cohortroles/services/sql_sources.py
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

# roles must be in metadata for the role_assignments FK at flush time
import cohortroles.models.role  # noqa: F401
from cohortroles.models.cohort import CohortMember
from cohortroles.models.cohort_role_mapping import CohortRoleMapping
from cohortroles.models.role_assignment import RoleAssignment, ScopeLevel
from cohortroles.services.sources import DataAccessFailure, ManagedGrant, MappingRule


@contextmanager
def _data_access(what: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        raise DataAccessFailure(f"{what} failed: {e}") from e


class SqlMappingRuleSource:
    def __init__(self, db: Session):
        self.db = db

    def all_rules(self) -> list[MappingRule]:
        with _data_access("load cohort role mappings"):
            rows = self.db.execute(
                select(CohortRoleMapping).order_by(
                    CohortRoleMapping.marker_role_id,
                    CohortRoleMapping.target_role_id,
                    CohortRoleMapping.cohort_id,
                )
            ).scalars().all()

        return [
            MappingRule(
                id=r.id,
                marker_role_id=r.marker_role_id,
                target_role_id=r.target_role_id,
                cohort_id=r.cohort_id,
            )
            for r in rows
        ]


class SqlMembershipSource:
    def __init__(self, db: Session):
        self.db = db

    def members_of(self, cohort_id: UUID) -> set[UUID]:
        with _data_access(f"load members of cohort {cohort_id}"):
            return set(
                self.db.execute(
                    select(CohortMember.user_id).where(CohortMember.cohort_id == cohort_id)
                ).scalars().all()
            )


class SqlRoleHolderSource:
    def __init__(self, db: Session, *, grant_component: str):
        self.db = db
        self.grant_component = grant_component

    def holders_of(self, role_id: UUID, *, system_only: bool) -> set[UUID]:
        stmt = select(RoleAssignment.user_id).where(RoleAssignment.role_id == role_id)
        if system_only:
            stmt = stmt.where(RoleAssignment.scope_level == ScopeLevel.system.value)
        else:
            # our own grants must not make anyone a mentor
            stmt = stmt.where(RoleAssignment.component != self.grant_component)

        with _data_access(f"load holders of role {role_id}"):
            return set(self.db.execute(stmt.distinct()).scalars().all())


class SqlManagedGrantStore:
    """
    role_assignments rows at user scope tagged with grant_component.

    Writes are flushed, not committed: the caller owns the transaction.
    """

    def __init__(self, db: Session, *, grant_component: str):
        self.db = db
        self.grant_component = grant_component

    def _managed(self):
        return (
            RoleAssignment.component == self.grant_component,
            RoleAssignment.scope_level == ScopeLevel.user.value,
        )

    def _exact(self, grant: ManagedGrant):
        return (
            *self._managed(),
            RoleAssignment.user_id == grant.grantee_user_id,
            RoleAssignment.role_id == grant.role_id,
            RoleAssignment.scope_id == grant.scope_user_id,
        )

    def find(self, role_id: UUID) -> set[ManagedGrant]:
        with _data_access(f"load managed grants of role {role_id}"):
            rows = self.db.execute(
                select(RoleAssignment.user_id, RoleAssignment.scope_id).where(
                    *self._managed(),
                    RoleAssignment.role_id == role_id,
                )
            ).all()

        return {
            ManagedGrant(grantee_user_id=user_id, role_id=role_id, scope_user_id=scope_id)
            for user_id, scope_id in rows
        }

    def managed_role_ids(self) -> set[UUID]:
        with _data_access("load managed role ids"):
            return set(
                self.db.execute(
                    select(RoleAssignment.role_id).where(*self._managed()).distinct()
                ).scalars().all()
            )

    def grant(self, grant: ManagedGrant) -> None:
        with _data_access("grant role"):
            exists = self.db.execute(
                select(RoleAssignment.id).where(*self._exact(grant))
            ).first()
            if exists is not None:
                return

            self.db.add(
                RoleAssignment(
                    user_id=grant.grantee_user_id,
                    role_id=grant.role_id,
                    scope_level=ScopeLevel.user.value,
                    scope_id=grant.scope_user_id,
                    component=self.grant_component,
                )
            )
            self.db.flush()

    def revoke(self, grant: ManagedGrant) -> None:
        with _data_access("revoke role"):
            self.db.execute(
                delete(RoleAssignment)
                .where(*self._exact(grant))
                .execution_options(synchronize_session=False)
            )
