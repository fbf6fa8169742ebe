# tests/factories.py
from __future__ import annotations

import uuid
from typing import Any, Iterable

from cohortroles.models.cohort import Cohort, CohortMember
from cohortroles.models.cohort_role_mapping import CohortRoleMapping
from cohortroles.models.role import Role
from cohortroles.models.role_assignment import RoleAssignment, ScopeLevel


def make_role(
    db,
    *,
    shortname: str | None = None,
    assignable_at_user_scope: bool = False,
    flush: bool = True,
    **overrides: Any,
) -> Role:
    shortname = shortname or f"role-{uuid.uuid4().hex[:8]}"
    role = Role(
        id=overrides.pop("id", uuid.uuid4()),
        shortname=shortname,
        name=overrides.pop("name", shortname.title()),
        assignable_at_user_scope=assignable_at_user_scope,
        **overrides,
    )
    db.add(role)
    if flush:
        db.flush()
    return role


def make_cohort(
    db,
    *,
    members: Iterable[uuid.UUID] = (),
    flush: bool = True,
    **overrides: Any,
) -> Cohort:
    cohort = Cohort(
        id=overrides.pop("id", uuid.uuid4()),
        name=overrides.pop("name", f"cohort-{uuid.uuid4().hex[:6]}"),
        **overrides,
    )
    db.add(cohort)
    if flush:
        db.flush()
    for user_id in members:
        add_member(db, cohort_id=cohort.id, user_id=user_id, flush=flush)
    return cohort


def add_member(db, *, cohort_id: uuid.UUID, user_id: uuid.UUID, flush: bool = True) -> CohortMember:
    m = CohortMember(cohort_id=cohort_id, user_id=user_id)
    db.add(m)
    if flush:
        db.flush()
    return m


def assign_role(
    db,
    *,
    user_id: uuid.UUID,
    role_id: uuid.UUID,
    scope_level: ScopeLevel = ScopeLevel.system,
    scope_id: uuid.UUID | None = None,
    component: str = "",
    flush: bool = True,
) -> RoleAssignment:
    """Manual assignment by default (component='')."""
    ra = RoleAssignment(
        id=uuid.uuid4(),
        user_id=user_id,
        role_id=role_id,
        scope_level=scope_level.value,
        scope_id=scope_id,
        component=component,
    )
    db.add(ra)
    if flush:
        db.flush()
    return ra


def make_mapping(
    db,
    *,
    marker_role_id: uuid.UUID,
    target_role_id: uuid.UUID,
    cohort_id: uuid.UUID,
    flush: bool = True,
) -> CohortRoleMapping:
    mapping = CohortRoleMapping(
        id=uuid.uuid4(),
        marker_role_id=marker_role_id,
        target_role_id=target_role_id,
        cohort_id=cohort_id,
    )
    db.add(mapping)
    if flush:
        db.flush()
    return mapping
