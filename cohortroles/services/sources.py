# cohortroles/services/sources.py
"""
Data the reconciliation engine works on, and the collaborators it reads from
and writes to.

The engine never talks to the database directly: it gets these collaborators
in its constructor. SQL-backed versions live in sql_sources.py.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Protocol, TypeAlias

UserId: TypeAlias = Hashable
RoleId: TypeAlias = Hashable
CohortId: TypeAlias = Hashable


class DataAccessFailure(RuntimeError):
    """Lookup or mutation against membership/role/grant storage failed."""
    pass


@dataclass(frozen=True)
class MappingRule:
    id: Hashable
    marker_role_id: RoleId
    target_role_id: RoleId
    cohort_id: CohortId


@dataclass(frozen=True)
class ManagedGrant:
    """role_id granted to grantee_user_id at the personal scope of scope_user_id."""
    grantee_user_id: UserId
    role_id: RoleId
    scope_user_id: UserId


class MappingRuleSource(Protocol):
    def all_rules(self) -> list[MappingRule]: ...


class MembershipSource(Protocol):
    def members_of(self, cohort_id: CohortId) -> set[UserId]: ...


class RoleHolderSource(Protocol):
    def holders_of(self, role_id: RoleId, *, system_only: bool) -> set[UserId]: ...


class ManagedGrantStore(Protocol):
    """Only grants tagged as owned by the sync are visible through this store."""

    def find(self, role_id: RoleId) -> set[ManagedGrant]: ...

    def managed_role_ids(self) -> set[RoleId]: ...

    def grant(self, grant: ManagedGrant) -> None: ...

    def revoke(self, grant: ManagedGrant) -> None: ...
