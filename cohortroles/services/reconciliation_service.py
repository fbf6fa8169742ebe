# cohortroles/services/reconciliation_service.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Literal

from cohortroles.services.sources import (
    CohortId,
    ManagedGrant,
    ManagedGrantStore,
    MappingRule,
    MappingRuleSource,
    MembershipSource,
    RoleHolderSource,
    RoleId,
    UserId,
)

logger = logging.getLogger(__name__)

# One pass per process at a time. The scheduler is expected to guarantee this
# across processes.
_PASS_LOCK = threading.Lock()


class ReconcileAlreadyRunning(Exception):
    pass


@dataclass(frozen=True)
class RoleChange:
    user_id_assigned_to: UserId
    user_id_assigned_over: UserId
    role_id: RoleId

    @classmethod
    def from_grant(cls, grant: ManagedGrant) -> RoleChange:
        return cls(
            user_id_assigned_to=grant.grantee_user_id,
            user_id_assigned_over=grant.scope_user_id,
            role_id=grant.role_id,
        )


@dataclass
class ReconcileReport:
    added: list[RoleChange] = field(default_factory=list)
    removed: list[RoleChange] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed


def _sort_key(value) -> str:
    # ids may be UUIDs, ints or strings; str() gives a stable total order
    return str(value)


def group_rules_by_target_role(
    rules: Iterable[MappingRule],
) -> dict[RoleId, list[tuple[RoleId, CohortId]]]:
    """
    Index rules by target role: {target_role_id: [(marker_role_id, cohort_id), ...]}.

    All rules granting the same target role have to be reconciled together:
    a grant is stale only when none of them justifies it.
    """
    grouped: dict[RoleId, list[tuple[RoleId, CohortId]]] = {}
    for rule in rules:
        pairs = grouped.setdefault(rule.target_role_id, [])
        pair = (rule.marker_role_id, rule.cohort_id)
        if pair not in pairs:
            pairs.append(pair)
    return grouped


@dataclass(frozen=True)
class _Justification:
    """Markers and targets produced by one (marker_role_id, cohort_id) pair."""
    markers: frozenset
    targets: frozenset

    def covers(self, grantee: UserId, scope_user: UserId) -> bool:
        return grantee in self.markers and scope_user in self.targets


class _PassLookups:
    """Membership / role-holder lookups cached for the duration of one pass."""

    def __init__(self, membership: MembershipSource, role_holders: RoleHolderSource, *, system_only: bool):
        self._membership = membership
        self._role_holders = role_holders
        self._system_only = system_only
        self._members: dict[CohortId, frozenset] = {}
        self._holders: dict[RoleId, frozenset] = {}

    def members_of(self, cohort_id: CohortId) -> frozenset:
        if cohort_id not in self._members:
            self._members[cohort_id] = frozenset(self._membership.members_of(cohort_id))
        return self._members[cohort_id]

    def holders_of(self, role_id: RoleId) -> frozenset:
        if role_id not in self._holders:
            self._holders[role_id] = frozenset(
                self._role_holders.holders_of(role_id, system_only=self._system_only)
            )
        return self._holders[role_id]


class CohortRoleReconciler:
    """
    Converges managed grants to what the cohort role mappings imply.

    For every rule (marker M, target R, cohort C): each member of C holding M
    gets R at the personal scope of every member of C. Grants tagged as ours
    that no rule justifies any more are revoked. Untagged grants are invisible.
    """

    def __init__(
        self,
        *,
        rules: MappingRuleSource,
        membership: MembershipSource,
        role_holders: RoleHolderSource,
        grants: ManagedGrantStore,
        exclude_self_grants: bool = True,
        marker_scope: Literal["system", "any"] = "system",
        lock: threading.Lock | None = None,
    ):
        self._rules = rules
        self._membership = membership
        self._role_holders = role_holders
        self._grants = grants
        self._exclude_self_grants = exclude_self_grants
        self._marker_scope = marker_scope
        self._lock = lock if lock is not None else _PASS_LOCK

    def reconcile_all(self) -> ReconcileReport:
        if not self._lock.acquire(blocking=False):
            raise ReconcileAlreadyRunning("Cohort role sync pass is already running")
        try:
            return self._run_pass()
        finally:
            self._lock.release()

    def _run_pass(self) -> ReconcileReport:
        by_role = group_rules_by_target_role(self._rules.all_rules())

        # Роли, по которым остались наши гранты, но правил больше нет:
        # сверяем с пустым списком, чтобы гранты сняли.
        for role_id in self._grants.managed_role_ids():
            by_role.setdefault(role_id, [])

        logger.info("cohort role sync: %d target role(s) to reconcile", len(by_role))

        lookups = _PassLookups(
            self._membership,
            self._role_holders,
            system_only=self._marker_scope == "system",
        )
        report = ReconcileReport()

        for target_role_id in sorted(by_role, key=_sort_key):
            added, removed = self._reconcile_role(target_role_id, by_role[target_role_id], lookups)
            report.added.extend(added)
            report.removed.extend(removed)

        logger.info(
            "cohort role sync done: added=%d removed=%d",
            len(report.added),
            len(report.removed),
        )
        return report

    def _desired_pairs(self, markers: frozenset, targets: frozenset) -> Iterator[tuple[UserId, UserId]]:
        ordered_targets = sorted(targets, key=_sort_key)
        for marker in sorted(markers, key=_sort_key):
            for target in ordered_targets:
                if self._exclude_self_grants and marker == target:
                    continue
                yield marker, target

    def _is_justified(self, grant: ManagedGrant, justifications: list[_Justification]) -> bool:
        if self._exclude_self_grants and grant.grantee_user_id == grant.scope_user_id:
            return False
        return any(j.covers(grant.grantee_user_id, grant.scope_user_id) for j in justifications)

    def _reconcile_role(
        self,
        target_role_id: RoleId,
        pairs: list[tuple[RoleId, CohortId]],
        lookups: _PassLookups,
    ) -> tuple[list[RoleChange], list[RoleChange]]:
        existing = self._grants.find(target_role_id)
        present = {(g.grantee_user_id, g.scope_user_id) for g in existing}

        justifications: list[_Justification] = []
        added: list[RoleChange] = []

        # 1) to add: cross product per pair, one pair at a time
        for marker_role_id, cohort_id in pairs:
            targets = lookups.members_of(cohort_id)
            markers = lookups.holders_of(marker_role_id) & targets
            justifications.append(_Justification(markers=markers, targets=targets))

            for marker, target in self._desired_pairs(markers, targets):
                if (marker, target) in present:
                    continue
                grant = ManagedGrant(grantee_user_id=marker, role_id=target_role_id, scope_user_id=target)
                self._grants.grant(grant)
                present.add((marker, target))
                logger.info("add role=%s mentor=%s over=%s", target_role_id, marker, target)
                added.append(RoleChange.from_grant(grant))

        # 2) to remove: our grants no pair justifies any more
        removed: list[RoleChange] = []
        ordered = sorted(existing, key=lambda g: (_sort_key(g.grantee_user_id), _sort_key(g.scope_user_id)))
        for grant in ordered:
            if self._is_justified(grant, justifications):
                continue
            self._grants.revoke(grant)
            logger.info(
                "remove role=%s mentor=%s over=%s",
                grant.role_id,
                grant.grantee_user_id,
                grant.scope_user_id,
            )
            removed.append(RoleChange.from_grant(grant))

        return added, removed
