# cohortroles/core/rbac.py
from __future__ import annotations

from typing import Mapping, Set


class Forbidden(Exception):
    """Raised when actor role is not allowed for an operation."""
    pass


# Roles are stringly-typed and come from the X-Role header.
# "manager" mirrors the classic "can manage roles at system level" capability.
ALLOW: Mapping[str, Set[str]] = {
    # ---- Mapping rules ----
    "cohort_role.manage": {"system", "manager"},

    # ---- Background sync ----
    # scheduler runs as "system"; manager may force a pass from the admin UI
    "cohort_role.sync": {"system", "manager"},
}


def ensure_allowed(permission: str, role: str) -> None:
    allowed = ALLOW.get(permission, set())
    if role not in allowed:
        raise Forbidden(f"Role '{role}' is not allowed for '{permission}'")
