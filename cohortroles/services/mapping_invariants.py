# cohortroles/services/mapping_invariants.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Collection

from cohortroles.models.role import Role

REQUIRED_FIELDS = ("marker_role_id", "target_role_id", "cohort_id")


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class MappingValidationError(ValueError):
    def __init__(self, errors: list[FieldError]):
        self.errors = errors
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in errors))


def validate_mapping_fields(data: dict[str, Any]) -> list[FieldError]:
    """Structural check: every rule field is present."""
    errors: list[FieldError] = []
    for name in REQUIRED_FIELDS:
        value = data.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.append(FieldError(name, "is required"))
    return errors


def validate_mapping_references(
    *,
    marker_role: Role | None,
    target_role: Role | None,
    cohort_exists: bool,
    excluded_marker_shortnames: Collection[str],
) -> list[FieldError]:
    """Semantic check against what the referenced rows actually are."""
    errors: list[FieldError] = []

    if marker_role is None:
        errors.append(FieldError("marker_role_id", "role not found"))
    elif marker_role.shortname in excluded_marker_shortnames:
        # every user holds these: the rule would touch the whole cohort squared
        errors.append(FieldError("marker_role_id", f"role '{marker_role.shortname}' cannot be a marker role"))

    if target_role is None:
        errors.append(FieldError("target_role_id", "role not found"))
    elif not target_role.assignable_at_user_scope:
        errors.append(FieldError("target_role_id", f"role '{target_role.shortname}' is not assignable at user scope"))

    if not cohort_exists:
        errors.append(FieldError("cohort_id", "cohort not found"))

    return errors
