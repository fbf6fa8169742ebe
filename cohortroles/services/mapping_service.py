# cohortroles/services/mapping_service.py
from __future__ import annotations

from typing import Collection
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from cohortroles.core.config import settings
from cohortroles.models.cohort import Cohort
from cohortroles.models.cohort_role_mapping import CohortRoleMapping
from cohortroles.models.role import Role
from cohortroles.services.mapping_invariants import (
    FieldError,
    MappingValidationError,
    validate_mapping_fields,
    validate_mapping_references,
)

SORTABLE_COLUMNS = {
    "id": CohortRoleMapping.id,
    "marker_role_id": CohortRoleMapping.marker_role_id,
    "target_role_id": CohortRoleMapping.target_role_id,
    "cohort_id": CohortRoleMapping.cohort_id,
    "created_at": CohortRoleMapping.created_at,
}


class CohortRoleMappingService:
    def __init__(self, db: Session, *, excluded_marker_shortnames: Collection[str] | None = None):
        self.db = db
        if excluded_marker_shortnames is None:
            excluded_marker_shortnames = settings.excluded_marker_role_shortnames
        self.excluded_marker_shortnames = set(excluded_marker_shortnames)

    # ------------------------------------------------------------------
    # validation
    # ------------------------------------------------------------------

    def _validate(self, *, marker_role_id, target_role_id, cohort_id) -> None:
        errors = validate_mapping_fields(
            {
                "marker_role_id": marker_role_id,
                "target_role_id": target_role_id,
                "cohort_id": cohort_id,
            }
        )
        if errors:
            raise MappingValidationError(errors)

        errors = validate_mapping_references(
            marker_role=self.db.get(Role, marker_role_id),
            target_role=self.db.get(Role, target_role_id),
            cohort_exists=self.db.get(Cohort, cohort_id) is not None,
            excluded_marker_shortnames=self.excluded_marker_shortnames,
        )
        if errors:
            raise MappingValidationError(errors)

    def _find_existing(self, *, marker_role_id: UUID, target_role_id: UUID, cohort_id: UUID) -> CohortRoleMapping | None:
        return self.db.execute(
            select(CohortRoleMapping).where(
                CohortRoleMapping.marker_role_id == marker_role_id,
                CohortRoleMapping.target_role_id == target_role_id,
                CohortRoleMapping.cohort_id == cohort_id,
            )
        ).scalar_one_or_none()

    # ------------------------------------------------------------------
    # write
    # ------------------------------------------------------------------

    def create(self, *, marker_role_id: UUID, target_role_id: UUID, cohort_id: UUID) -> CohortRoleMapping | None:
        """
        Create a mapping rule.

        Returns None when an identical rule already exists (not an error:
        the caller decides how to tell the user). Raises MappingValidationError
        before touching anything if the rule is invalid.
        """
        self._validate(marker_role_id=marker_role_id, target_role_id=target_role_id, cohort_id=cohort_id)
        return self._insert(marker_role_id=marker_role_id, target_role_id=target_role_id, cohort_id=cohort_id)

    def _insert(self, *, marker_role_id: UUID, target_role_id: UUID, cohort_id: UUID) -> CohortRoleMapping | None:
        if self._find_existing(marker_role_id=marker_role_id, target_role_id=target_role_id, cohort_id=cohort_id):
            return None

        mapping = CohortRoleMapping(
            marker_role_id=marker_role_id,
            target_role_id=target_role_id,
            cohort_id=cohort_id,
        )
        self.db.add(mapping)
        try:
            self.db.commit()
        except IntegrityError:
            # concurrent submit of the same rule: uq constraint won
            self.db.rollback()
            return None

        self.db.refresh(mapping)
        return mapping

    def create_batch(
        self,
        *,
        marker_role_id: UUID,
        target_role_id: UUID,
        cohort_ids: list[UUID],
    ) -> tuple[list[CohortRoleMapping], list[UUID]]:
        """One rule per cohort. Everything is validated before anything is written."""
        if not cohort_ids:
            raise MappingValidationError([FieldError("cohort_ids", "at least one cohort is required")])

        for cohort_id in cohort_ids:
            self._validate(marker_role_id=marker_role_id, target_role_id=target_role_id, cohort_id=cohort_id)

        created: list[CohortRoleMapping] = []
        skipped: list[UUID] = []

        for cohort_id in dict.fromkeys(cohort_ids):
            if self._find_existing(marker_role_id=marker_role_id, target_role_id=target_role_id, cohort_id=cohort_id):
                skipped.append(cohort_id)
                continue

            mapping = CohortRoleMapping(
                marker_role_id=marker_role_id,
                target_role_id=target_role_id,
                cohort_id=cohort_id,
            )
            self.db.add(mapping)
            created.append(mapping)

        try:
            self.db.commit()
        except IntegrityError:
            # someone else saved one of these rules meanwhile: redo cohort by cohort
            self.db.rollback()
            return self._insert_one_by_one(
                marker_role_id=marker_role_id,
                target_role_id=target_role_id,
                cohort_ids=cohort_ids,
            )

        for mapping in created:
            self.db.refresh(mapping)
        return created, skipped

    def _insert_one_by_one(
        self,
        *,
        marker_role_id: UUID,
        target_role_id: UUID,
        cohort_ids: list[UUID],
    ) -> tuple[list[CohortRoleMapping], list[UUID]]:
        created: list[CohortRoleMapping] = []
        skipped: list[UUID] = []
        for cohort_id in dict.fromkeys(cohort_ids):
            mapping = self._insert(marker_role_id=marker_role_id, target_role_id=target_role_id, cohort_id=cohort_id)
            if mapping is None:
                skipped.append(cohort_id)
            else:
                created.append(mapping)
        return created, skipped

    def delete(self, mapping_id: UUID) -> bool:
        """
        Delete a rule. Grants it produced stay until the next sync pass
        revokes the ones nothing else justifies.
        """
        mapping = self.db.get(CohortRoleMapping, mapping_id)
        if mapping is None:
            return False

        self.db.delete(mapping)
        self.db.commit()
        return True

    # ------------------------------------------------------------------
    # read
    # ------------------------------------------------------------------

    def list_mappings(
        self,
        *,
        sort: str = "",
        order: str = "ASC",
        skip: int = 0,
        limit: int = 0,
    ) -> list[CohortRoleMapping]:
        """Paginated list. limit=0 means no limit."""
        stmt = select(CohortRoleMapping).options(
            joinedload(CohortRoleMapping.marker_role),
            joinedload(CohortRoleMapping.target_role),
            joinedload(CohortRoleMapping.cohort),
        )

        if sort:
            column = SORTABLE_COLUMNS.get(sort)
            if column is None:
                raise ValueError(f"Unknown sort column: {sort}")
            direction = order.upper()
            if direction not in ("ASC", "DESC"):
                raise ValueError(f"Invalid order: {order} (expected ASC or DESC)")
            stmt = stmt.order_by(column.desc() if direction == "DESC" else column.asc())
        else:
            stmt = stmt.order_by(CohortRoleMapping.created_at.asc(), CohortRoleMapping.id.asc())

        if skip:
            stmt = stmt.offset(skip)
        if limit:
            stmt = stmt.limit(limit)

        return list(self.db.execute(stmt).scalars().all())

    def count(self) -> int:
        return self.db.execute(select(func.count()).select_from(CohortRoleMapping)).scalar_one()
