# cohortroles/api/mappings.py

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from cohortroles.api.deps import ActorContext, get_actor_context
from cohortroles.core.db import get_db
from cohortroles.core.rbac import Forbidden, ensure_allowed
from cohortroles.schemas.mapping import (
    CohortRoleMappingBatchResult,
    CohortRoleMappingCount,
    CohortRoleMappingCreate,
    CohortRoleMappingRead,
)
from cohortroles.schemas.sync import SyncReportOut
from cohortroles.services.cohort_role_sync_service import CohortRoleSyncService
from cohortroles.services.mapping_invariants import MappingValidationError
from cohortroles.services.mapping_service import CohortRoleMappingService
from cohortroles.services.reconciliation_service import ReconcileAlreadyRunning
from cohortroles.services.sources import DataAccessFailure

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cohort-role-mappings", tags=["cohort-role-mappings"])


def _require(permission: str, ctx: ActorContext) -> None:
    try:
        ensure_allowed(permission, ctx.role)
    except Forbidden as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


@router.post(
    "",
    response_model=CohortRoleMappingBatchResult,
    status_code=status.HTTP_201_CREATED,
    summary="Assign a role to mentors of one or more cohorts",
    description=(
        "Creates one rule per cohort. Identical existing rules are skipped, not an error.\n\n"
        "Grants are not applied immediately: the background sync picks the rules up."
    ),
)
def create_mappings(
    body: CohortRoleMappingCreate,
    ctx: ActorContext = Depends(get_actor_context),
    db: Session = Depends(get_db),
):
    _require("cohort_role.manage", ctx)

    service = CohortRoleMappingService(db)
    try:
        created, skipped = service.create_batch(
            marker_role_id=body.marker_role_id,
            target_role_id=body.target_role_id,
            cohort_ids=body.cohort_ids,
        )
    except MappingValidationError as e:
        raise HTTPException(status_code=422, detail=[err.as_dict() for err in e.errors])

    logger.info(
        "cohort role mappings saved=%d skipped=%d by=%s",
        len(created),
        len(skipped),
        ctx.actor_user_id,
    )
    return CohortRoleMappingBatchResult(
        saved=len(created),
        created=[CohortRoleMappingRead.model_validate(m) for m in created],
        skipped_cohort_ids=skipped,
    )


@router.get("", response_model=list[CohortRoleMappingRead])
def list_mappings(
    sort: str = Query("", description="Column to sort on (id, marker_role_id, target_role_id, cohort_id, created_at)"),
    order: str = Query("ASC", pattern="^(ASC|DESC|asc|desc)$"),
    skip: int = Query(0, ge=0),
    limit: int = Query(0, ge=0, description="0 = no limit"),
    ctx: ActorContext = Depends(get_actor_context),
    db: Session = Depends(get_db),
):
    _require("cohort_role.manage", ctx)

    service = CohortRoleMappingService(db)
    try:
        return service.list_mappings(sort=sort, order=order, skip=skip, limit=limit)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/count", response_model=CohortRoleMappingCount)
def count_mappings(
    ctx: ActorContext = Depends(get_actor_context),
    db: Session = Depends(get_db),
):
    _require("cohort_role.manage", ctx)
    return CohortRoleMappingCount(count=CohortRoleMappingService(db).count())


@router.delete("/{mapping_id}")
def delete_mapping(
    mapping_id: UUID,
    ctx: ActorContext = Depends(get_actor_context),
    db: Session = Depends(get_db),
):
    """Existing grants from this rule are revoked by the next sync pass."""
    _require("cohort_role.manage", ctx)

    if not CohortRoleMappingService(db).delete(mapping_id):
        raise HTTPException(status_code=404, detail="Cohort role mapping not found")

    logger.info("cohort role mapping %s removed by=%s", mapping_id, ctx.actor_user_id)
    return {"ok": True}


@router.post("/sync", response_model=SyncReportOut)
def sync_all(
    ctx: ActorContext = Depends(get_actor_context),
    db: Session = Depends(get_db),
):
    """Run one reconciliation pass now. Normally the scheduler does this."""
    _require("cohort_role.sync", ctx)

    try:
        report = CohortRoleSyncService(db).sync_all()
    except ReconcileAlreadyRunning as e:
        raise HTTPException(status_code=409, detail=str(e))
    except DataAccessFailure as e:
        logger.error("cohort role sync failed: %s", e)
        raise HTTPException(status_code=503, detail="Cohort role sync failed, retry later")

    return SyncReportOut.from_report(report)
