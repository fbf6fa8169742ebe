# cohortroles/schemas/mapping.py

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CohortRoleMappingCreate(BaseModel):
    marker_role_id: UUID = Field(
        ...,
        description="System role that makes a cohort member a mentor.",
        examples=["11111111-1111-1111-1111-111111111111"],
    )
    target_role_id: UUID = Field(
        ...,
        description="Role the mentor gets over every other member of the cohort (user scope).",
        examples=["22222222-2222-2222-2222-222222222222"],
    )
    cohort_ids: list[UUID] = Field(
        ...,
        min_length=1,
        description="One rule is created per cohort.",
        examples=[["33333333-3333-3333-3333-333333333333"]],
    )

    model_config = ConfigDict(extra="forbid")


class CohortRoleMappingRead(BaseModel):
    id: UUID
    marker_role_id: UUID
    target_role_id: UUID
    cohort_id: UUID
    marker_role_name: str
    target_role_name: str
    cohort_name: str
    created_at: datetime

    model_config = {"from_attributes": True}


class CohortRoleMappingBatchResult(BaseModel):
    saved: int
    created: list[CohortRoleMappingRead]
    # cohorts where an identical rule already existed
    skipped_cohort_ids: list[UUID] = []


class CohortRoleMappingCount(BaseModel):
    count: int
