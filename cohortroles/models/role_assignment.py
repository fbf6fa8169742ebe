# cohortroles/models/role_assignment.py
from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from cohortroles.models.base import Base


class ScopeLevel(str, enum.Enum):
    """Where a role assignment applies."""
    system = "system"
    # personal scope of a single user: scope_id = that user's id
    user = "user"
    # anything else the platform has (courses, categories, ...)
    other = "other"


class RoleAssignment(Base):
    """
    Role assignment of role_id to user_id at (scope_level, scope_id).

    component = "" for manual assignments. Assignments created by the cohort
    sync carry settings.grant_component and are the only ones the sync touches.
    """
    __tablename__ = "role_assignments"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "role_id", "scope_level", "scope_id", "component",
            name="uq_role_assignments_user_role_scope_component",
        ),
        Index("ix_role_assignments_role_component", "role_id", "component"),
        CheckConstraint(
            "scope_level IN ('system', 'user', 'other')",
            name="ck_role_assignments_scope_level",
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    user_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    role_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
    )

    # храним строкой, значения из ScopeLevel
    scope_level: Mapped[str] = mapped_column(String(20), nullable=False, default=ScopeLevel.system.value)
    # NULL for system scope
    scope_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)

    component: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
