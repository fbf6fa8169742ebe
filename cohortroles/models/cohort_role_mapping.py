# cohortroles/models/cohort_role_mapping.py
from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cohortroles.models.base import Base


class CohortRoleMapping(Base):
    __tablename__ = "cohort_role_mappings"
    __table_args__ = (
        # одно и то же правило дважды не создаём
        UniqueConstraint(
            "marker_role_id", "target_role_id", "cohort_id",
            name="uq_cohort_role_mappings_marker_target_cohort",
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    # system role that makes a cohort member a mentor
    marker_role_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
    )
    # role the mentor gets over every other cohort member
    target_role_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
    )
    cohort_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("cohorts.id", ondelete="CASCADE"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    marker_role = relationship("Role", foreign_keys="CohortRoleMapping.marker_role_id")
    target_role = relationship("Role", foreign_keys="CohortRoleMapping.target_role_id")
    cohort = relationship("Cohort")

    # flat names for the listing (CohortRoleMappingRead)
    @property
    def marker_role_name(self) -> str:
        return self.marker_role.name

    @property
    def target_role_name(self) -> str:
        return self.target_role.name

    @property
    def cohort_name(self) -> str:
        return self.cohort.name
