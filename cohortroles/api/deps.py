# cohortroles/api/deps.py
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Header, HTTPException


# -----------------------------------------------------------------------------
# Auth headers
# -----------------------------------------------------------------------------


def get_current_user_id(
    x_actor_user_id: str | None = Header(
        default=None,
        alias="X-Actor-User-Id",
        description="UUID of the user performing the action.",
        examples=["33333333-3333-3333-3333-333333333333"],
    ),
) -> UUID:
    if not x_actor_user_id:
        raise HTTPException(status_code=401, detail="Missing X-Actor-User-Id header")
    try:
        return UUID(x_actor_user_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Invalid X-Actor-User-Id format (must be UUID)") from e


def get_actor_role(
    x_role: str | None = Header(
        default=None,
        alias="X-Role",
        description="Actor role. The scheduler calls sync as 'system'.",
        examples=["system", "manager"],
    )
) -> str:
    if not x_role or not x_role.strip():
        raise HTTPException(status_code=401, detail="Missing X-Role header")
    return x_role.strip()


@dataclass(frozen=True)
class ActorContext:
    actor_user_id: UUID
    role: str


def get_actor_context(
    actor_user_id: UUID = Depends(get_current_user_id),
    role: str = Depends(get_actor_role),
) -> ActorContext:
    return ActorContext(actor_user_id=actor_user_id, role=role)
