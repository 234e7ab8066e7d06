"""
Caller identity for the HTTP boundary.

Authentication happens upstream; the gateway forwards the resolved user as
`X-User-Id` / `X-User-Role` headers. Capability checks live here so the
services never read ambient user state.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException

from courtqueue.errors import ForbiddenError
from courtqueue.models.queue_session import QueueSession

ROLE_PLAYER = "player"
ROLE_OWNER = "owner"
ROLE_QUEUE_MASTER = "queue_master"
ROLE_SUPERADMIN = "superadmin"

ROLES = (ROLE_PLAYER, ROLE_OWNER, ROLE_QUEUE_MASTER, ROLE_SUPERADMIN)


@dataclass(frozen=True)
class Caller:
    user_id: int
    role: str = ROLE_PLAYER

    @property
    def is_superadmin(self) -> bool:
        return self.role == ROLE_SUPERADMIN


def get_caller(
    x_user_id: Optional[int] = Header(default=None),
    x_user_role: str = Header(default=ROLE_PLAYER),
) -> Caller:
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing caller identity")
    if x_user_role not in ROLES:
        raise HTTPException(status_code=401, detail=f"Unknown role: {x_user_role}")
    return Caller(user_id=x_user_id, role=x_user_role)


def require_role(caller: Caller, *roles: str) -> None:
    if caller.is_superadmin:
        return
    if caller.role not in roles:
        raise ForbiddenError()


def can_manage_session(caller: Caller, queue_session: QueueSession) -> bool:
    """Session owner, any queue master, or a superadmin."""
    return (
        caller.is_superadmin
        or caller.role == ROLE_QUEUE_MASTER
        or queue_session.owner_id == caller.user_id
    )


def require_session_manager(caller: Caller, queue_session: QueueSession) -> None:
    if not can_manage_session(caller, queue_session):
        raise ForbiddenError()
