"""Reusable FastAPI dependencies for caller identity and role checks.

Authentication is handled upstream; the gateway forwards the caller's user id
in ``X-Actor-Id``. These dependencies resolve it to an active ``users`` row and
enforce the coarse role needed by each route. Ownership checks that depend on
the application (applicant-only operations) live in the workflow engine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from intake_board.db.session import get_session
from intake_board.models.users import User, UserRole
from intake_board.services.roster import ReviewerRoster, default_roster

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

ACTOR_HEADER = "X-Actor-Id"
REVIEW_ROLES = frozenset({UserRole.BOARD_MEMBER, UserRole.ADMIN})

SESSION_DEP = Depends(get_session)


async def get_actor(
    x_actor_id: str | None = Header(default=None, alias=ACTOR_HEADER),
    session: AsyncSession = SESSION_DEP,
) -> User:
    """Resolve the calling user or raise 401."""
    if not x_actor_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    try:
        actor_id = UUID(x_actor_id.strip())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED) from exc
    user = await User.objects.by_id(actor_id).first(session)
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return user


ACTOR_DEP = Depends(get_actor)


def require_reviewer(actor: User = ACTOR_DEP) -> User:
    """Board members and administrators."""
    if actor.role not in REVIEW_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
    return actor


def require_admin(actor: User = ACTOR_DEP) -> User:
    if actor.role != UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
    return actor


def is_reviewer(actor: User) -> bool:
    return actor.role in REVIEW_ROLES


def get_roster() -> ReviewerRoster:
    """Reviewer roster used by workflow routes; overridden in tests."""
    return default_roster


REVIEWER_DEP = Depends(require_reviewer)
ADMIN_DEP = Depends(require_admin)
ROSTER_DEP = Depends(get_roster)
