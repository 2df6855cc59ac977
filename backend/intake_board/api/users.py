"""User directory endpoints backing the reviewer roster."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter
from sqlmodel import col

from intake_board.api.deps import ACTOR_DEP, ADMIN_DEP, SESSION_DEP
from intake_board.core.time import utcnow
from intake_board.models.users import User, UserRole
from intake_board.schemas.users import UserCreate, UserRead

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserRead)
async def get_me(actor: User = ACTOR_DEP) -> UserRead:
    return UserRead.model_validate(actor, from_attributes=True)


@router.post("", response_model=UserRead)
async def create_user(
    payload: UserCreate,
    session: AsyncSession = SESSION_DEP,
    _admin: User = ADMIN_DEP,
) -> UserRead:
    """Add an applicant, board member, sponsor, or administrator."""
    user = User(**payload.model_dump(), created_at=utcnow())
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return UserRead.model_validate(user, from_attributes=True)


@router.get("/reviewers", response_model=list[UserRead])
async def list_reviewers(
    session: AsyncSession = SESSION_DEP,
    _actor: User = ACTOR_DEP,
) -> list[UserRead]:
    """Active board members whose votes count toward quorum."""
    reviewers = await (
        User.objects.filter_by(role=UserRole.BOARD_MEMBER, is_active=True)
        .order_by(col(User.name).asc())
        .all(session)
    )
    return [UserRead.model_validate(user, from_attributes=True) for user in reviewers]
