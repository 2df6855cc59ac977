"""Reviewer roster provider backed by the user directory."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from sqlmodel import col

from intake_board.models.users import User, UserRole

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession


@dataclass(frozen=True)
class Reviewer:
    """Roster entry for one active board member."""

    id: UUID
    name: str


class ReviewerRoster(Protocol):
    """Source of the currently active reviewers."""

    async def active_reviewers(self, session: AsyncSession) -> list[Reviewer]: ...


class DirectoryReviewerRoster:
    """Active board members from the ``users`` table."""

    async def active_reviewers(self, session: AsyncSession) -> list[Reviewer]:
        users = await (
            User.objects.filter_by(role=UserRole.BOARD_MEMBER, is_active=True)
            .order_by(col(User.name).asc())
            .all(session)
        )
        return [Reviewer(id=user.id, name=user.name or user.email or str(user.id)) for user in users]


default_roster = DirectoryReviewerRoster()
