"""User directory model for applicants, reviewers, sponsors, and admins."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlmodel import Field

from intake_board.core.time import utcnow
from intake_board.models.base import QueryModel, enum_column

RUNTIME_ANNOTATION_TYPES = (datetime,)


class UserRole(str, Enum):
    """Relationship a user has with the intake workflow."""

    APPLICANT = "applicant"
    BOARD_MEMBER = "board_member"
    SPONSOR = "sponsor"
    ADMIN = "admin"


class User(QueryModel, table=True):
    """Directory entry; board members who are active form the reviewer roster."""

    __tablename__ = "users"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(default="")
    email: str | None = Field(default=None, index=True)
    role: UserRole = Field(
        default=UserRole.APPLICANT,
        sa_column=enum_column(UserRole, index=True),
    )
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=utcnow)
