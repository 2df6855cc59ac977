"""User directory schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field
from sqlmodel import SQLModel

from intake_board.models.users import UserRole

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class UserBase(SQLModel):
    """Directory fields shared by user payloads."""

    name: str = Field(
        min_length=1,
        description="Display name; shown in pending-voter lists.",
        examples=["Alex Chen"],
    )
    email: str | None = Field(
        default=None,
        description="Address notification emails are sent to.",
        examples=["alex@example.com"],
    )
    role: UserRole = Field(
        default=UserRole.APPLICANT,
        description="Relationship to the intake workflow.",
        examples=["board_member"],
    )
    is_active: bool = Field(
        default=True,
        description="Inactive board members drop out of the reviewer roster.",
    )


class UserCreate(UserBase):
    """Payload used to add a user to the directory."""


class UserRead(UserBase):
    id: UUID
    created_at: datetime
