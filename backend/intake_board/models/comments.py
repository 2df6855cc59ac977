"""Discussion comment model with soft delete and parent back-references."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlmodel import Field

from intake_board.core.time import utcnow
from intake_board.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class Comment(QueryModel, table=True):
    """Discussion entry on an application; never hard-deleted."""

    __tablename__ = "application_comments"  # pyright: ignore[reportAssignmentType]

    id: int | None = Field(default=None, primary_key=True)
    application_id: int = Field(foreign_key="applications.id", index=True)
    author_id: UUID = Field(foreign_key="users.id", index=True)
    content: str
    # Private comments are visible to reviewers only.
    is_private: bool = Field(default=True)
    is_information_request: bool = Field(default=False)
    has_response: bool = Field(default=False)
    parent_comment_id: int | None = Field(
        default=None,
        foreign_key="application_comments.id",
        index=True,
    )
    is_edited: bool = Field(default=False)
    is_deleted: bool = Field(default=False, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime | None = None

    @property
    def is_top_level(self) -> bool:
        return self.parent_comment_id is None
