"""Discussion comment schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field
from sqlmodel import SQLModel

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class CommentCreate(SQLModel):
    content: str = Field(examples=["Has the applicant confirmed a gym near their home?"])
    is_private: bool = Field(default=True, description="Private comments are reviewer-only.")
    is_information_request: bool = False
    parent_comment_id: int | None = None


class CommentUpdate(SQLModel):
    content: str


class CommentRead(SQLModel):
    id: int
    application_id: int
    author_id: UUID
    content: str
    is_private: bool
    is_information_request: bool
    has_response: bool
    parent_comment_id: int | None = None
    is_edited: bool
    is_deleted: bool
    created_at: datetime
    updated_at: datetime | None = None


class CommentThreadRead(SQLModel):
    """A comment with its replies nested beneath it."""

    comment: CommentRead
    replies: list[CommentThreadRead] = Field(default_factory=list)


CommentThreadRead.model_rebuild()
