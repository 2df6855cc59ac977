"""Recipient-facing notification records; also the email outbox."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlmodel import Field

from intake_board.core.time import utcnow
from intake_board.models.base import QueryModel, enum_column

RUNTIME_ANNOTATION_TYPES = (datetime,)


class NotificationType(str, Enum):
    """Event kinds surfaced to applicants, reviewers, and sponsors."""

    # Applicant-facing
    APPLICATION_SUBMITTED = "application_submitted"
    APPLICATION_UNDER_REVIEW = "application_under_review"
    INFORMATION_REQUESTED = "information_requested"
    APPLICATION_APPROVED = "application_approved"
    APPLICATION_REJECTED = "application_rejected"
    SPONSOR_ASSIGNED = "sponsor_assigned"
    PROGRAM_STARTING = "program_starting"
    PROGRAM_COMPLETED = "program_completed"
    # Board-facing
    NEW_APPLICATION_RECEIVED = "new_application_received"
    INFORMATION_PROVIDED = "information_provided"
    VOTE_REQUIRED = "vote_required"
    QUORUM_REACHED = "quorum_reached"
    DISCUSSION_COMMENT_ADDED = "discussion_comment_added"
    APPLICATION_EXPIRING_SOON = "application_expiring_soon"


class Notification(QueryModel, table=True):
    """Durable notification row; email delivery is tracked separately."""

    __tablename__ = "application_notifications"  # pyright: ignore[reportAssignmentType]

    id: int | None = Field(default=None, primary_key=True)
    recipient_id: UUID = Field(foreign_key="users.id", index=True)
    application_id: int | None = Field(default=None, foreign_key="applications.id", index=True)
    notification_type: NotificationType = Field(sa_column=enum_column(NotificationType))
    title: str
    message: str
    action_url: str | None = None
    is_read: bool = Field(default=False, index=True)
    read_at: datetime | None = None
    is_sent: bool = Field(default=False)
    sent_at: datetime | None = None
    email_requested: bool = Field(default=False)
    email_sent: bool = Field(default=False, index=True)
    email_sent_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime | None = None

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and self.expires_at < utcnow()
