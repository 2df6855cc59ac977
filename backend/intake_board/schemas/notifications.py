"""Notification read schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlmodel import SQLModel

from intake_board.models.notifications import NotificationType

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class NotificationRead(SQLModel):
    id: int
    recipient_id: UUID
    application_id: int | None = None
    notification_type: NotificationType
    title: str
    message: str
    action_url: str | None = None
    is_read: bool
    read_at: datetime | None = None
    email_sent: bool
    created_at: datetime
    expires_at: datetime | None = None
