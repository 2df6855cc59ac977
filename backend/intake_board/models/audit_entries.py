"""Append-only audit log model for application workflow actions."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field

from intake_board.core.time import utcnow
from intake_board.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class AuditEntry(QueryModel, table=True):
    """Append-only audit log entry for a workflow action on an application."""

    __tablename__ = "application_events"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    application_id: int = Field(foreign_key="applications.id", index=True)
    actor_id: UUID | None = Field(default=None, index=True)
    action: str = Field(index=True)
    from_status: str | None = None
    to_status: str | None = None
    payload: dict[str, object] | None = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow)
