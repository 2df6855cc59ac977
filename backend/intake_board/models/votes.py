"""Reviewer ballot model; one row per (application, voter)."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from intake_board.core.time import utcnow
from intake_board.models.base import QueryModel, enum_column

RUNTIME_ANNOTATION_TYPES = (datetime,)


class VoteDecision(str, Enum):
    """Ballot choice a reviewer can cast."""

    APPROVE = "approve"
    REJECT = "reject"
    NEEDS_MORE_INFO = "needs_more_info"
    ABSTAIN = "abstain"


class Vote(QueryModel, table=True):
    """A reviewer's ballot; mutable until locked by a terminal decision."""

    __tablename__ = "application_votes"  # pyright: ignore[reportAssignmentType]
    __table_args__ = (
        UniqueConstraint(
            "application_id",
            "voter_id",
            name="uq_application_votes_application_voter",
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    application_id: int = Field(foreign_key="applications.id", index=True)
    voter_id: UUID = Field(foreign_key="users.id", index=True)
    decision: VoteDecision = Field(sa_column=enum_column(VoteDecision))
    reasoning: str = Field(default="")
    confidence_level: int = Field(default=3)
    is_locked: bool = Field(default=False)
    voted_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime | None = None
