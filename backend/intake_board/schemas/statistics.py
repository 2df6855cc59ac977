"""Reporting response schemas."""

from __future__ import annotations

from uuid import UUID

from pydantic import Field
from sqlmodel import SQLModel

RUNTIME_ANNOTATION_TYPES = (UUID,)


class ApplicationStatisticsRead(SQLModel):
    total: int
    pending: int = Field(description="Submitted and waiting for review to start.")
    under_review: int = Field(description="Under review or in discussion.")
    needs_information: int
    approved: int = Field(description="Approved, including programs already active.")
    rejected: int
    active: int
    completed: int
    withdrawn: int
    approval_rate: float = Field(description="Percent of decided applications approved.")
    average_review_days: float


class ReviewerStatisticsRead(SQLModel):
    reviewer_id: UUID
    votes_cast: int
    approvals: int
    rejections: int
    pending_votes: int
    participation_rate: float
    average_confidence: float
