"""Ballot and voting summary schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field
from sqlmodel import SQLModel

from intake_board.models.votes import VoteDecision

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class VoteCreate(SQLModel):
    """Cast or replace the caller's ballot."""

    decision: VoteDecision = Field(examples=["approve"])
    reasoning: str = Field(
        description="Explanation shared with the other reviewers (20-2000 characters).",
        examples=["Strong commitment statement and a realistic monthly budget."],
    )
    confidence_level: int = Field(default=3, description="1 (unsure) to 5 (certain).")


class VoteRead(SQLModel):
    id: int
    application_id: int
    voter_id: UUID
    decision: VoteDecision
    reasoning: str
    confidence_level: int
    is_locked: bool
    voted_at: datetime
    updated_at: datetime | None = None


class VotingSummaryRead(SQLModel):
    """Tally of the ballots against the quorum fixed at submission."""

    application_id: int
    total_votes_cast: int = Field(description="Ballots excluding abstentions.")
    approval_votes: int
    rejection_votes: int
    needs_info_votes: int
    abstain_votes: int
    votes_required: int
    has_sufficient_votes: bool
    is_approved: bool
    has_any_rejection: bool
    pending_voters: list[str] = Field(default_factory=list)
