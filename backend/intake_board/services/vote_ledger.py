"""Vote ledger: one ballot per (application, voter), frozen once locked.

Writes are staged on the caller's session and committed by the workflow
engine together with any status change they belong to. The unique key on
``(application_id, voter_id)`` is the storage-level guard for concurrent
first votes; the engine retries the operation once on ``IntegrityError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlmodel import col

from intake_board.core.time import utcnow
from intake_board.models.votes import Vote, VoteDecision
from intake_board.services.results import (
    WorkflowErrorCode,
    WorkflowResult,
    check_length,
    fail,
    ok,
)

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

REASONING_MIN_LENGTH = 20
REASONING_MAX_LENGTH = 2000
CONFIDENCE_RANGE = range(1, 6)


def validate_ballot(*, reasoning: str, confidence_level: int) -> list[str]:
    errors: list[str] = []
    message = check_length(
        reasoning,
        label="Reasoning",
        min_length=REASONING_MIN_LENGTH,
        max_length=REASONING_MAX_LENGTH,
    )
    if message:
        errors.append(message)
    if confidence_level not in CONFIDENCE_RANGE:
        errors.append("Confidence level must be between 1 and 5")
    return errors


async def get_vote(session: AsyncSession, *, application_id: int, voter_id: UUID) -> Vote | None:
    return await Vote.objects.filter_by(
        application_id=application_id,
        voter_id=voter_id,
    ).first(session)


async def list_votes(session: AsyncSession, *, application_id: int) -> list[Vote]:
    return await (
        Vote.objects.filter_by(application_id=application_id)
        .order_by(col(Vote.voted_at).asc(), col(Vote.id).asc())
        .all(session)
    )


async def has_voted(session: AsyncSession, *, application_id: int, voter_id: UUID) -> bool:
    return await Vote.objects.filter_by(
        application_id=application_id,
        voter_id=voter_id,
    ).exists(session)


async def stage_vote(
    session: AsyncSession,
    *,
    application_id: int,
    voter_id: UUID,
    decision: VoteDecision,
    reasoning: str,
    confidence_level: int,
) -> WorkflowResult[Vote]:
    """Insert or overwrite the voter's ballot unless it is locked."""
    vote = await get_vote(session, application_id=application_id, voter_id=voter_id)
    now = utcnow()
    if vote is not None:
        if vote.is_locked:
            return fail(
                WorkflowErrorCode.NOT_OPEN_FOR_VOTING,
                "Vote is locked and cannot be changed",
            )
        vote.decision = decision
        vote.reasoning = reasoning
        vote.confidence_level = confidence_level
        vote.updated_at = now
    else:
        vote = Vote(
            application_id=application_id,
            voter_id=voter_id,
            decision=decision,
            reasoning=reasoning,
            confidence_level=confidence_level,
            voted_at=now,
        )
    session.add(vote)
    return ok(vote)


async def lock_votes(session: AsyncSession, *, application_id: int) -> int:
    """Freeze every ballot on the application; caller commits."""
    votes = await list_votes(session, application_id=application_id)
    for vote in votes:
        if not vote.is_locked:
            vote.is_locked = True
            session.add(vote)
    return len(votes)
