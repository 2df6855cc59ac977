"""Ballot endpoints for board reviewers."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

from fastapi import APIRouter

from intake_board.api.deps import REVIEWER_DEP, ROSTER_DEP, SESSION_DEP
from intake_board.core.error_handling import fail_http, raise_for_result
from intake_board.schemas.votes import VoteCreate, VoteRead, VotingSummaryRead
from intake_board.services import applications as engine
from intake_board.services import vote_ledger
from intake_board.services.results import WorkflowErrorCode

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from intake_board.models.users import User
    from intake_board.services.roster import ReviewerRoster

router = APIRouter(prefix="/applications/{application_id}/votes", tags=["votes"])


async def _ensure_application(session: AsyncSession, application_id: int) -> None:
    raise_for_result(await engine.get_application(session, application_id=application_id))


@router.post("", response_model=VoteRead)
async def cast_vote(
    application_id: int,
    payload: VoteCreate,
    session: AsyncSession = SESSION_DEP,
    reviewer: User = REVIEWER_DEP,
    roster: ReviewerRoster = ROSTER_DEP,
) -> VoteRead:
    """Cast or replace the caller's ballot while the application is open for voting."""
    result = await engine.cast_vote(
        session,
        application_id=application_id,
        voter_id=reviewer.id,
        decision=payload.decision,
        reasoning=payload.reasoning,
        confidence_level=payload.confidence_level,
        roster=roster,
    )
    raise_for_result(result)
    return VoteRead.model_validate(result.unwrap(), from_attributes=True)


@router.get("", response_model=list[VoteRead])
async def list_votes(
    application_id: int,
    session: AsyncSession = SESSION_DEP,
    _reviewer: User = REVIEWER_DEP,
) -> list[VoteRead]:
    await _ensure_application(session, application_id)
    votes = await vote_ledger.list_votes(session, application_id=application_id)
    return [VoteRead.model_validate(vote, from_attributes=True) for vote in votes]


@router.get("/mine", response_model=VoteRead)
async def get_my_vote(
    application_id: int,
    session: AsyncSession = SESSION_DEP,
    reviewer: User = REVIEWER_DEP,
) -> VoteRead:
    vote = await vote_ledger.get_vote(
        session,
        application_id=application_id,
        voter_id=reviewer.id,
    )
    if vote is None:
        fail_http(WorkflowErrorCode.NOT_FOUND, "Vote not found")
    return VoteRead.model_validate(vote, from_attributes=True)


@router.get("/summary", response_model=VotingSummaryRead)
async def get_voting_summary(
    application_id: int,
    session: AsyncSession = SESSION_DEP,
    _reviewer: User = REVIEWER_DEP,
    roster: ReviewerRoster = ROSTER_DEP,
) -> VotingSummaryRead:
    result = await engine.get_voting_summary(
        session,
        application_id=application_id,
        roster=roster,
    )
    raise_for_result(result)
    return VotingSummaryRead(application_id=application_id, **asdict(result.unwrap()))
