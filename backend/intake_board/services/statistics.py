"""Reporting helpers over applications and ballots."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from sqlmodel import col

from intake_board.core.config import settings
from intake_board.core.time import utcnow
from intake_board.models.applications import OPEN_REVIEW_STATUSES, Application, ApplicationStatus
from intake_board.models.votes import Vote, VoteDecision

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

_S = ApplicationStatus


@dataclass(frozen=True)
class ApplicationStatistics:
    total: int = 0
    pending: int = 0
    under_review: int = 0
    needs_information: int = 0
    approved: int = 0
    rejected: int = 0
    active: int = 0
    completed: int = 0
    withdrawn: int = 0
    approval_rate: float = 0.0
    average_review_days: float = 0.0


@dataclass(frozen=True)
class ReviewerStatistics:
    reviewer_id: UUID
    votes_cast: int = 0
    approvals: int = 0
    rejections: int = 0
    pending_votes: int = 0
    participation_rate: float = 0.0
    average_confidence: float = 0.0


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


async def application_statistics(session: AsyncSession) -> ApplicationStatistics:
    """Counts per lifecycle bucket plus approval rate and average review time.

    Approved counts both ``Approved`` and ``Active``; the approval rate is taken
    over applications that reached a terminal decision.
    """
    applications = await Application.objects.all().all(session)
    counts = dict.fromkeys(ApplicationStatus, 0)
    for application in applications:
        counts[ApplicationStatus(application.status)] += 1

    approved = counts[_S.APPROVED] + counts[_S.ACTIVE]
    rejected = counts[_S.REJECTED]
    review_days = [
        (application.decision_date - application.submitted_date).total_seconds() / 86400
        for application in applications
        if application.decision_date is not None and application.submitted_date is not None
    ]
    return ApplicationStatistics(
        total=len(applications),
        pending=counts[_S.SUBMITTED],
        under_review=counts[_S.UNDER_REVIEW] + counts[_S.IN_DISCUSSION],
        needs_information=counts[_S.NEEDS_INFORMATION],
        approved=approved,
        rejected=rejected,
        active=counts[_S.ACTIVE],
        completed=counts[_S.COMPLETED],
        withdrawn=counts[_S.WITHDRAWN],
        approval_rate=_percent(approved, approved + rejected),
        average_review_days=round(sum(review_days) / len(review_days), 1) if review_days else 0.0,
    )


async def reviewer_statistics(session: AsyncSession, *, reviewer_id: UUID) -> ReviewerStatistics:
    """Participation of one reviewer across applications currently open for review."""
    votes = await Vote.objects.filter_by(voter_id=reviewer_id).all(session)
    open_ids = {
        application.id
        for application in await Application.objects.filter(
            col(Application.status).in_(OPEN_REVIEW_STATUSES),
        ).all(session)
    }
    voted_ids = {vote.application_id for vote in votes}
    pending = len(open_ids - voted_ids)
    decided_open = len(open_ids & voted_ids)
    confidences = [vote.confidence_level for vote in votes]
    return ReviewerStatistics(
        reviewer_id=reviewer_id,
        votes_cast=len(votes),
        approvals=sum(1 for vote in votes if vote.decision == VoteDecision.APPROVE),
        rejections=sum(1 for vote in votes if vote.decision == VoteDecision.REJECT),
        pending_votes=pending,
        participation_rate=_percent(decided_open, len(open_ids)),
        average_confidence=round(sum(confidences) / len(confidences), 2) if confidences else 0.0,
    )


async def applications_expiring_soon(
    session: AsyncSession,
    *,
    days: int | None = None,
) -> list[Application]:
    """Open-review applications submitted more than ``days`` ago, oldest first."""
    cutoff = utcnow() - timedelta(days=days if days is not None else settings.review_stale_after_days)
    return await (
        Application.objects.filter(
            col(Application.status).in_(OPEN_REVIEW_STATUSES),
            col(Application.submitted_date).is_not(None),
            col(Application.submitted_date) < cutoff,
        )
        .order_by(col(Application.submitted_date).asc())
        .all(session)
    )
