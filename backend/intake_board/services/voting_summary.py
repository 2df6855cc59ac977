"""Pure voting tally and decision policy.

Nothing in this module touches the database: it is given the ballots, the
active roster and the quorum snapshot, and derives readiness and the outcome.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from intake_board.models.applications import DecisionOutcome
from intake_board.models.votes import VoteDecision

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from intake_board.services.roster import Reviewer


class Ballot(Protocol):
    voter_id: UUID
    decision: VoteDecision


@dataclass(frozen=True)
class VotingSummary:
    """Aggregate view of an application's ballots."""

    total_votes_cast: int = 0
    approval_votes: int = 0
    rejection_votes: int = 0
    needs_info_votes: int = 0
    abstain_votes: int = 0
    votes_required: int = 0
    has_sufficient_votes: bool = False
    is_approved: bool = False
    has_any_rejection: bool = False
    pending_voters: list[str] = field(default_factory=list)


def compute_voting_summary(
    votes: Sequence[Ballot],
    *,
    roster: Iterable[Reviewer],
    votes_required: int,
) -> VotingSummary:
    """Tally ballots against the quorum snapshot.

    Abstentions count toward quorum but not toward approval, and are excluded
    from ``total_votes_cast``.
    """
    counts = dict.fromkeys(VoteDecision, 0)
    for vote in votes:
        counts[VoteDecision(vote.decision)] += 1

    voted_ids = {vote.voter_id for vote in votes}
    pending = [reviewer.name for reviewer in roster if reviewer.id not in voted_ids]
    approvals = counts[VoteDecision.APPROVE]
    rejections = counts[VoteDecision.REJECT]

    return VotingSummary(
        total_votes_cast=len(votes) - counts[VoteDecision.ABSTAIN],
        approval_votes=approvals,
        rejection_votes=rejections,
        needs_info_votes=counts[VoteDecision.NEEDS_MORE_INFO],
        abstain_votes=counts[VoteDecision.ABSTAIN],
        votes_required=votes_required,
        has_sufficient_votes=len(votes) >= votes_required,
        is_approved=approvals >= votes_required,
        has_any_rejection=rejections > 0,
        pending_voters=pending,
    )


def resolve_decision(summary: VotingSummary) -> DecisionOutcome | None:
    """Apply the board's decision policy; ``None`` while quorum is unmet.

    Any rejection wins, then an approval quorum, then an outstanding request
    for more information; otherwise the decision is deferred.
    """
    if not summary.has_sufficient_votes:
        return None
    if summary.has_any_rejection:
        return DecisionOutcome.REJECTED
    if summary.is_approved:
        return DecisionOutcome.APPROVED
    if summary.needs_info_votes > 0:
        return DecisionOutcome.NEEDS_MORE_INFORMATION
    return DecisionOutcome.DEFERRED
