# ruff: noqa: INP001
"""Lifecycle engine tests against an in-memory SQLite database."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import cast
from uuid import UUID, uuid4

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from conftest import (
    FakeRedis,
    FakeRoster,
    application_in_review,
    draft_application,
    reviewer,
    submitted_application,
    valid_profile,
)
from intake_board.core.config import settings
from intake_board.models.applications import ApplicationStatus, DecisionOutcome
from intake_board.models.audit_entries import AuditEntry
from intake_board.models.comments import Comment
from intake_board.models.notifications import Notification, NotificationType
from intake_board.models.votes import Vote, VoteDecision
from intake_board.services import applications as engine
from intake_board.services import vote_ledger
from intake_board.services.notifications import service as notification_service
from intake_board.services.results import WorkflowErrorCode

REASONING = "Strong statement and a realistic monthly budget for the program."


def _board(size: int) -> FakeRoster:
    return FakeRoster([reviewer(f"Reviewer {index}") for index in range(1, size + 1)])


async def _vote(
    session: AsyncSession,
    application_id: int,
    voter_id: UUID,
    decision: VoteDecision,
    roster: FakeRoster,
) -> None:
    result = await engine.cast_vote(
        session,
        application_id=application_id,
        voter_id=voter_id,
        decision=decision,
        reasoning=REASONING,
        confidence_level=4,
        roster=roster,
    )
    assert result.succeeded, result.errors


async def _count(session: AsyncSession, notification_type: NotificationType) -> int:
    return await Notification.objects.filter_by(notification_type=notification_type).count(
        session,
    )


# Drafting


@pytest.mark.asyncio
async def test_create_application_starts_in_draft_with_audit(session: AsyncSession) -> None:
    applicant_id = uuid4()

    result = await engine.create_application(
        session,
        applicant_id=applicant_id,
        profile=valid_profile(),
    )

    assert result.succeeded
    application = result.unwrap()
    assert application.status == ApplicationStatus.DRAFT
    assert application.full_name == "Jordan Rivera"
    entries = await AuditEntry.objects.filter_by(application_id=application.id).all(session)
    assert [entry.action for entry in entries] == ["application.created"]


@pytest.mark.asyncio
async def test_create_application_rejects_unknown_and_invalid_fields(
    session: AsyncSession,
) -> None:
    unknown = await engine.create_application(
        session,
        applicant_id=uuid4(),
        profile=valid_profile(favourite_colour="teal"),
    )
    invalid = await engine.create_application(
        session,
        applicant_id=uuid4(),
        profile=valid_profile(email="not-an-email", program_duration_months=0),
    )

    assert unknown.code == WorkflowErrorCode.VALIDATION_ERROR
    assert unknown.errors == ["Unknown application field: favourite_colour"]
    assert invalid.code == WorkflowErrorCode.VALIDATION_ERROR
    assert "Email must be a valid address" in invalid.errors
    assert "Program duration must be between 1 and 60 months" in invalid.errors


@pytest.mark.asyncio
async def test_update_is_limited_to_the_applicant_while_in_draft(session: AsyncSession) -> None:
    applicant_id = uuid4()
    roster = _board(1)
    draft = await draft_application(session, applicant_id)
    application_id = cast(int, draft.id)

    stranger = await engine.update_application(
        session,
        application_id=application_id,
        applicant_id=uuid4(),
        changes={"city": "Portland"},
    )
    updated = await engine.update_application(
        session,
        application_id=application_id,
        applicant_id=applicant_id,
        changes={"city": "Portland", "estimated_monthly_cost": Decimal("90.00")},
    )

    assert stranger.code == WorkflowErrorCode.UNAUTHORIZED
    assert updated.succeeded
    assert updated.unwrap().city == "Portland"

    await engine.submit_application(
        session,
        application_id=application_id,
        applicant_id=applicant_id,
        roster=roster,
    )
    late = await engine.update_application(
        session,
        application_id=application_id,
        applicant_id=applicant_id,
        changes={"city": "Salem"},
    )
    assert late.code == WorkflowErrorCode.INVALID_STATE


@pytest.mark.asyncio
async def test_rejected_edit_leaves_the_draft_untouched(session: AsyncSession) -> None:
    applicant_id = uuid4()
    draft = await draft_application(session, applicant_id)

    result = await engine.update_application(
        session,
        application_id=cast(int, draft.id),
        applicant_id=applicant_id,
        changes={"first_name": "Sam", "estimated_monthly_cost": Decimal("-1")},
    )

    assert result.code == WorkflowErrorCode.VALIDATION_ERROR
    assert draft.first_name == "Jordan"


@pytest.mark.asyncio
async def test_delete_removes_a_draft(session: AsyncSession) -> None:
    draft = await draft_application(session, uuid4())
    draft_id = cast(int, draft.id)

    deleted = await engine.delete_application(session, application_id=draft_id)

    assert deleted.succeeded
    assert (await engine.get_application(session, application_id=draft_id)).code == (
        WorkflowErrorCode.NOT_FOUND
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status",
    [status for status in ApplicationStatus if status != ApplicationStatus.DRAFT],
)
async def test_delete_fails_for_every_other_status(
    session: AsyncSession,
    status: ApplicationStatus,
) -> None:
    application = await draft_application(session, uuid4())
    application_id = cast(int, application.id)
    application.status = status
    session.add(application)
    await session.commit()

    kept = await engine.delete_application(session, application_id=application_id)

    assert kept.code == WorkflowErrorCode.INVALID_STATE
    assert kept.errors == ["Only draft applications can be deleted"]
    stored = (await engine.get_application(session, application_id=application_id)).unwrap()
    assert stored.status == status
    assert stored.first_name == "Jordan"


# Submission and review


@pytest.mark.asyncio
async def test_submit_snapshots_quorum_and_notifies(
    session: AsyncSession,
    fake_redis: FakeRedis,
) -> None:
    applicant_id = uuid4()
    roster = _board(3)

    application = await submitted_application(session, applicant_id, roster)

    assert application.status == ApplicationStatus.SUBMITTED
    assert application.votes_required_for_approval == 3
    assert application.submitted_date is not None
    assert application.signed_date is not None
    assert await _count(session, NotificationType.APPLICATION_SUBMITTED) == 1
    assert await _count(session, NotificationType.NEW_APPLICATION_RECEIVED) == 3
    # Only the applicant's notification asks for an email.
    assert len(fake_redis.queued(settings.rq_queue_name)) == 1


@pytest.mark.asyncio
async def test_submit_requires_the_applicant_and_a_draft(session: AsyncSession) -> None:
    applicant_id = uuid4()
    roster = _board(1)
    draft = await draft_application(session, applicant_id)
    application_id = cast(int, draft.id)

    stranger = await engine.submit_application(
        session,
        application_id=application_id,
        applicant_id=uuid4(),
        roster=roster,
    )
    first = await engine.submit_application(
        session,
        application_id=application_id,
        applicant_id=applicant_id,
        roster=roster,
    )
    second = await engine.submit_application(
        session,
        application_id=application_id,
        applicant_id=applicant_id,
        roster=roster,
    )

    assert stranger.code == WorkflowErrorCode.UNAUTHORIZED
    assert first.succeeded
    assert second.code == WorkflowErrorCode.INVALID_STATE


@pytest.mark.asyncio
async def test_submit_enforces_narrative_lengths(session: AsyncSession) -> None:
    applicant_id = uuid4()
    created = await engine.create_application(
        session,
        applicant_id=applicant_id,
        profile=valid_profile(personal_statement="Too short"),
    )
    application = created.unwrap()

    result = await engine.submit_application(
        session,
        application_id=cast(int, application.id),
        applicant_id=applicant_id,
        roster=_board(1),
    )

    assert result.code == WorkflowErrorCode.VALIDATION_ERROR
    assert result.errors == ["Personal statement must be at least 50 characters"]
    assert application.status == ApplicationStatus.DRAFT


@pytest.mark.asyncio
async def test_later_roster_changes_do_not_move_the_quorum(session: AsyncSession) -> None:
    roster = _board(2)
    application = await application_in_review(session, uuid4(), roster)
    application_id = cast(int, application.id)
    roster.reviewers.append(reviewer("Late Joiner"))

    summary = (
        await engine.get_voting_summary(session, application_id=application_id, roster=roster)
    ).unwrap()

    assert summary.votes_required == 2
    assert summary.pending_voters == ["Reviewer 1", "Reviewer 2", "Late Joiner"]


@pytest.mark.asyncio
async def test_zero_reviewers_means_quorum_with_zero_votes(session: AsyncSession) -> None:
    roster = FakeRoster()
    application = await submitted_application(session, uuid4(), roster)

    summary = (
        await engine.get_voting_summary(
            session,
            application_id=cast(int, application.id),
            roster=roster,
        )
    ).unwrap()

    assert application.votes_required_for_approval == 0
    assert summary.has_sufficient_votes is True
    assert summary.total_votes_cast == 0


@pytest.mark.asyncio
async def test_zero_reviewer_quorum_can_be_decided_right_after_submission(
    session: AsyncSession,
) -> None:
    roster = FakeRoster()
    application = await submitted_application(session, uuid4(), roster)
    decider_id = uuid4()

    result = await engine.process_application_decision(
        session,
        application_id=cast(int, application.id),
        decision_maker_id=decider_id,
        roster=roster,
    )

    assert result.unwrap() == DecisionOutcome.APPROVED
    assert application.status == ApplicationStatus.SUBMITTED
    assert application.final_decision == DecisionOutcome.APPROVED
    assert application.decision_made_by_id == decider_id


@pytest.mark.asyncio
async def test_decisions_are_refused_for_drafts_and_closed_applications(
    session: AsyncSession,
) -> None:
    roster = FakeRoster()
    applicant_id = uuid4()
    draft = await draft_application(session, applicant_id)
    withdrawn = await submitted_application(session, applicant_id, roster)
    withdrawn_id = cast(int, withdrawn.id)
    assert (
        await engine.withdraw_application(
            session,
            application_id=withdrawn_id,
            applicant_id=applicant_id,
            reason="Found another source of funding for the program.",
        )
    ).succeeded

    for application_id in (cast(int, draft.id), withdrawn_id):
        result = await engine.process_application_decision(
            session,
            application_id=application_id,
            decision_maker_id=uuid4(),
            roster=roster,
        )
        assert result.code == WorkflowErrorCode.INVALID_STATE


@pytest.mark.asyncio
async def test_start_review_requires_submitted(session: AsyncSession) -> None:
    roster = _board(2)
    draft = await draft_application(session, uuid4())
    application = await submitted_application(session, uuid4(), roster)

    too_early = await engine.start_review_process(
        session,
        application_id=cast(int, draft.id),
        roster=roster,
    )
    started = await engine.start_review_process(
        session,
        application_id=cast(int, application.id),
        roster=roster,
    )

    assert too_early.code == WorkflowErrorCode.INVALID_STATE
    assert started.succeeded
    assert application.status == ApplicationStatus.UNDER_REVIEW
    assert application.review_started_date is not None
    assert await _count(session, NotificationType.VOTE_REQUIRED) == 2
    assert await _count(session, NotificationType.APPLICATION_UNDER_REVIEW) == 1


@pytest.mark.asyncio
async def test_one_failed_recipient_does_not_abort_the_fan_out(
    session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    roster = _board(3)
    unlucky = roster.reviewers[1].id
    application = await submitted_application(session, uuid4(), roster)
    application_id = cast(int, application.id)
    original_notify = notification_service.notify

    async def _flaky_notify(session: AsyncSession, **kwargs: object) -> Notification:
        if kwargs["recipient_id"] == unlucky:
            raise RuntimeError("mailbox on fire")
        return await original_notify(session, **kwargs)  # type: ignore[arg-type]

    monkeypatch.setattr(notification_service, "notify", _flaky_notify)

    result = await engine.start_review_process(
        session,
        application_id=application_id,
        roster=roster,
    )

    assert result.succeeded
    assert result.unwrap().status == ApplicationStatus.UNDER_REVIEW
    recipients = {
        notification.recipient_id
        for notification in await Notification.objects.filter_by(
            notification_type=NotificationType.VOTE_REQUIRED,
        ).all(session)
    }
    assert recipients == {roster.reviewers[0].id, roster.reviewers[2].id}


# Voting


@pytest.mark.asyncio
async def test_first_vote_opens_discussion_and_revotes_overwrite(session: AsyncSession) -> None:
    roster = _board(3)
    application = await application_in_review(session, uuid4(), roster)
    application_id = cast(int, application.id)
    voter_id = roster.reviewers[0].id

    await _vote(session, application_id, voter_id, VoteDecision.APPROVE, roster)
    assert application.status == ApplicationStatus.IN_DISCUSSION

    await _vote(session, application_id, voter_id, VoteDecision.NEEDS_MORE_INFO, roster)

    votes = await vote_ledger.list_votes(session, application_id=application_id)
    assert len(votes) == 1
    assert votes[0].decision == VoteDecision.NEEDS_MORE_INFO
    assert votes[0].updated_at is not None
    assert application.status == ApplicationStatus.IN_DISCUSSION


@pytest.mark.asyncio
async def test_vote_validation_and_voting_window(session: AsyncSession) -> None:
    roster = _board(2)
    submitted = await submitted_application(session, uuid4(), roster)
    in_review = await application_in_review(session, uuid4(), roster)
    voter_id = roster.reviewers[0].id

    closed = await engine.cast_vote(
        session,
        application_id=cast(int, submitted.id),
        voter_id=voter_id,
        decision=VoteDecision.APPROVE,
        reasoning=REASONING,
        roster=roster,
    )
    sloppy = await engine.cast_vote(
        session,
        application_id=cast(int, in_review.id),
        voter_id=voter_id,
        decision=VoteDecision.APPROVE,
        reasoning="ok",
        confidence_level=9,
        roster=roster,
    )

    assert closed.code == WorkflowErrorCode.NOT_OPEN_FOR_VOTING
    assert closed.errors == ["Application is not open for voting"]
    assert sloppy.code == WorkflowErrorCode.VALIDATION_ERROR
    assert sloppy.errors == [
        "Reasoning must be at least 20 characters",
        "Confidence level must be between 1 and 5",
    ]
    assert await Vote.objects.all().count(session) == 0


@pytest.mark.asyncio
async def test_quorum_notification_fires_without_deciding(session: AsyncSession) -> None:
    roster = _board(2)
    application = await application_in_review(session, uuid4(), roster)
    application_id = cast(int, application.id)

    await _vote(session, application_id, roster.reviewers[0].id, VoteDecision.APPROVE, roster)
    assert await _count(session, NotificationType.QUORUM_REACHED) == 0

    await _vote(session, application_id, roster.reviewers[1].id, VoteDecision.APPROVE, roster)

    assert await _count(session, NotificationType.QUORUM_REACHED) == 2
    assert application.status == ApplicationStatus.IN_DISCUSSION
    assert application.final_decision is None


@pytest.mark.asyncio
async def test_concurrent_first_vote_is_retried_as_an_overwrite(
    session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    roster = _board(2)
    application = await application_in_review(session, uuid4(), roster)
    application_id = cast(int, application.id)
    voter_id = roster.reviewers[0].id
    await _vote(session, application_id, voter_id, VoteDecision.APPROVE, roster)

    original_get_vote = vote_ledger.get_vote
    calls = {"count": 0}

    async def _racing_get_vote(session: AsyncSession, **kwargs: object) -> Vote | None:
        calls["count"] += 1
        if calls["count"] == 1:
            # Simulates a reader that has not yet seen the other request's insert.
            return None
        return await original_get_vote(session, **kwargs)  # type: ignore[arg-type]

    monkeypatch.setattr(vote_ledger, "get_vote", _racing_get_vote)

    result = await engine.cast_vote(
        session,
        application_id=application_id,
        voter_id=voter_id,
        decision=VoteDecision.REJECT,
        reasoning=REASONING,
        roster=roster,
    )

    assert result.succeeded
    votes = await vote_ledger.list_votes(session, application_id=application_id)
    assert [vote.decision for vote in votes] == [VoteDecision.REJECT]
    assert calls["count"] == 2


# Decisions


@pytest.mark.asyncio
async def test_reject_vote_wins_the_decision_and_status_is_unchanged(
    session: AsyncSession,
) -> None:
    roster = _board(3)
    admin_id = uuid4()
    application = await application_in_review(session, uuid4(), roster)
    application_id = cast(int, application.id)
    for member, decision in zip(
        roster.reviewers,
        (VoteDecision.APPROVE, VoteDecision.APPROVE, VoteDecision.REJECT),
        strict=True,
    ):
        await _vote(session, application_id, member.id, decision, roster)

    result = await engine.process_application_decision(
        session,
        application_id=application_id,
        decision_maker_id=admin_id,
        roster=roster,
    )

    assert result.unwrap() == DecisionOutcome.REJECTED
    assert application.final_decision == DecisionOutcome.REJECTED
    assert application.decision_made_by_id == admin_id
    assert application.decision_date is not None
    assert application.status == ApplicationStatus.IN_DISCUSSION


@pytest.mark.asyncio
async def test_two_approvals_with_quorum_of_two_approve(session: AsyncSession) -> None:
    roster = _board(2)
    application = await application_in_review(session, uuid4(), roster)
    application_id = cast(int, application.id)
    for member in roster.reviewers:
        await _vote(session, application_id, member.id, VoteDecision.APPROVE, roster)

    result = await engine.process_application_decision(
        session,
        application_id=application_id,
        decision_maker_id=uuid4(),
        roster=roster,
    )

    assert result.unwrap() == DecisionOutcome.APPROVED


@pytest.mark.asyncio
async def test_decision_needs_quorum(session: AsyncSession) -> None:
    roster = _board(3)
    application = await application_in_review(session, uuid4(), roster)
    application_id = cast(int, application.id)
    await _vote(session, application_id, roster.reviewers[0].id, VoteDecision.REJECT, roster)

    result = await engine.process_application_decision(
        session,
        application_id=application_id,
        decision_maker_id=uuid4(),
        roster=roster,
    )

    assert result.code == WorkflowErrorCode.INSUFFICIENT_VOTES
    assert result.errors == ["Not all board members have voted yet"]
    assert application.final_decision is None


@pytest.mark.asyncio
async def test_abstain_only_ballots_defer_the_decision(session: AsyncSession) -> None:
    roster = _board(1)
    application = await application_in_review(session, uuid4(), roster)
    application_id = cast(int, application.id)
    await _vote(session, application_id, roster.reviewers[0].id, VoteDecision.ABSTAIN, roster)

    summary = (
        await engine.get_voting_summary(session, application_id=application_id, roster=roster)
    ).unwrap()
    result = await engine.process_application_decision(
        session,
        application_id=application_id,
        decision_maker_id=uuid4(),
        roster=roster,
    )

    assert summary.has_sufficient_votes is True
    assert summary.is_approved is False
    assert result.unwrap() == DecisionOutcome.DEFERRED
    assert application.status == ApplicationStatus.IN_DISCUSSION


@pytest.mark.asyncio
async def test_approval_locks_votes_and_closes_voting(session: AsyncSession) -> None:
    roster = _board(2)
    sponsor_id = uuid4()
    application = await application_in_review(session, uuid4(), roster)
    application_id = cast(int, application.id)
    await _vote(session, application_id, roster.reviewers[0].id, VoteDecision.APPROVE, roster)

    missing_sponsor = await engine.approve_application(
        session,
        application_id=application_id,
        approver_id=uuid4(),
        sponsor_id=sponsor_id,
    )
    assert missing_sponsor.code == WorkflowErrorCode.NOT_FOUND
    assert application.status == ApplicationStatus.IN_DISCUSSION

    result = await engine.approve_application(
        session,
        application_id=application_id,
        approver_id=uuid4(),
        approved_amount=Decimal("120.00"),
        message="Welcome aboard.",
    )

    assert result.succeeded
    assert application.status == ApplicationStatus.APPROVED
    assert application.final_decision == DecisionOutcome.APPROVED
    assert application.approved_monthly_amount == Decimal("120.00")
    votes = await vote_ledger.list_votes(session, application_id=application_id)
    assert votes and all(vote.is_locked for vote in votes)

    late = await engine.cast_vote(
        session,
        application_id=application_id,
        voter_id=roster.reviewers[1].id,
        decision=VoteDecision.REJECT,
        reasoning=REASONING,
        roster=roster,
    )
    assert late.code == WorkflowErrorCode.NOT_OPEN_FOR_VOTING
    assert await _count(session, NotificationType.APPLICATION_APPROVED) == 1


@pytest.mark.asyncio
async def test_rejection_locks_votes_and_requires_a_reason(session: AsyncSession) -> None:
    roster = _board(2)
    application = await application_in_review(session, uuid4(), roster)
    application_id = cast(int, application.id)
    for member in roster.reviewers:
        await _vote(session, application_id, member.id, VoteDecision.REJECT, roster)

    terse = await engine.reject_application(
        session,
        application_id=application_id,
        rejector_id=uuid4(),
        reason="No.",
    )
    result = await engine.reject_application(
        session,
        application_id=application_id,
        rejector_id=uuid4(),
        reason="The requested program is outside our funding guidelines.",
    )
    again = await engine.approve_application(
        session,
        application_id=application_id,
        approver_id=uuid4(),
    )

    assert terse.code == WorkflowErrorCode.VALIDATION_ERROR
    assert result.succeeded
    assert application.status == ApplicationStatus.REJECTED
    votes = await vote_ledger.list_votes(session, application_id=application_id)
    assert all(vote.is_locked for vote in votes)
    assert again.code == WorkflowErrorCode.INVALID_STATE
    assert application.status == ApplicationStatus.REJECTED


@pytest.mark.asyncio
async def test_cannot_approve_before_review(session: AsyncSession) -> None:
    application = await submitted_application(session, uuid4(), _board(1))

    result = await engine.approve_application(
        session,
        application_id=cast(int, application.id),
        approver_id=uuid4(),
    )

    assert result.code == WorkflowErrorCode.INVALID_STATE
    assert application.status == ApplicationStatus.SUBMITTED
    assert application.final_decision is None


# Information requests


@pytest.mark.asyncio
async def test_information_request_parks_application_with_one_comment(
    session: AsyncSession,
) -> None:
    roster = _board(2)
    application = await application_in_review(session, uuid4(), roster)
    application_id = cast(int, application.id)

    result = await engine.request_additional_information(
        session,
        application_id=application_id,
        requester_id=roster.reviewers[0].id,
        details="Please describe your current weekly activity level.",
    )

    assert result.succeeded
    assert application.status == ApplicationStatus.NEEDS_INFORMATION
    comments = await Comment.objects.filter_by(application_id=application_id).all(session)
    assert len(comments) == 1
    assert comments[0].is_information_request is True
    assert comments[0].is_private is False
    assert await _count(session, NotificationType.INFORMATION_REQUESTED) == 1


@pytest.mark.asyncio
async def test_information_request_outside_review_fails_without_side_effects(
    session: AsyncSession,
) -> None:
    application = await submitted_application(session, uuid4(), _board(1))
    application_id = cast(int, application.id)

    result = await engine.request_additional_information(
        session,
        application_id=application_id,
        requester_id=uuid4(),
        details="Please describe your current weekly activity level.",
    )

    assert result.code == WorkflowErrorCode.INVALID_STATE
    assert await Comment.objects.filter_by(application_id=application_id).count(session) == 0


@pytest.mark.asyncio
async def test_response_returns_application_to_review(session: AsyncSession) -> None:
    roster = _board(2)
    applicant_id = uuid4()
    application = await application_in_review(session, applicant_id, roster)
    application_id = cast(int, application.id)
    await _vote(session, application_id, roster.reviewers[0].id, VoteDecision.NEEDS_MORE_INFO, roster)
    request = (
        await engine.request_additional_information(
            session,
            application_id=application_id,
            requester_id=roster.reviewers[0].id,
            details="Please describe your current weekly activity level.",
        )
    ).unwrap()

    result = await engine.respond_to_information_request(
        session,
        application_id=application_id,
        applicant_id=applicant_id,
        content="I walk daily and swim twice a week.",
        roster=roster,
    )

    reply = result.unwrap()
    assert reply.parent_comment_id == request.id
    assert reply.is_private is False
    assert request.has_response is True
    assert application.status == ApplicationStatus.UNDER_REVIEW
    votes = await vote_ledger.list_votes(session, application_id=application_id)
    assert votes[0].is_locked is False
    assert await _count(session, NotificationType.INFORMATION_PROVIDED) == 2


# Withdrawal and program


@pytest.mark.asyncio
async def test_withdraw_until_a_decision_is_made(session: AsyncSession) -> None:
    roster = _board(1)
    applicant_id = uuid4()
    open_application = await application_in_review(session, applicant_id, roster)
    decided = await application_in_review(session, applicant_id, roster)
    await engine.approve_application(
        session,
        application_id=cast(int, decided.id),
        approver_id=uuid4(),
    )

    withdrawn = await engine.withdraw_application(
        session,
        application_id=cast(int, open_application.id),
        applicant_id=applicant_id,
        reason="Moving out of state",
    )
    too_late = await engine.withdraw_application(
        session,
        application_id=cast(int, decided.id),
        applicant_id=applicant_id,
    )

    assert withdrawn.unwrap().status == ApplicationStatus.WITHDRAWN
    assert open_application.decision_message == "Withdrawn by applicant: Moving out of state"
    assert too_late.code == WorkflowErrorCode.INVALID_STATE
    assert too_late.errors == ["This application can no longer be withdrawn"]


@pytest.mark.asyncio
async def test_program_runs_from_approval_to_completion(session: AsyncSession) -> None:
    roster = _board(1)
    application = await application_in_review(session, uuid4(), roster)
    application_id = cast(int, application.id)

    not_yet = await engine.start_program(session, application_id=application_id)
    await engine.approve_application(session, application_id=application_id, approver_id=uuid4())
    started = await engine.start_program(
        session,
        application_id=application_id,
        start_date=datetime(2026, 1, 31),
        duration_months=1,
    )

    assert not_yet.code == WorkflowErrorCode.INVALID_STATE
    assert started.succeeded
    assert application.status == ApplicationStatus.ACTIVE
    assert application.program_end_date == datetime(2026, 2, 28)

    completed = await engine.complete_program(session, application_id=application_id)
    twice = await engine.complete_program(session, application_id=application_id)

    assert completed.succeeded
    assert application.status == ApplicationStatus.COMPLETED
    assert twice.code == WorkflowErrorCode.INVALID_STATE


@pytest.mark.asyncio
async def test_program_duration_defaults_to_settings(session: AsyncSession) -> None:
    roster = _board(1)
    application = await application_in_review(session, uuid4(), roster)
    application_id = cast(int, application.id)
    await engine.approve_application(session, application_id=application_id, approver_id=uuid4())

    await engine.start_program(
        session,
        application_id=application_id,
        start_date=datetime(2026, 3, 15),
    )

    assert settings.default_program_duration_months == 12
    assert application.program_end_date == datetime(2027, 3, 15)


# Queries and failures


@pytest.mark.asyncio
async def test_needing_review_skips_applications_already_voted(session: AsyncSession) -> None:
    roster = _board(2)
    voter_id = roster.reviewers[0].id
    voted = await application_in_review(session, uuid4(), roster)
    pending = await application_in_review(session, uuid4(), roster)
    await submitted_application(session, uuid4(), roster)
    await _vote(session, cast(int, voted.id), voter_id, VoteDecision.APPROVE, roster)

    result = await engine.applications_needing_review(session, reviewer_id=voter_id)

    assert [application.id for application in result] == [pending.id]


@pytest.mark.asyncio
async def test_list_applications_filters_by_status_and_applicant(session: AsyncSession) -> None:
    roster = _board(1)
    applicant_id = uuid4()
    draft = await draft_application(session, applicant_id)
    submitted = await submitted_application(session, applicant_id, roster)
    await submitted_application(session, uuid4(), roster)

    mine = await engine.list_applications(session, applicant_id=applicant_id)
    drafts = await engine.list_applications(session, status=ApplicationStatus.DRAFT)

    assert {application.id for application in mine} == {draft.id, submitted.id}
    assert [application.id for application in drafts] == [draft.id]


@pytest.mark.asyncio
async def test_storage_errors_become_unexpected_error_results(
    session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    roster = _board(1)
    application = await submitted_application(session, uuid4(), roster)
    application_id = cast(int, application.id)

    async def _broken_audit(*args: object, **kwargs: object) -> AuditEntry:
        raise SQLAlchemyError("database went away")

    monkeypatch.setattr(engine, "record_audit", _broken_audit)

    result = await engine.start_review_process(
        session,
        application_id=application_id,
        roster=roster,
    )

    assert not result.succeeded
    assert result.code == WorkflowErrorCode.UNEXPECTED_ERROR
    assert result.errors == ["Unexpected error during start review process"]
    reloaded = (await engine.get_application(session, application_id=application_id)).unwrap()
    assert reloaded.status == ApplicationStatus.SUBMITTED
