"""Application lifecycle engine.

Each operation is one unit of work on a single application: load (row-locked
when the status may change), check the transition table and business rules,
stage every write, commit once, then notify. Business failures come back as
``WorkflowResult`` values; notification problems are logged and never undo a
committed transition.
"""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any, ParamSpec, TypeVar, cast
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import col, func
from sqlmodel.ext.asyncio.session import AsyncSession

from intake_board.core.config import settings
from intake_board.core.logging import get_logger
from intake_board.core.time import add_months, utcnow
from intake_board.db.query_manager import QuerySet
from intake_board.models.applications import (
    OPEN_REVIEW_STATUSES,
    VOTING_STATUSES,
    Application,
    ApplicationStatus,
    DecisionOutcome,
)
from intake_board.models.audit_entries import AuditEntry
from intake_board.models.comments import Comment
from intake_board.models.notifications import Notification, NotificationType
from intake_board.models.users import User
from intake_board.models.votes import Vote, VoteDecision
from intake_board.services import comments as comment_store
from intake_board.services import vote_ledger
from intake_board.services.audit import record_audit
from intake_board.services.notifications import application_url, notify_many
from intake_board.services.results import (
    WorkflowErrorCode,
    WorkflowResult,
    check_length,
    fail,
    not_found,
    ok,
    relay,
    unauthorized,
)
from intake_board.services.roster import ReviewerRoster, default_roster
from intake_board.services.statistics import applications_expiring_soon
from intake_board.services.transitions import check_transition
from intake_board.services.voting_summary import (
    VotingSummary,
    compute_voting_summary,
    resolve_decision,
)

logger = get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

PROFILE_FIELDS = frozenset(
    {
        "first_name",
        "last_name",
        "email",
        "phone_number",
        "address",
        "city",
        "state",
        "zip_code",
        "occupation",
        "date_of_birth",
        "funding_types_requested",
        "estimated_monthly_cost",
        "program_duration_months",
        "funding_details",
        "personal_statement",
        "expected_benefits",
        "commitment_statement",
        "concerns_obstacles",
        "signature",
    },
)
# (label, min on submit, max)
NARRATIVE_LIMITS: dict[str, tuple[str, int, int]] = {
    "personal_statement": ("Personal statement", 50, 5000),
    "expected_benefits": ("Expected benefits", 50, 3000),
    "commitment_statement": ("Commitment statement", 50, 3000),
}
DECISION_TEXT_MIN_LENGTH = 20
DECISION_TEXT_MAX_LENGTH = 2000
MAX_PROGRAM_DURATION_MONTHS = 60
# Decisions need a quorum snapshot and an open outcome.
DECISION_CLOSED_STATUSES = frozenset(
    {
        ApplicationStatus.DRAFT,
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.ACTIVE,
        ApplicationStatus.COMPLETED,
        ApplicationStatus.WITHDRAWN,
    },
)


def workflow_operation(
    name: str,
) -> Callable[
    [Callable[P, Awaitable[WorkflowResult[R]]]],
    Callable[P, Awaitable[WorkflowResult[R]]],
]:
    """Turn storage failures inside an operation into ``unexpected_error`` results."""

    def decorator(
        func_: Callable[P, Awaitable[WorkflowResult[R]]],
    ) -> Callable[P, Awaitable[WorkflowResult[R]]]:
        @functools.wraps(func_)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> WorkflowResult[R]:
            try:
                return await func_(*args, **kwargs)
            except SQLAlchemyError:
                session = args[0] if args else kwargs.get("session")
                if isinstance(session, AsyncSession):
                    await session.rollback()
                logger.exception(
                    "application.operation_failed",
                    extra={
                        "operation": name,
                        "application_id": kwargs.get("application_id"),
                    },
                )
                return fail(
                    WorkflowErrorCode.UNEXPECTED_ERROR,
                    f"Unexpected error during {name.replace('_', ' ')}",
                )

        return wrapper

    return decorator


async def _load(
    session: AsyncSession,
    application_id: int,
    *,
    lock: bool = False,
) -> Application | None:
    queryset = Application.objects.by_id(application_id)
    if lock:
        queryset = queryset.for_update()
    return await queryset.first(session)


def _move(application: Application, target: ApplicationStatus) -> WorkflowResult[None]:
    result = check_transition(application.status, target)
    if result:
        application.status = target
        application.updated_at = utcnow()
    return result


def _validate_decision_text(value: str, *, label: str) -> WorkflowResult[None]:
    message = check_length(
        value,
        label=label,
        min_length=DECISION_TEXT_MIN_LENGTH,
        max_length=DECISION_TEXT_MAX_LENGTH,
    )
    if message:
        return fail(WorkflowErrorCode.VALIDATION_ERROR, message)
    return ok()


def _validate_profile(application: Application, *, for_submit: bool) -> list[str]:
    errors: list[str] = []
    for field_name, label in (
        ("first_name", "First name"),
        ("last_name", "Last name"),
        ("email", "Email"),
    ):
        if not str(getattr(application, field_name) or "").strip():
            errors.append(f"{label} is required")
    if application.email and "@" not in application.email:
        errors.append("Email must be a valid address")
    if not 1 <= application.program_duration_months <= MAX_PROGRAM_DURATION_MONTHS:
        errors.append(
            f"Program duration must be between 1 and {MAX_PROGRAM_DURATION_MONTHS} months",
        )
    cost = application.estimated_monthly_cost
    if cost is not None and Decimal(cost) < 0:
        errors.append("Estimated monthly cost cannot be negative")
    for field_name, (label, min_length, max_length) in NARRATIVE_LIMITS.items():
        value = getattr(application, field_name) or ""
        if for_submit:
            message = check_length(
                value,
                label=label,
                min_length=min_length,
                max_length=max_length,
            )
        else:
            message = check_length(value, label=label, min_length=0, max_length=max_length)
        if message:
            errors.append(message)
    return errors


def _apply_profile(application: Application, profile: Mapping[str, Any]) -> list[str]:
    unknown = sorted(set(profile) - PROFILE_FIELDS)
    if unknown:
        return [f"Unknown application field: {name}" for name in unknown]
    for field_name, value in profile.items():
        if field_name == "funding_types_requested":
            value = list(value or [])
        setattr(application, field_name, value)
    return []


async def _reviewer_ids(session: AsyncSession, roster: ReviewerRoster) -> list[UUID]:
    try:
        reviewers = await roster.active_reviewers(session)
    except SQLAlchemyError:
        logger.warning("application.roster_unavailable", exc_info=True)
        return []
    return [reviewer.id for reviewer in reviewers]


async def _notify(
    session: AsyncSession,
    application: Application,
    recipient_ids: Iterable[UUID | None],
    *,
    notification_type: NotificationType,
    title: str,
    message: str,
    action_suffix: str = "",
    send_email: bool = True,
) -> None:
    """Post-commit fan-out; a failed recipient only reloads the application."""
    application_id = application.id
    if application_id is None:
        return
    recipients = list(dict.fromkeys(rid for rid in recipient_ids if rid is not None))
    if not recipients:
        return
    delivered = await notify_many(
        session,
        recipients,
        notification_type=notification_type,
        title=title,
        message=message,
        application_id=application_id,
        action_url=application_url(application_id, action_suffix),
        send_email=send_email,
    )
    if delivered < len(recipients):
        await session.refresh(application)


# Drafting


@workflow_operation("create_application")
async def create_application(
    session: AsyncSession,
    *,
    applicant_id: UUID,
    profile: Mapping[str, Any],
) -> WorkflowResult[Application]:
    """Start a new application in ``Draft``."""
    application = Application(applicant_id=applicant_id, status=ApplicationStatus.DRAFT)
    errors = _apply_profile(application, profile) or _validate_profile(
        application,
        for_submit=False,
    )
    if errors:
        return fail(WorkflowErrorCode.VALIDATION_ERROR, *errors)
    now = utcnow()
    application.created_at = now
    application.updated_at = now
    session.add(application)
    await session.flush()
    await record_audit(
        session,
        application_id=cast(int, application.id),
        actor_id=applicant_id,
        action="application.created",
        to_status=ApplicationStatus.DRAFT,
    )
    await session.commit()
    await session.refresh(application)
    logger.info(
        "application.created",
        extra={"application_id": application.id, "applicant_id": str(applicant_id)},
    )
    return ok(application)


@workflow_operation("update_application")
async def update_application(
    session: AsyncSession,
    *,
    application_id: int,
    applicant_id: UUID,
    changes: Mapping[str, Any],
) -> WorkflowResult[Application]:
    """Edit profile fields; only the applicant, and only while in ``Draft``."""
    application = await _load(session, application_id, lock=True)
    if application is None:
        return not_found()
    if application.applicant_id != applicant_id:
        return unauthorized()
    if application.status != ApplicationStatus.DRAFT:
        return fail(
            WorkflowErrorCode.INVALID_STATE,
            "Only draft applications can be edited",
        )
    unknown = sorted(set(changes) - PROFILE_FIELDS)
    if unknown:
        return fail(
            WorkflowErrorCode.VALIDATION_ERROR,
            *(f"Unknown application field: {name}" for name in unknown),
        )
    # Validate on a detached copy so a rejected edit leaves the row untouched.
    candidate = Application.model_validate(application.model_dump())
    _apply_profile(candidate, changes)
    errors = _validate_profile(candidate, for_submit=False)
    if errors:
        return fail(WorkflowErrorCode.VALIDATION_ERROR, *errors)
    _apply_profile(application, changes)
    application.updated_at = utcnow()
    session.add(application)
    await session.commit()
    await session.refresh(application)
    return ok(application)


@workflow_operation("delete_application")
async def delete_application(
    session: AsyncSession,
    *,
    application_id: int,
    applicant_id: UUID | None = None,
) -> WorkflowResult[None]:
    """Hard-delete a draft; submitted applications are kept forever."""
    application = await _load(session, application_id, lock=True)
    if application is None:
        return not_found()
    if applicant_id is not None and application.applicant_id != applicant_id:
        return unauthorized()
    if application.status != ApplicationStatus.DRAFT:
        return fail(WorkflowErrorCode.INVALID_STATE, "Only draft applications can be deleted")
    entries = await Comment.objects.filter_by(application_id=application_id).all(session)
    for comment in entries:
        await session.delete(comment)
    for entry in await AuditEntry.objects.filter_by(application_id=application_id).all(session):
        await session.delete(entry)
    await session.delete(application)
    await session.commit()
    logger.info("application.deleted", extra={"application_id": application_id})
    return ok()


async def get_application(
    session: AsyncSession,
    *,
    application_id: int,
) -> WorkflowResult[Application]:
    application = await _load(session, application_id)
    if application is None:
        return not_found()
    return ok(application)


def applications_queryset(
    *,
    status: ApplicationStatus | None = None,
    applicant_id: UUID | None = None,
) -> QuerySet[Application]:
    """Applications newest first, by submission date falling back to creation."""
    queryset = Application.objects.all()
    if status is not None:
        queryset = queryset.filter(col(Application.status) == status)
    if applicant_id is not None:
        queryset = queryset.filter(col(Application.applicant_id) == applicant_id)
    return queryset.order_by(
        func.coalesce(col(Application.submitted_date), col(Application.created_at)).desc(),
        col(Application.id).desc(),
    )


async def list_applications(
    session: AsyncSession,
    *,
    status: ApplicationStatus | None = None,
    applicant_id: UUID | None = None,
) -> list[Application]:
    return await applications_queryset(status=status, applicant_id=applicant_id).all(session)


# Submission and review


@workflow_operation("submit_application")
async def submit_application(
    session: AsyncSession,
    *,
    application_id: int,
    applicant_id: UUID,
    roster: ReviewerRoster = default_roster,
) -> WorkflowResult[Application]:
    """Submit a draft and snapshot the quorum from the current roster."""
    application = await _load(session, application_id, lock=True)
    if application is None:
        return not_found()
    if application.applicant_id != applicant_id:
        return unauthorized()
    if application.status != ApplicationStatus.DRAFT:
        return fail(
            WorkflowErrorCode.INVALID_STATE,
            "Only draft applications can be submitted",
        )
    errors = _validate_profile(application, for_submit=True)
    if errors:
        return fail(WorkflowErrorCode.VALIDATION_ERROR, *errors)

    reviewers = await roster.active_reviewers(session)
    now = utcnow()
    _move(application, ApplicationStatus.SUBMITTED)
    application.votes_required_for_approval = len(reviewers)
    application.submitted_date = now
    application.signed_date = now
    session.add(application)
    await record_audit(
        session,
        application_id=application_id,
        actor_id=applicant_id,
        action="application.submitted",
        from_status=ApplicationStatus.DRAFT,
        to_status=ApplicationStatus.SUBMITTED,
        payload={"votes_required_for_approval": len(reviewers)},
    )
    await session.commit()
    await session.refresh(application)
    logger.info(
        "application.submitted",
        extra={
            "application_id": application_id,
            "votes_required": application.votes_required_for_approval,
        },
    )

    await _notify(
        session,
        application,
        [application.applicant_id],
        notification_type=NotificationType.APPLICATION_SUBMITTED,
        title="Application submitted",
        message=(
            f"Your application #{application_id} has been received and is waiting for review."
        ),
    )
    await _notify(
        session,
        application,
        [reviewer.id for reviewer in reviewers],
        notification_type=NotificationType.NEW_APPLICATION_RECEIVED,
        title="New application received",
        message=f"{application.full_name} submitted application #{application_id}.",
        send_email=False,
    )
    return ok(application)


@workflow_operation("withdraw_application")
async def withdraw_application(
    session: AsyncSession,
    *,
    application_id: int,
    applicant_id: UUID,
    reason: str = "",
) -> WorkflowResult[Application]:
    application = await _load(session, application_id, lock=True)
    if application is None:
        return not_found()
    if application.applicant_id != applicant_id:
        return unauthorized()
    from_status = application.status
    moved = _move(application, ApplicationStatus.WITHDRAWN)
    if not moved:
        return fail(
            WorkflowErrorCode.INVALID_STATE,
            "This application can no longer be withdrawn",
        )
    reason = reason.strip()
    application.decision_message = (
        f"Withdrawn by applicant: {reason}" if reason else "Withdrawn by applicant"
    )
    session.add(application)
    await record_audit(
        session,
        application_id=application_id,
        actor_id=applicant_id,
        action="application.withdrawn",
        from_status=from_status,
        to_status=ApplicationStatus.WITHDRAWN,
        payload={"reason": reason} if reason else None,
    )
    await session.commit()
    await session.refresh(application)
    logger.info("application.withdrawn", extra={"application_id": application_id})
    return ok(application)


@workflow_operation("start_review_process")
async def start_review_process(
    session: AsyncSession,
    *,
    application_id: int,
    actor_id: UUID | None = None,
    roster: ReviewerRoster = default_roster,
) -> WorkflowResult[Application]:
    application = await _load(session, application_id, lock=True)
    if application is None:
        return not_found()
    if application.status != ApplicationStatus.SUBMITTED:
        return fail(
            WorkflowErrorCode.INVALID_STATE,
            "Only submitted applications can be moved into review",
        )
    _move(application, ApplicationStatus.UNDER_REVIEW)
    application.review_started_date = utcnow()
    session.add(application)
    await record_audit(
        session,
        application_id=application_id,
        actor_id=actor_id,
        action="application.review_started",
        from_status=ApplicationStatus.SUBMITTED,
        to_status=ApplicationStatus.UNDER_REVIEW,
    )
    await session.commit()
    await session.refresh(application)
    logger.info("application.review_started", extra={"application_id": application_id})

    await _notify(
        session,
        application,
        [application.applicant_id],
        notification_type=NotificationType.APPLICATION_UNDER_REVIEW,
        title="Application under review",
        message=f"The board has started reviewing your application #{application_id}.",
    )
    await _notify(
        session,
        application,
        await _reviewer_ids(session, roster),
        notification_type=NotificationType.VOTE_REQUIRED,
        title="Your vote is required",
        message=(
            f"Application #{application_id} from {application.full_name} is ready for your review."
        ),
        action_suffix="/review",
    )
    return ok(application)


# Voting


@workflow_operation("cast_vote")
async def cast_vote(
    session: AsyncSession,
    *,
    application_id: int,
    voter_id: UUID,
    decision: VoteDecision,
    reasoning: str,
    confidence_level: int = 3,
    roster: ReviewerRoster = default_roster,
) -> WorkflowResult[Vote]:
    """Record or overwrite the voter's ballot; the first vote opens discussion.

    A concurrent first vote by the same reviewer trips the unique key; the
    whole operation is retried once and then overwrites.
    """
    errors = vote_ledger.validate_ballot(reasoning=reasoning, confidence_level=confidence_level)
    if errors:
        return fail(WorkflowErrorCode.VALIDATION_ERROR, *errors)
    decision = VoteDecision(decision)

    for attempt in (1, 2):
        application = await _load(session, application_id, lock=True)
        if application is None:
            return not_found()
        if application.status not in VOTING_STATUSES:
            return fail(
                WorkflowErrorCode.NOT_OPEN_FOR_VOTING,
                "Application is not open for voting",
            )
        staged = await vote_ledger.stage_vote(
            session,
            application_id=application_id,
            voter_id=voter_id,
            decision=decision,
            reasoning=reasoning.strip(),
            confidence_level=confidence_level,
        )
        if not staged:
            return staged
        from_status = application.status
        if from_status == ApplicationStatus.UNDER_REVIEW:
            _move(application, ApplicationStatus.IN_DISCUSSION)
            session.add(application)
        await record_audit(
            session,
            application_id=application_id,
            actor_id=voter_id,
            action="vote.cast",
            from_status=from_status,
            to_status=application.status,
            payload={"decision": decision.value, "confidence_level": confidence_level},
        )
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            if attempt == 2:
                raise
            logger.info(
                "vote.upsert_conflict",
                extra={"application_id": application_id, "voter_id": str(voter_id)},
            )
            continue
        vote = staged.unwrap()
        break

    await session.refresh(vote)
    await session.refresh(application)
    logger.info(
        "vote.cast",
        extra={
            "application_id": application_id,
            "voter_id": str(voter_id),
            "decision": decision.value,
        },
    )

    votes = await vote_ledger.list_votes(session, application_id=application_id)
    reviewers = await roster.active_reviewers(session)
    summary = compute_voting_summary(
        votes,
        roster=reviewers,
        votes_required=application.votes_required_for_approval,
    )
    if summary.has_sufficient_votes:
        await _notify(
            session,
            application,
            [reviewer.id for reviewer in reviewers],
            notification_type=NotificationType.QUORUM_REACHED,
            title="Quorum reached",
            message=(
                f"Application #{application_id} has {len(votes)} of "
                f"{summary.votes_required} required votes and is ready for a decision."
            ),
            action_suffix="/review",
            send_email=False,
        )
        await session.refresh(vote)
    return ok(vote)


async def get_voting_summary(
    session: AsyncSession,
    *,
    application_id: int,
    roster: ReviewerRoster = default_roster,
) -> WorkflowResult[VotingSummary]:
    application = await _load(session, application_id)
    if application is None:
        return not_found()
    votes = await vote_ledger.list_votes(session, application_id=application_id)
    reviewers = await roster.active_reviewers(session)
    return ok(
        compute_voting_summary(
            votes,
            roster=reviewers,
            votes_required=application.votes_required_for_approval,
        ),
    )


# Information requests


@workflow_operation("request_additional_information")
async def request_additional_information(
    session: AsyncSession,
    *,
    application_id: int,
    requester_id: UUID,
    details: str,
) -> WorkflowResult[Comment]:
    """Park the application in ``NeedsInformation`` with a visible request comment."""
    validated = _validate_decision_text(details, label="Request details")
    if not validated:
        return relay(validated)
    application = await _load(session, application_id, lock=True)
    if application is None:
        return not_found()
    if application.status not in OPEN_REVIEW_STATUSES:
        return fail(
            WorkflowErrorCode.INVALID_STATE,
            "Information can only be requested while the application is in review",
        )
    staged = await comment_store.stage_comment(
        session,
        application_id=application_id,
        author_id=requester_id,
        content=details,
        is_private=False,
        is_information_request=True,
    )
    if not staged:
        return staged
    from_status = application.status
    if from_status != ApplicationStatus.NEEDS_INFORMATION:
        _move(application, ApplicationStatus.NEEDS_INFORMATION)
        session.add(application)
    await record_audit(
        session,
        application_id=application_id,
        actor_id=requester_id,
        action="application.information_requested",
        from_status=from_status,
        to_status=ApplicationStatus.NEEDS_INFORMATION,
    )
    await session.commit()
    comment = staged.unwrap()
    await session.refresh(comment)
    await session.refresh(application)
    logger.info(
        "application.information_requested",
        extra={"application_id": application_id, "comment_id": comment.id},
    )

    await _notify(
        session,
        application,
        [application.applicant_id],
        notification_type=NotificationType.INFORMATION_REQUESTED,
        title="Additional information requested",
        message=(
            f"The board needs more information about application #{application_id}: "
            f"{details.strip()}"
        ),
    )
    await session.refresh(comment)
    return ok(comment)


@workflow_operation("respond_to_information_request")
async def respond_to_information_request(
    session: AsyncSession,
    *,
    application_id: int,
    applicant_id: UUID,
    content: str,
    comment_id: int | None = None,
    roster: ReviewerRoster = default_roster,
) -> WorkflowResult[Comment]:
    """Answer an open request and send the application back to review."""
    application = await _load(session, application_id, lock=True)
    if application is None:
        return not_found()
    if application.applicant_id != applicant_id:
        return unauthorized()
    if application.status != ApplicationStatus.NEEDS_INFORMATION:
        return fail(
            WorkflowErrorCode.INVALID_STATE,
            "No information has been requested for this application",
        )
    if comment_id is not None:
        request = await comment_store.get_comment(session, comment_id)
        if (
            request is None
            or request.is_deleted
            or request.application_id != application_id
            or not request.is_information_request
        ):
            return not_found("Information request")
    else:
        request = await comment_store.latest_open_information_request(
            session,
            application_id=application_id,
        )

    staged = await comment_store.stage_comment(
        session,
        application_id=application_id,
        author_id=applicant_id,
        content=content,
        is_private=False,
        parent_comment_id=request.id if request is not None else None,
    )
    if not staged:
        return staged
    if request is not None:
        request.has_response = True
        request.updated_at = utcnow()
        session.add(request)
    _move(application, ApplicationStatus.UNDER_REVIEW)
    session.add(application)
    await record_audit(
        session,
        application_id=application_id,
        actor_id=applicant_id,
        action="application.information_provided",
        from_status=ApplicationStatus.NEEDS_INFORMATION,
        to_status=ApplicationStatus.UNDER_REVIEW,
    )
    await session.commit()
    reply = staged.unwrap()
    await session.refresh(reply)
    await session.refresh(application)
    logger.info(
        "application.information_provided",
        extra={"application_id": application_id, "comment_id": reply.id},
    )

    await _notify(
        session,
        application,
        await _reviewer_ids(session, roster),
        notification_type=NotificationType.INFORMATION_PROVIDED,
        title="Information provided",
        message=f"The applicant responded to the information request on #{application_id}.",
        action_suffix="/review",
    )
    await session.refresh(reply)
    return ok(reply)


# Decisions


@workflow_operation("process_application_decision")
async def process_application_decision(
    session: AsyncSession,
    *,
    application_id: int,
    decision_maker_id: UUID,
    roster: ReviewerRoster = default_roster,
) -> WorkflowResult[DecisionOutcome]:
    """Compute and record the board's outcome without changing status.

    Approval or rejection is committed separately so an administrator can
    review the computed outcome first.
    """
    application = await _load(session, application_id, lock=True)
    if application is None:
        return not_found()
    if application.status in DECISION_CLOSED_STATUSES:
        return fail(
            WorkflowErrorCode.INVALID_STATE,
            "Decisions can only be processed for a submitted application awaiting a decision",
        )
    votes = await vote_ledger.list_votes(session, application_id=application_id)
    reviewers = await roster.active_reviewers(session)
    summary = compute_voting_summary(
        votes,
        roster=reviewers,
        votes_required=application.votes_required_for_approval,
    )
    outcome = resolve_decision(summary)
    if outcome is None:
        return fail(
            WorkflowErrorCode.INSUFFICIENT_VOTES,
            "Not all board members have voted yet",
        )
    application.final_decision = outcome
    application.decision_date = utcnow()
    application.decision_made_by_id = decision_maker_id
    application.updated_at = utcnow()
    session.add(application)
    await record_audit(
        session,
        application_id=application_id,
        actor_id=decision_maker_id,
        action="application.decision_processed",
        payload={
            "outcome": outcome.value,
            "approval_votes": summary.approval_votes,
            "rejection_votes": summary.rejection_votes,
        },
    )
    await session.commit()
    await session.refresh(application)
    logger.info(
        "application.decision_processed",
        extra={"application_id": application_id, "outcome": outcome.value},
    )
    return ok(outcome)


async def _close_with_decision(
    session: AsyncSession,
    application: Application,
    application_id: int,
    *,
    target: ApplicationStatus,
    outcome: DecisionOutcome,
    actor_id: UUID,
    message: str | None,
    payload: dict[str, object] | None = None,
) -> WorkflowResult[None]:
    """Stage a terminal decision and freeze every ballot in the same transaction."""
    from_status = application.status
    moved = _move(application, target)
    if not moved:
        return moved
    now = utcnow()
    application.final_decision = outcome
    application.decision_date = now
    application.decision_made_by_id = actor_id
    application.decision_message = message
    session.add(application)
    locked = await vote_ledger.lock_votes(session, application_id=application_id)
    await record_audit(
        session,
        application_id=application_id,
        actor_id=actor_id,
        action=f"application.{target.value}",
        from_status=from_status,
        to_status=target,
        payload={"locked_votes": locked, **(payload or {})},
    )
    await session.commit()
    await session.refresh(application)
    return ok()


@workflow_operation("approve_application")
async def approve_application(
    session: AsyncSession,
    *,
    application_id: int,
    approver_id: UUID,
    approved_amount: Decimal | None = None,
    sponsor_id: UUID | None = None,
    message: str | None = None,
) -> WorkflowResult[Application]:
    application = await _load(session, application_id, lock=True)
    if application is None:
        return not_found()
    allowed = check_transition(application.status, ApplicationStatus.APPROVED)
    if not allowed:
        return relay(allowed)
    if approved_amount is not None and Decimal(approved_amount) < 0:
        return fail(WorkflowErrorCode.VALIDATION_ERROR, "Approved amount cannot be negative")
    if sponsor_id is not None and await User.objects.by_id(sponsor_id).first(session) is None:
        return not_found("Sponsor")
    if approved_amount is not None:
        application.approved_monthly_amount = approved_amount
    if sponsor_id is not None:
        application.assigned_sponsor_id = sponsor_id
    closed = await _close_with_decision(
        session,
        application,
        application_id,
        target=ApplicationStatus.APPROVED,
        outcome=DecisionOutcome.APPROVED,
        actor_id=approver_id,
        message=message,
        payload={"sponsor_id": str(sponsor_id)} if sponsor_id else None,
    )
    if not closed:
        return relay(closed)
    logger.info("application.approved", extra={"application_id": application_id})

    await _notify(
        session,
        application,
        [application.applicant_id],
        notification_type=NotificationType.APPLICATION_APPROVED,
        title="Application approved",
        message=message or f"Congratulations! Your application #{application_id} was approved.",
    )
    if application.assigned_sponsor_id is not None:
        await _notify(
            session,
            application,
            [application.assigned_sponsor_id],
            notification_type=NotificationType.SPONSOR_ASSIGNED,
            title="You have been assigned as sponsor",
            message=f"You are now the sponsor for {application.full_name} (#{application_id}).",
        )
    return ok(application)


@workflow_operation("reject_application")
async def reject_application(
    session: AsyncSession,
    *,
    application_id: int,
    rejector_id: UUID,
    reason: str,
) -> WorkflowResult[Application]:
    validated = _validate_decision_text(reason, label="Rejection reason")
    if not validated:
        return relay(validated)
    application = await _load(session, application_id, lock=True)
    if application is None:
        return not_found()
    closed = await _close_with_decision(
        session,
        application,
        application_id,
        target=ApplicationStatus.REJECTED,
        outcome=DecisionOutcome.REJECTED,
        actor_id=rejector_id,
        message=reason.strip(),
    )
    if not closed:
        return relay(closed)
    logger.info("application.rejected", extra={"application_id": application_id})

    await _notify(
        session,
        application,
        [application.applicant_id],
        notification_type=NotificationType.APPLICATION_REJECTED,
        title="Application decision",
        message=(
            f"After careful review your application #{application_id} was not approved. "
            f"{reason.strip()}"
        ),
    )
    return ok(application)


# Program


@workflow_operation("start_program")
async def start_program(
    session: AsyncSession,
    *,
    application_id: int,
    start_date: datetime | None = None,
    duration_months: int | None = None,
    actor_id: UUID | None = None,
) -> WorkflowResult[Application]:
    application = await _load(session, application_id, lock=True)
    if application is None:
        return not_found()
    if application.status != ApplicationStatus.APPROVED:
        return fail(
            WorkflowErrorCode.INVALID_STATE,
            "Only approved applications can start a program",
        )
    months = duration_months if duration_months is not None else (
        settings.default_program_duration_months
    )
    if months < 1:
        return fail(WorkflowErrorCode.VALIDATION_ERROR, "Program duration must be positive")
    start = start_date or utcnow()
    _move(application, ApplicationStatus.ACTIVE)
    application.program_start_date = start
    application.program_end_date = add_months(start, months)
    session.add(application)
    await record_audit(
        session,
        application_id=application_id,
        actor_id=actor_id,
        action="application.program_started",
        from_status=ApplicationStatus.APPROVED,
        to_status=ApplicationStatus.ACTIVE,
        payload={"duration_months": months},
    )
    await session.commit()
    await session.refresh(application)
    logger.info("application.program_started", extra={"application_id": application_id})

    await _notify(
        session,
        application,
        [application.applicant_id, application.assigned_sponsor_id],
        notification_type=NotificationType.PROGRAM_STARTING,
        title="Program starting",
        message=(
            f"The program for application #{application_id} starts on "
            f"{start:%Y-%m-%d} and runs for {months} months."
        ),
    )
    return ok(application)


@workflow_operation("complete_program")
async def complete_program(
    session: AsyncSession,
    *,
    application_id: int,
    actor_id: UUID | None = None,
) -> WorkflowResult[Application]:
    """Administrative closure; allowed from any status but ``Completed``."""
    application = await _load(session, application_id, lock=True)
    if application is None:
        return not_found()
    from_status = application.status
    moved = _move(application, ApplicationStatus.COMPLETED)
    if not moved:
        return relay(moved)
    session.add(application)
    await record_audit(
        session,
        application_id=application_id,
        actor_id=actor_id,
        action="application.completed",
        from_status=from_status,
        to_status=ApplicationStatus.COMPLETED,
    )
    await session.commit()
    await session.refresh(application)
    logger.info("application.completed", extra={"application_id": application_id})

    await _notify(
        session,
        application,
        [application.applicant_id],
        notification_type=NotificationType.PROGRAM_COMPLETED,
        title="Program completed",
        message=f"The program for application #{application_id} is complete.",
    )
    return ok(application)


async def applications_needing_review(
    session: AsyncSession,
    *,
    reviewer_id: UUID,
) -> list[Application]:
    """Open-review applications the reviewer has not voted on, oldest first."""
    voted = {
        vote.application_id
        for vote in await Vote.objects.filter_by(voter_id=reviewer_id).all(session)
    }
    open_applications = await (
        Application.objects.filter(col(Application.status).in_(OPEN_REVIEW_STATUSES))
        .order_by(col(Application.submitted_date).asc(), col(Application.id).asc())
        .all(session)
    )
    return [application for application in open_applications if application.id not in voted]


async def remind_stale_reviews(
    session: AsyncSession,
    *,
    days: int | None = None,
    roster: ReviewerRoster = default_roster,
) -> int:
    """Nudge reviewers who have not voted on applications waiting too long.

    A reviewer is reminded at most once per application while an earlier
    reminder is still unexpired. Returns the number of reminders stored.
    """
    reviewers = await roster.active_reviewers(session)
    if not reviewers:
        return 0
    sent = 0
    for application in await applications_expiring_soon(session, days=days):
        application_id = cast(int, application.id)
        votes = await vote_ledger.list_votes(session, application_id=application_id)
        voted = {vote.voter_id for vote in votes}
        reminded = {
            notification.recipient_id
            for notification in await Notification.objects.filter_by(
                application_id=application_id,
                notification_type=NotificationType.APPLICATION_EXPIRING_SOON,
            ).all(session)
            if not notification.is_expired
        }
        recipients = [
            reviewer.id
            for reviewer in reviewers
            if reviewer.id not in voted and reviewer.id not in reminded
        ]
        if not recipients:
            continue
        sent += await notify_many(
            session,
            recipients,
            notification_type=NotificationType.APPLICATION_EXPIRING_SOON,
            title="Review waiting on your vote",
            message=(
                f"Application #{application_id} from {application.full_name} has been "
                "waiting for review and still needs your vote."
            ),
            application_id=application_id,
            action_url=application_url(application_id, "/review"),
            send_email=True,
        )
    if sent:
        logger.info("application.review_reminders_sent", extra={"count": sent})
    return sent
