"""Application lifecycle endpoints: drafting, review transitions, and decisions."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Query
from fastapi_pagination.limit_offset import LimitOffsetPage

from intake_board.api.deps import (
    ACTOR_DEP,
    ADMIN_DEP,
    REVIEWER_DEP,
    ROSTER_DEP,
    SESSION_DEP,
    is_reviewer,
)
from intake_board.core.error_handling import fail_http, raise_for_result
from intake_board.db.pagination import paginate
from intake_board.models.applications import Application, ApplicationStatus
from intake_board.schemas.applications import (
    ApplicationCreate,
    ApplicationRead,
    ApplicationUpdate,
    ApproveRequest,
    AuditEntryRead,
    DecisionRead,
    InformationRequestCreate,
    InformationResponseCreate,
    RejectRequest,
    StartProgramRequest,
    WithdrawRequest,
)
from intake_board.schemas.comments import CommentRead
from intake_board.schemas.common import OkResponse
from intake_board.services import applications as engine
from intake_board.services.audit import list_audit_entries
from intake_board.services.results import WorkflowErrorCode, WorkflowResult
from intake_board.services.statistics import applications_expiring_soon

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from intake_board.models.users import User
    from intake_board.services.roster import ReviewerRoster

router = APIRouter(prefix="/applications", tags=["applications"])


def _read(result: WorkflowResult[Application]) -> ApplicationRead:
    raise_for_result(result)
    return ApplicationRead.model_validate(result.unwrap(), from_attributes=True)


async def load_visible_application(
    session: AsyncSession,
    *,
    application_id: int,
    actor: User,
) -> Application:
    """Reviewers see every application; applicants only their own."""
    result = await engine.get_application(session, application_id=application_id)
    raise_for_result(result)
    application = result.unwrap()
    if not is_reviewer(actor) and application.applicant_id != actor.id:
        fail_http(WorkflowErrorCode.NOT_FOUND, "Application not found")
    return application


@router.post("", response_model=ApplicationRead)
async def create_application(
    payload: ApplicationCreate,
    session: AsyncSession = SESSION_DEP,
    actor: User = ACTOR_DEP,
) -> ApplicationRead:
    """Open a new draft owned by the caller."""
    result = await engine.create_application(
        session,
        applicant_id=actor.id,
        profile=payload.model_dump(),
    )
    return _read(result)


@router.get("", response_model=LimitOffsetPage[ApplicationRead])
async def list_applications(
    session: AsyncSession = SESSION_DEP,
    actor: User = ACTOR_DEP,
    application_status: ApplicationStatus | None = Query(default=None, alias="status"),
) -> LimitOffsetPage[ApplicationRead]:
    """Reviewers list everything; applicants list their own applications."""
    queryset = engine.applications_queryset(
        status=application_status,
        applicant_id=None if is_reviewer(actor) else actor.id,
    )

    def _transform(items: Sequence[Any]) -> Sequence[Any]:
        return [ApplicationRead.model_validate(item, from_attributes=True) for item in items]

    return await paginate(session, queryset.statement, transformer=_transform)


@router.get("/needing-review", response_model=list[ApplicationRead])
async def list_needing_review(
    session: AsyncSession = SESSION_DEP,
    reviewer: User = REVIEWER_DEP,
) -> list[ApplicationRead]:
    applications = await engine.applications_needing_review(session, reviewer_id=reviewer.id)
    return [ApplicationRead.model_validate(item, from_attributes=True) for item in applications]


@router.get("/expiring", response_model=list[ApplicationRead])
async def list_expiring(
    session: AsyncSession = SESSION_DEP,
    _reviewer: User = REVIEWER_DEP,
    days: int | None = Query(default=None, ge=0),
) -> list[ApplicationRead]:
    """Open reviews that have been waiting longer than ``days``."""
    applications = await applications_expiring_soon(session, days=days)
    return [ApplicationRead.model_validate(item, from_attributes=True) for item in applications]


@router.get("/{application_id}", response_model=ApplicationRead)
async def get_application(
    application_id: int,
    session: AsyncSession = SESSION_DEP,
    actor: User = ACTOR_DEP,
) -> ApplicationRead:
    application = await load_visible_application(
        session,
        application_id=application_id,
        actor=actor,
    )
    return ApplicationRead.model_validate(application, from_attributes=True)


@router.patch("/{application_id}", response_model=ApplicationRead)
async def update_application(
    application_id: int,
    payload: ApplicationUpdate,
    session: AsyncSession = SESSION_DEP,
    actor: User = ACTOR_DEP,
) -> ApplicationRead:
    result = await engine.update_application(
        session,
        application_id=application_id,
        applicant_id=actor.id,
        changes=payload.model_dump(exclude_unset=True),
    )
    return _read(result)


@router.delete("/{application_id}", response_model=OkResponse)
async def delete_application(
    application_id: int,
    session: AsyncSession = SESSION_DEP,
    actor: User = ACTOR_DEP,
) -> OkResponse:
    result = await engine.delete_application(
        session,
        application_id=application_id,
        applicant_id=actor.id,
    )
    raise_for_result(result)
    return OkResponse()


@router.post("/{application_id}/submit", response_model=ApplicationRead)
async def submit_application(
    application_id: int,
    session: AsyncSession = SESSION_DEP,
    actor: User = ACTOR_DEP,
    roster: ReviewerRoster = ROSTER_DEP,
) -> ApplicationRead:
    result = await engine.submit_application(
        session,
        application_id=application_id,
        applicant_id=actor.id,
        roster=roster,
    )
    return _read(result)


@router.post("/{application_id}/withdraw", response_model=ApplicationRead)
async def withdraw_application(
    application_id: int,
    payload: WithdrawRequest,
    session: AsyncSession = SESSION_DEP,
    actor: User = ACTOR_DEP,
) -> ApplicationRead:
    result = await engine.withdraw_application(
        session,
        application_id=application_id,
        applicant_id=actor.id,
        reason=payload.reason,
    )
    return _read(result)


@router.post("/{application_id}/start-review", response_model=ApplicationRead)
async def start_review(
    application_id: int,
    session: AsyncSession = SESSION_DEP,
    reviewer: User = REVIEWER_DEP,
    roster: ReviewerRoster = ROSTER_DEP,
) -> ApplicationRead:
    result = await engine.start_review_process(
        session,
        application_id=application_id,
        actor_id=reviewer.id,
        roster=roster,
    )
    return _read(result)


@router.post("/{application_id}/request-information", response_model=CommentRead)
async def request_information(
    application_id: int,
    payload: InformationRequestCreate,
    session: AsyncSession = SESSION_DEP,
    reviewer: User = REVIEWER_DEP,
) -> CommentRead:
    result = await engine.request_additional_information(
        session,
        application_id=application_id,
        requester_id=reviewer.id,
        details=payload.details,
    )
    raise_for_result(result)
    return CommentRead.model_validate(result.unwrap(), from_attributes=True)


@router.post("/{application_id}/respond", response_model=CommentRead)
async def respond_to_information_request(
    application_id: int,
    payload: InformationResponseCreate,
    session: AsyncSession = SESSION_DEP,
    actor: User = ACTOR_DEP,
    roster: ReviewerRoster = ROSTER_DEP,
) -> CommentRead:
    result = await engine.respond_to_information_request(
        session,
        application_id=application_id,
        applicant_id=actor.id,
        content=payload.content,
        comment_id=payload.comment_id,
        roster=roster,
    )
    raise_for_result(result)
    return CommentRead.model_validate(result.unwrap(), from_attributes=True)


@router.post("/{application_id}/decision", response_model=DecisionRead)
async def process_decision(
    application_id: int,
    session: AsyncSession = SESSION_DEP,
    admin: User = ADMIN_DEP,
    roster: ReviewerRoster = ROSTER_DEP,
) -> DecisionRead:
    """Compute and record the outcome; approval or rejection is a separate call."""
    result = await engine.process_application_decision(
        session,
        application_id=application_id,
        decision_maker_id=admin.id,
        roster=roster,
    )
    raise_for_result(result)
    return DecisionRead(application_id=application_id, outcome=result.unwrap())


@router.post("/{application_id}/approve", response_model=ApplicationRead)
async def approve_application(
    application_id: int,
    payload: ApproveRequest,
    session: AsyncSession = SESSION_DEP,
    admin: User = ADMIN_DEP,
) -> ApplicationRead:
    result = await engine.approve_application(
        session,
        application_id=application_id,
        approver_id=admin.id,
        approved_amount=payload.approved_amount,
        sponsor_id=payload.sponsor_id,
        message=payload.message,
    )
    return _read(result)


@router.post("/{application_id}/reject", response_model=ApplicationRead)
async def reject_application(
    application_id: int,
    payload: RejectRequest,
    session: AsyncSession = SESSION_DEP,
    admin: User = ADMIN_DEP,
) -> ApplicationRead:
    result = await engine.reject_application(
        session,
        application_id=application_id,
        rejector_id=admin.id,
        reason=payload.reason,
    )
    return _read(result)


@router.post("/{application_id}/start-program", response_model=ApplicationRead)
async def start_program(
    application_id: int,
    payload: StartProgramRequest,
    session: AsyncSession = SESSION_DEP,
    admin: User = ADMIN_DEP,
) -> ApplicationRead:
    result = await engine.start_program(
        session,
        application_id=application_id,
        start_date=payload.start_date,
        duration_months=payload.duration_months,
        actor_id=admin.id,
    )
    return _read(result)


@router.post("/{application_id}/complete-program", response_model=ApplicationRead)
async def complete_program(
    application_id: int,
    session: AsyncSession = SESSION_DEP,
    admin: User = ADMIN_DEP,
) -> ApplicationRead:
    result = await engine.complete_program(
        session,
        application_id=application_id,
        actor_id=admin.id,
    )
    return _read(result)


@router.get("/{application_id}/events", response_model=list[AuditEntryRead])
async def list_application_events(
    application_id: int,
    session: AsyncSession = SESSION_DEP,
    _reviewer: User = REVIEWER_DEP,
) -> list[AuditEntryRead]:
    """Audit trail of workflow actions, oldest first."""
    entries = await list_audit_entries(session, application_id=application_id)
    return [AuditEntryRead.model_validate(entry, from_attributes=True) for entry in entries]
