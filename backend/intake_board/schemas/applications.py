"""Application payloads and workflow action requests."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import Field
from sqlmodel import SQLModel

from intake_board.models.applications import ApplicationStatus, DecisionOutcome

RUNTIME_ANNOTATION_TYPES = (datetime, Decimal, UUID)


class ApplicationProfile(SQLModel):
    """Applicant-supplied profile; opaque to the review workflow."""

    first_name: str = Field(examples=["Jordan"])
    last_name: str = Field(examples=["Rivera"])
    email: str = Field(examples=["jordan@example.com"])
    phone_number: str = ""
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    occupation: str | None = None
    date_of_birth: datetime | None = None
    funding_types_requested: list[str] = Field(
        default_factory=list,
        examples=[["gym_membership", "nutrition"]],
    )
    estimated_monthly_cost: Decimal | None = Field(default=None, examples=["150.00"])
    program_duration_months: int = Field(default=12, examples=[12])
    funding_details: str | None = None
    personal_statement: str = ""
    expected_benefits: str = ""
    commitment_statement: str = ""
    concerns_obstacles: str | None = None
    signature: str | None = None


class ApplicationCreate(ApplicationProfile):
    """Payload used to open a new draft."""


class ApplicationUpdate(SQLModel):
    """Partial draft edit; only fields that are sent are changed."""

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    occupation: str | None = None
    date_of_birth: datetime | None = None
    funding_types_requested: list[str] | None = None
    estimated_monthly_cost: Decimal | None = None
    program_duration_months: int | None = None
    funding_details: str | None = None
    personal_statement: str | None = None
    expected_benefits: str | None = None
    commitment_statement: str | None = None
    concerns_obstacles: str | None = None
    signature: str | None = None


class ApplicationRead(ApplicationProfile):
    id: int
    applicant_id: UUID
    status: ApplicationStatus
    votes_required_for_approval: int
    signed_date: datetime | None = None
    submitted_date: datetime | None = None
    review_started_date: datetime | None = None
    decision_date: datetime | None = None
    final_decision: DecisionOutcome | None = None
    decision_message: str | None = None
    decision_made_by_id: UUID | None = None
    assigned_sponsor_id: UUID | None = None
    approved_monthly_amount: Decimal | None = None
    program_start_date: datetime | None = None
    program_end_date: datetime | None = None
    created_at: datetime
    updated_at: datetime


class WithdrawRequest(SQLModel):
    reason: str = Field(default="", examples=["Moving out of the area."])


class InformationRequestCreate(SQLModel):
    """Reviewer's request for more detail from the applicant."""

    details: str = Field(examples=["Please describe your current activity level in more detail."])


class InformationResponseCreate(SQLModel):
    """Applicant's answer; defaults to the latest open request."""

    content: str
    comment_id: int | None = Field(
        default=None,
        description="Information-request comment being answered.",
    )


class ApproveRequest(SQLModel):
    approved_amount: Decimal | None = Field(default=None, examples=["125.00"])
    sponsor_id: UUID | None = None
    message: str | None = None


class RejectRequest(SQLModel):
    reason: str = Field(examples=["The requested program is outside our funding guidelines."])


class StartProgramRequest(SQLModel):
    start_date: datetime | None = Field(
        default=None,
        description="Defaults to now.",
    )
    duration_months: int | None = Field(
        default=None,
        description="Defaults to the configured program length.",
        examples=[12],
    )


class DecisionRead(SQLModel):
    """Outcome computed from the ballots; status is unchanged."""

    application_id: int
    outcome: DecisionOutcome


class AuditEntryRead(SQLModel):
    id: UUID
    application_id: int
    actor_id: UUID | None = None
    action: str
    from_status: str | None = None
    to_status: str | None = None
    payload: dict[str, object] | None = None
    created_at: datetime
