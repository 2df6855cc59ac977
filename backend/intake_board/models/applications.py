"""Funding application model and its lifecycle enums."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, Column
from sqlmodel import Field

from intake_board.core.time import utcnow
from intake_board.models.base import QueryModel, enum_column

RUNTIME_ANNOTATION_TYPES = (datetime, Decimal)


class ApplicationStatus(str, Enum):
    """Lifecycle status of an application."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    IN_DISCUSSION = "in_discussion"
    NEEDS_INFORMATION = "needs_information"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACTIVE = "active"
    COMPLETED = "completed"
    WITHDRAWN = "withdrawn"


class DecisionOutcome(str, Enum):
    """Outcome computed from the board's ballots."""

    APPROVED = "approved"
    REJECTED = "rejected"
    NEEDS_MORE_INFORMATION = "needs_more_information"
    DEFERRED = "deferred"


OPEN_REVIEW_STATUSES = frozenset(
    {
        ApplicationStatus.UNDER_REVIEW,
        ApplicationStatus.IN_DISCUSSION,
        ApplicationStatus.NEEDS_INFORMATION,
    },
)
VOTING_STATUSES = frozenset({ApplicationStatus.UNDER_REVIEW, ApplicationStatus.IN_DISCUSSION})


class Application(QueryModel, table=True):
    """Applicant's request for program funding, reviewed by the board."""

    __tablename__ = "applications"  # pyright: ignore[reportAssignmentType]

    id: int | None = Field(default=None, primary_key=True)
    applicant_id: UUID = Field(foreign_key="users.id", index=True)
    status: ApplicationStatus = Field(
        default=ApplicationStatus.DRAFT,
        sa_column=enum_column(ApplicationStatus, index=True),
    )

    # Profile fields are opaque to the workflow.
    first_name: str = Field(default="")
    last_name: str = Field(default="")
    email: str = Field(default="")
    phone_number: str = Field(default="")
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    occupation: str | None = None
    date_of_birth: datetime | None = None
    funding_types_requested: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    estimated_monthly_cost: Decimal | None = Field(default=None, max_digits=10, decimal_places=2)
    program_duration_months: int = Field(default=12)
    funding_details: str | None = None
    personal_statement: str = Field(default="")
    expected_benefits: str = Field(default="")
    commitment_statement: str = Field(default="")
    concerns_obstacles: str | None = None
    signature: str | None = None
    signed_date: datetime | None = None

    # Review & decision. Quorum is fixed at submission time.
    votes_required_for_approval: int = Field(default=0)
    submitted_date: datetime | None = Field(default=None, index=True)
    review_started_date: datetime | None = None
    decision_date: datetime | None = None
    final_decision: DecisionOutcome | None = Field(
        default=None,
        sa_column=enum_column(DecisionOutcome, nullable=True),
    )
    decision_message: str | None = None
    decision_made_by_id: UUID | None = Field(default=None, foreign_key="users.id")

    # Post-approval
    assigned_sponsor_id: UUID | None = Field(default=None, foreign_key="users.id", index=True)
    approved_monthly_amount: Decimal | None = Field(default=None, max_digits=10, decimal_places=2)
    program_start_date: datetime | None = None
    program_end_date: datetime | None = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_open_for_voting(self) -> bool:
        return self.status in VOTING_STATUSES
