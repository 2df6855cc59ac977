"""Structured error payload schemas used by API responses."""

from __future__ import annotations

from pydantic import Field
from sqlmodel import SQLModel

from intake_board.services.results import WorkflowErrorCode


class WorkflowErrorDetail(SQLModel):
    """Why a workflow operation was refused."""

    code: WorkflowErrorCode = Field(
        description="Machine-readable failure category.",
        examples=["invalid_state"],
    )
    errors: list[str] = Field(
        default_factory=list,
        description="Human-readable reasons suitable for redisplay.",
        examples=[["Only draft applications can be deleted"]],
    )


class WorkflowErrorResponse(SQLModel):
    """Error envelope returned for refused workflow operations."""

    detail: WorkflowErrorDetail
    request_id: str | None = Field(
        default=None,
        description="Request correlation identifier injected by middleware.",
    )
