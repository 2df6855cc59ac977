"""Application status transition table.

Every status change made by the workflow engine is validated here; there are
no other status guards.
"""

from __future__ import annotations

from intake_board.models.applications import ApplicationStatus
from intake_board.services.results import WorkflowErrorCode, WorkflowResult, fail, ok

_S = ApplicationStatus

# Completion is an administrative closure reachable from every other status.
ALLOWED_TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    _S.DRAFT: frozenset({_S.SUBMITTED, _S.WITHDRAWN}),
    _S.SUBMITTED: frozenset({_S.UNDER_REVIEW, _S.WITHDRAWN}),
    _S.UNDER_REVIEW: frozenset(
        {_S.IN_DISCUSSION, _S.NEEDS_INFORMATION, _S.APPROVED, _S.REJECTED, _S.WITHDRAWN},
    ),
    _S.IN_DISCUSSION: frozenset(
        {_S.NEEDS_INFORMATION, _S.APPROVED, _S.REJECTED, _S.WITHDRAWN},
    ),
    _S.NEEDS_INFORMATION: frozenset(
        {_S.UNDER_REVIEW, _S.APPROVED, _S.REJECTED, _S.WITHDRAWN},
    ),
    _S.APPROVED: frozenset({_S.ACTIVE}),
    _S.REJECTED: frozenset(),
    _S.ACTIVE: frozenset(),
    _S.WITHDRAWN: frozenset(),
    _S.COMPLETED: frozenset(),
}
ADMINISTRATIVE_TARGETS = frozenset({_S.COMPLETED})

TERMINAL_DECISION_STATUSES = frozenset({_S.APPROVED, _S.REJECTED})
WITHDRAWABLE_STATUSES = frozenset(
    src for src, targets in ALLOWED_TRANSITIONS.items() if _S.WITHDRAWN in targets
)

_STATUS_LABELS: dict[ApplicationStatus, str] = {
    _S.DRAFT: "draft",
    _S.SUBMITTED: "submitted",
    _S.UNDER_REVIEW: "under review",
    _S.IN_DISCUSSION: "in discussion",
    _S.NEEDS_INFORMATION: "awaiting information",
    _S.APPROVED: "approved",
    _S.REJECTED: "rejected",
    _S.ACTIVE: "active",
    _S.COMPLETED: "completed",
    _S.WITHDRAWN: "withdrawn",
}


def status_label(status: ApplicationStatus) -> str:
    return _STATUS_LABELS[ApplicationStatus(status)]


def can_transition(src: ApplicationStatus, dst: ApplicationStatus) -> bool:
    """Return whether ``src -> dst`` is an edge of the lifecycle."""
    src = ApplicationStatus(src)
    dst = ApplicationStatus(dst)
    if dst in ADMINISTRATIVE_TARGETS:
        return src != dst
    return dst in ALLOWED_TRANSITIONS[src]


def check_transition(
    src: ApplicationStatus,
    dst: ApplicationStatus,
    *,
    message: str | None = None,
) -> WorkflowResult[None]:
    """Validate a transition, returning an ``invalid_state`` failure if illegal."""
    if can_transition(src, dst):
        return ok()
    return fail(
        WorkflowErrorCode.INVALID_STATE,
        message
        or f"Cannot move an application from {status_label(src)} to {status_label(dst)}",
    )
