"""Structured outcomes returned by workflow operations.

Business-rule failures (wrong status, wrong caller, missing quorum, bad input)
are expected results, not exceptions. Callers branch on ``code`` and show
``errors`` to the user.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class WorkflowErrorCode(str, Enum):
    """Taxonomy of expected workflow failures."""

    INVALID_STATE = "invalid_state"
    UNAUTHORIZED = "unauthorized"
    NOT_OPEN_FOR_VOTING = "not_open_for_voting"
    INSUFFICIENT_VOTES = "insufficient_votes"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass(frozen=True)
class WorkflowResult(Generic[T]):
    """Success flag plus either a value or human-readable failure reasons."""

    succeeded: bool
    value: T | None = None
    code: WorkflowErrorCode | None = None
    errors: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.succeeded

    def unwrap(self) -> T:
        """Return the value of a successful result carrying one."""
        if not self.succeeded or self.value is None:
            raise ValueError(f"No value on workflow result: {self.code} {self.errors}")
        return self.value


def ok(value: T | None = None) -> WorkflowResult[T]:
    return WorkflowResult(succeeded=True, value=value)


def fail(code: WorkflowErrorCode, *errors: str) -> WorkflowResult[T]:
    return WorkflowResult(succeeded=False, code=code, errors=list(errors))


def not_found(entity: str = "Application") -> WorkflowResult[T]:
    return fail(WorkflowErrorCode.NOT_FOUND, f"{entity} not found")


def unauthorized() -> WorkflowResult[T]:
    return fail(WorkflowErrorCode.UNAUTHORIZED, "Unauthorized")


def check_length(
    value: str | None,
    *,
    label: str,
    min_length: int,
    max_length: int,
) -> str | None:
    """Return a validation message when ``value`` is outside the allowed length."""
    length = len((value or "").strip())
    if length < min_length:
        return f"{label} must be at least {min_length} characters"
    if length > max_length:
        return f"{label} must be at most {max_length} characters"
    return None


def relay(result: WorkflowResult[object]) -> WorkflowResult[T]:
    """Re-type a failed result so it can be returned from another operation."""
    return WorkflowResult(
        succeeded=False,
        code=result.code or WorkflowErrorCode.UNEXPECTED_ERROR,
        errors=list(result.errors),
    )
