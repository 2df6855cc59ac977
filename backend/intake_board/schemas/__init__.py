"""Public schema exports shared across API route modules."""

from intake_board.schemas.applications import (
    ApplicationCreate,
    ApplicationRead,
    ApplicationUpdate,
)
from intake_board.schemas.comments import CommentCreate, CommentRead, CommentUpdate
from intake_board.schemas.notifications import NotificationRead
from intake_board.schemas.users import UserCreate, UserRead
from intake_board.schemas.votes import VoteCreate, VoteRead, VotingSummaryRead

__all__ = [
    "ApplicationCreate",
    "ApplicationRead",
    "ApplicationUpdate",
    "CommentCreate",
    "CommentRead",
    "CommentUpdate",
    "NotificationRead",
    "UserCreate",
    "UserRead",
    "VoteCreate",
    "VoteRead",
    "VotingSummaryRead",
]
