"""Model exports for SQLAlchemy/SQLModel metadata discovery."""

from intake_board.models.applications import Application, ApplicationStatus, DecisionOutcome
from intake_board.models.audit_entries import AuditEntry
from intake_board.models.comments import Comment
from intake_board.models.notifications import Notification, NotificationType
from intake_board.models.users import User, UserRole
from intake_board.models.votes import Vote, VoteDecision

__all__ = [
    "Application",
    "ApplicationStatus",
    "AuditEntry",
    "Comment",
    "DecisionOutcome",
    "Notification",
    "NotificationType",
    "User",
    "UserRole",
    "Vote",
    "VoteDecision",
]
