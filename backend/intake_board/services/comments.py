"""Comment thread store: soft-deletable discussion entries with replies.

Threads are resolved from the flat list by parent id, so any nesting depth is
representable without the rows pointing at each other.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlmodel import col

from intake_board.core.logging import get_logger
from intake_board.core.time import utcnow
from intake_board.models.applications import Application
from intake_board.models.comments import Comment
from intake_board.models.notifications import NotificationType
from intake_board.services.notifications import application_url, notify_many
from intake_board.services.results import (
    WorkflowErrorCode,
    WorkflowResult,
    check_length,
    fail,
    not_found,
    ok,
)
from intake_board.services.roster import ReviewerRoster, default_roster

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

logger = get_logger(__name__)

CONTENT_MIN_LENGTH = 5
CONTENT_MAX_LENGTH = 5000


@dataclass
class CommentThread:
    comment: Comment
    replies: list[CommentThread] = field(default_factory=list)


def validate_content(content: str) -> str | None:
    return check_length(
        content,
        label="Comment",
        min_length=CONTENT_MIN_LENGTH,
        max_length=CONTENT_MAX_LENGTH,
    )


async def get_comment(session: AsyncSession, comment_id: int) -> Comment | None:
    return await Comment.objects.by_id(comment_id).first(session)


async def stage_comment(
    session: AsyncSession,
    *,
    application_id: int,
    author_id: UUID,
    content: str,
    is_private: bool = True,
    is_information_request: bool = False,
    parent_comment_id: int | None = None,
) -> WorkflowResult[Comment]:
    """Validate and add a comment to the session without committing."""
    message = validate_content(content)
    if message:
        return fail(WorkflowErrorCode.VALIDATION_ERROR, message)
    if parent_comment_id is not None:
        parent = await get_comment(session, parent_comment_id)
        if parent is None or parent.is_deleted or parent.application_id != application_id:
            return not_found("Parent comment")

    comment = Comment(
        application_id=application_id,
        author_id=author_id,
        content=content.strip(),
        is_private=is_private,
        is_information_request=is_information_request,
        parent_comment_id=parent_comment_id,
        created_at=utcnow(),
    )
    session.add(comment)
    return ok(comment)


async def add_comment(
    session: AsyncSession,
    *,
    application_id: int,
    author_id: UUID,
    content: str,
    is_private: bool = True,
    is_information_request: bool = False,
    parent_comment_id: int | None = None,
    roster: ReviewerRoster = default_roster,
) -> WorkflowResult[Comment]:
    """Add a comment; shared comments notify the other active reviewers."""
    application = await Application.objects.by_id(application_id).first(session)
    if application is None:
        return not_found()
    result = await stage_comment(
        session,
        application_id=application_id,
        author_id=author_id,
        content=content,
        is_private=is_private,
        is_information_request=is_information_request,
        parent_comment_id=parent_comment_id,
    )
    if not result:
        return result
    comment = result.unwrap()
    await session.commit()
    await session.refresh(comment)
    logger.info(
        "comment.added",
        extra={
            "comment_id": comment.id,
            "application_id": application_id,
            "is_private": is_private,
            "is_information_request": is_information_request,
        },
    )

    if not is_private or is_information_request:
        reviewers = await roster.active_reviewers(session)
        await notify_many(
            session,
            [reviewer.id for reviewer in reviewers if reviewer.id != author_id],
            notification_type=NotificationType.DISCUSSION_COMMENT_ADDED,
            title="New discussion comment",
            message=f"A new comment was added to application #{application_id}.",
            application_id=application_id,
            action_url=application_url(application_id, "/review"),
        )
        await session.refresh(comment)
    return ok(comment)


async def list_comments(
    session: AsyncSession,
    *,
    application_id: int,
    include_private: bool = True,
    include_deleted: bool = False,
    include_replies: bool = True,
) -> list[Comment]:
    """Comments on an application, oldest first."""
    queryset = Comment.objects.filter_by(application_id=application_id)
    if not include_private:
        queryset = queryset.filter(col(Comment.is_private).is_(False))
    if not include_deleted:
        queryset = queryset.filter(col(Comment.is_deleted).is_(False))
    if not include_replies:
        queryset = queryset.filter(col(Comment.parent_comment_id).is_(None))
    return await queryset.order_by(col(Comment.created_at).asc(), col(Comment.id).asc()).all(
        session,
    )


def build_comment_threads(comments: Iterable[Comment]) -> list[CommentThread]:
    """Nest a flat, chronologically ordered comment list by parent id.

    Replies whose parent is not in the list are promoted to the top level.
    """
    nodes: dict[int | None, CommentThread] = {}
    ordered: list[CommentThread] = []
    for comment in comments:
        node = CommentThread(comment=comment)
        nodes[comment.id] = node
        ordered.append(node)

    roots: list[CommentThread] = []
    for node in ordered:
        parent = nodes.get(node.comment.parent_comment_id)
        if node.comment.parent_comment_id is not None and parent is not None:
            parent.replies.append(node)
        else:
            roots.append(node)
    return roots


async def _authored_comment(
    session: AsyncSession,
    *,
    comment_id: int,
    author_id: UUID,
) -> WorkflowResult[Comment]:
    comment = await get_comment(session, comment_id)
    if comment is None or comment.is_deleted:
        return not_found("Comment")
    if comment.author_id != author_id:
        return fail(WorkflowErrorCode.UNAUTHORIZED, "Only the author can change this comment")
    return ok(comment)


async def edit_comment(
    session: AsyncSession,
    *,
    comment_id: int,
    author_id: UUID,
    content: str,
) -> WorkflowResult[Comment]:
    result = await _authored_comment(session, comment_id=comment_id, author_id=author_id)
    if not result:
        return result
    message = validate_content(content)
    if message:
        return fail(WorkflowErrorCode.VALIDATION_ERROR, message)
    comment = result.unwrap()
    comment.content = content.strip()
    comment.is_edited = True
    comment.updated_at = utcnow()
    session.add(comment)
    await session.commit()
    await session.refresh(comment)
    return ok(comment)


async def delete_comment(
    session: AsyncSession,
    *,
    comment_id: int,
    author_id: UUID,
) -> WorkflowResult[Comment]:
    """Soft delete; the row is kept for audit."""
    result = await _authored_comment(session, comment_id=comment_id, author_id=author_id)
    if not result:
        return result
    comment = result.unwrap()
    comment.is_deleted = True
    comment.updated_at = utcnow()
    session.add(comment)
    await session.commit()
    await session.refresh(comment)
    logger.info("comment.deleted", extra={"comment_id": comment_id})
    return ok(comment)


async def mark_information_request_responded(
    session: AsyncSession,
    *,
    comment_id: int,
    commit: bool = True,
) -> WorkflowResult[Comment]:
    comment = await get_comment(session, comment_id)
    if comment is None or comment.is_deleted:
        return not_found("Comment")
    if not comment.is_information_request:
        return fail(
            WorkflowErrorCode.VALIDATION_ERROR,
            "Comment is not an information request",
        )
    comment.has_response = True
    comment.updated_at = utcnow()
    session.add(comment)
    if commit:
        await session.commit()
        await session.refresh(comment)
    return ok(comment)


async def latest_open_information_request(
    session: AsyncSession,
    *,
    application_id: int,
) -> Comment | None:
    return await (
        Comment.objects.filter_by(
            application_id=application_id,
            is_information_request=True,
            has_response=False,
            is_deleted=False,
        )
        .order_by(col(Comment.created_at).desc(), col(Comment.id).desc())
        .first(session)
    )
