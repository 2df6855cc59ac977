"""Discussion endpoints; applicants see and write only shared comments."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Query

from intake_board.api.applications import load_visible_application
from intake_board.api.deps import ACTOR_DEP, REVIEWER_DEP, ROSTER_DEP, SESSION_DEP, is_reviewer
from intake_board.core.error_handling import fail_http, raise_for_result
from intake_board.schemas.comments import (
    CommentCreate,
    CommentRead,
    CommentThreadRead,
    CommentUpdate,
)
from intake_board.services import comments as comment_store
from intake_board.services.results import WorkflowErrorCode

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from intake_board.models.users import User
    from intake_board.services.comments import CommentThread
    from intake_board.services.roster import ReviewerRoster

router = APIRouter(prefix="/applications/{application_id}/comments", tags=["comments"])


def _thread_read(thread: CommentThread) -> CommentThreadRead:
    return CommentThreadRead(
        comment=CommentRead.model_validate(thread.comment, from_attributes=True),
        replies=[_thread_read(reply) for reply in thread.replies],
    )


@router.post("", response_model=CommentRead)
async def add_comment(
    application_id: int,
    payload: CommentCreate,
    session: AsyncSession = SESSION_DEP,
    actor: User = ACTOR_DEP,
    roster: ReviewerRoster = ROSTER_DEP,
) -> CommentRead:
    await load_visible_application(session, application_id=application_id, actor=actor)
    reviewer = is_reviewer(actor)
    if not reviewer and payload.is_information_request:
        fail_http(WorkflowErrorCode.UNAUTHORIZED, "Only reviewers can request information")
    result = await comment_store.add_comment(
        session,
        application_id=application_id,
        author_id=actor.id,
        content=payload.content,
        is_private=payload.is_private if reviewer else False,
        is_information_request=payload.is_information_request,
        parent_comment_id=payload.parent_comment_id,
        roster=roster,
    )
    raise_for_result(result)
    return CommentRead.model_validate(result.unwrap(), from_attributes=True)


@router.get("", response_model=list[CommentRead])
async def list_comments(
    application_id: int,
    session: AsyncSession = SESSION_DEP,
    actor: User = ACTOR_DEP,
    include_replies: bool = Query(default=True),
) -> list[CommentRead]:
    """Comments oldest first; private ones only for reviewers."""
    await load_visible_application(session, application_id=application_id, actor=actor)
    comments = await comment_store.list_comments(
        session,
        application_id=application_id,
        include_private=is_reviewer(actor),
        include_replies=include_replies,
    )
    return [CommentRead.model_validate(comment, from_attributes=True) for comment in comments]


@router.get("/threads", response_model=list[CommentThreadRead])
async def list_comment_threads(
    application_id: int,
    session: AsyncSession = SESSION_DEP,
    actor: User = ACTOR_DEP,
) -> list[CommentThreadRead]:
    await load_visible_application(session, application_id=application_id, actor=actor)
    comments = await comment_store.list_comments(
        session,
        application_id=application_id,
        include_private=is_reviewer(actor),
    )
    return [_thread_read(thread) for thread in comment_store.build_comment_threads(comments)]


@router.patch("/{comment_id}", response_model=CommentRead)
async def edit_comment(
    application_id: int,
    comment_id: int,
    payload: CommentUpdate,
    session: AsyncSession = SESSION_DEP,
    actor: User = ACTOR_DEP,
) -> CommentRead:
    comment = await comment_store.get_comment(session, comment_id)
    if comment is None or comment.application_id != application_id:
        fail_http(WorkflowErrorCode.NOT_FOUND, "Comment not found")
    result = await comment_store.edit_comment(
        session,
        comment_id=comment_id,
        author_id=actor.id,
        content=payload.content,
    )
    raise_for_result(result)
    return CommentRead.model_validate(result.unwrap(), from_attributes=True)


@router.delete("/{comment_id}", response_model=CommentRead)
async def delete_comment(
    application_id: int,
    comment_id: int,
    session: AsyncSession = SESSION_DEP,
    actor: User = ACTOR_DEP,
) -> CommentRead:
    comment = await comment_store.get_comment(session, comment_id)
    if comment is None or comment.application_id != application_id:
        fail_http(WorkflowErrorCode.NOT_FOUND, "Comment not found")
    result = await comment_store.delete_comment(
        session,
        comment_id=comment_id,
        author_id=actor.id,
    )
    raise_for_result(result)
    return CommentRead.model_validate(result.unwrap(), from_attributes=True)


@router.post("/{comment_id}/responded", response_model=CommentRead)
async def mark_responded(
    application_id: int,
    comment_id: int,
    session: AsyncSession = SESSION_DEP,
    _reviewer: User = REVIEWER_DEP,
) -> CommentRead:
    """Mark an information request as answered outside the respond flow."""
    comment = await comment_store.get_comment(session, comment_id)
    if comment is None or comment.application_id != application_id:
        fail_http(WorkflowErrorCode.NOT_FOUND, "Comment not found")
    result = await comment_store.mark_information_request_responded(
        session,
        comment_id=comment_id,
    )
    raise_for_result(result)
    return CommentRead.model_validate(result.unwrap(), from_attributes=True)
