"""Caller-scoped notification inbox."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Query

from intake_board.api.deps import ACTOR_DEP, SESSION_DEP
from intake_board.core.error_handling import raise_for_result
from intake_board.schemas.common import CountResponse
from intake_board.schemas.notifications import NotificationRead
from intake_board.services import notifications as inbox

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from intake_board.models.users import User

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationRead])
async def list_notifications(
    session: AsyncSession = SESSION_DEP,
    actor: User = ACTOR_DEP,
    unread_only: bool = Query(default=True),
    limit: int | None = Query(default=None, ge=1, le=500),
) -> list[NotificationRead]:
    """Unexpired notifications for the caller, newest first."""
    notifications = await inbox.list_notifications(
        session,
        recipient_id=actor.id,
        unread_only=unread_only,
        limit=limit,
    )
    return [NotificationRead.model_validate(item, from_attributes=True) for item in notifications]


@router.get("/unread-count", response_model=CountResponse)
async def unread_count(
    session: AsyncSession = SESSION_DEP,
    actor: User = ACTOR_DEP,
) -> CountResponse:
    return CountResponse(count=await inbox.unread_count(session, recipient_id=actor.id))


@router.post("/{notification_id}/read", response_model=NotificationRead)
async def mark_read(
    notification_id: int,
    session: AsyncSession = SESSION_DEP,
    actor: User = ACTOR_DEP,
) -> NotificationRead:
    result = await inbox.mark_read(
        session,
        notification_id=notification_id,
        recipient_id=actor.id,
    )
    raise_for_result(result)
    return NotificationRead.model_validate(result.unwrap(), from_attributes=True)


@router.post("/read-all", response_model=CountResponse)
async def mark_all_read(
    session: AsyncSession = SESSION_DEP,
    actor: User = ACTOR_DEP,
) -> CountResponse:
    return CountResponse(count=await inbox.mark_all_read(session, recipient_id=actor.id))
