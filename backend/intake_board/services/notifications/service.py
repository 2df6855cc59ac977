"""Notification records: creation, fan-out, reading and housekeeping.

Every notification is committed before its email is queued, so the stored row
is the outbox and ``requeue_pending_emails`` can recover deliveries lost
between the commit and the enqueue.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from sqlmodel import col, or_

from intake_board.core.config import settings
from intake_board.core.logging import get_logger
from intake_board.core.time import utcnow
from intake_board.models.notifications import Notification, NotificationType
from intake_board.services.notifications.queue import EmailDelivery, enqueue_email
from intake_board.services.results import WorkflowResult, not_found, ok

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy.sql.elements import ColumnElement
    from sqlmodel.ext.asyncio.session import AsyncSession

logger = get_logger(__name__)


def application_url(application_id: int, suffix: str = "") -> str:
    return f"{settings.base_url.rstrip('/')}/applications/{application_id}{suffix}"


async def notify(
    session: AsyncSession,
    *,
    recipient_id: UUID,
    notification_type: NotificationType,
    title: str,
    message: str,
    application_id: int | None = None,
    action_url: str | None = None,
    send_email: bool = False,
) -> Notification:
    """Store one notification and, when asked, queue its email."""
    now = utcnow()
    notification = Notification(
        recipient_id=recipient_id,
        application_id=application_id,
        notification_type=notification_type,
        title=title,
        message=message,
        action_url=action_url,
        is_sent=True,
        sent_at=now,
        email_requested=send_email,
        created_at=now,
        expires_at=now + timedelta(days=settings.notification_retention_days),
    )
    session.add(notification)
    await session.commit()
    await session.refresh(notification)
    logger.info(
        "notification.created",
        extra={
            "notification_id": notification.id,
            "notification_type": notification_type.value,
            "recipient_id": str(recipient_id),
            "application_id": application_id,
        },
    )
    if send_email and notification.id is not None:
        enqueue_email(EmailDelivery(notification_id=notification.id))
    return notification


async def notify_many(
    session: AsyncSession,
    recipient_ids: Iterable[UUID],
    *,
    notification_type: NotificationType,
    title: str,
    message: str,
    application_id: int | None = None,
    action_url: str | None = None,
    send_email: bool = False,
) -> int:
    """Notify each recipient independently; one failure never stops the rest.

    Returns the number of notifications stored.
    """
    delivered = 0
    for recipient_id in dict.fromkeys(recipient_ids):
        try:
            await notify(
                session,
                recipient_id=recipient_id,
                notification_type=notification_type,
                title=title,
                message=message,
                application_id=application_id,
                action_url=action_url,
                send_email=send_email,
            )
        except Exception as exc:
            await session.rollback()
            logger.warning(
                "notification.create_failed",
                extra={
                    "notification_type": notification_type.value,
                    "recipient_id": str(recipient_id),
                    "application_id": application_id,
                    "error": str(exc),
                },
            )
            continue
        delivered += 1
    return delivered


def _live(now: datetime) -> ColumnElement[bool]:
    return or_(col(Notification.expires_at).is_(None), col(Notification.expires_at) > now)


async def list_notifications(
    session: AsyncSession,
    *,
    recipient_id: UUID,
    unread_only: bool = False,
    limit: int | None = None,
) -> list[Notification]:
    """Unexpired notifications for a recipient, newest first."""
    queryset = Notification.objects.filter_by(recipient_id=recipient_id).filter(_live(utcnow()))
    if unread_only:
        queryset = queryset.filter(col(Notification.is_read).is_(False))
    queryset = queryset.order_by(col(Notification.created_at).desc(), col(Notification.id).desc())
    notifications = await queryset.all(session)
    return notifications[:limit] if limit is not None else notifications


async def unread_count(session: AsyncSession, *, recipient_id: UUID) -> int:
    return await (
        Notification.objects.filter_by(recipient_id=recipient_id, is_read=False)
        .filter(_live(utcnow()))
        .count(session)
    )


async def mark_read(
    session: AsyncSession,
    *,
    notification_id: int,
    recipient_id: UUID,
) -> WorkflowResult[Notification]:
    notification = await Notification.objects.filter_by(
        id=notification_id,
        recipient_id=recipient_id,
    ).first(session)
    if notification is None:
        return not_found("Notification")
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        session.add(notification)
        await session.commit()
        await session.refresh(notification)
    return ok(notification)


async def mark_all_read(session: AsyncSession, *, recipient_id: UUID) -> int:
    unread = await Notification.objects.filter_by(recipient_id=recipient_id, is_read=False).all(
        session,
    )
    now = utcnow()
    for notification in unread:
        notification.is_read = True
        notification.read_at = now
        session.add(notification)
    await session.commit()
    return len(unread)


async def purge_expired_notifications(session: AsyncSession, *, now: datetime | None = None) -> int:
    """Hard-delete notifications past their expiry."""
    cutoff = now or utcnow()
    expired = await Notification.objects.filter(
        col(Notification.expires_at).is_not(None),
        col(Notification.expires_at) <= cutoff,
    ).all(session)
    for notification in expired:
        await session.delete(notification)
    await session.commit()
    if expired:
        logger.info("notification.purged", extra={"count": len(expired)})
    return len(expired)


async def requeue_pending_emails(session: AsyncSession, *, limit: int = 500) -> int:
    """Queue again every requested email that has not been sent yet."""
    pending = await (
        Notification.objects.filter_by(email_requested=True, email_sent=False)
        .filter(_live(utcnow()))
        .order_by(col(Notification.created_at).asc())
        .all(session)
    )
    queued = 0
    for notification in pending[:limit]:
        if notification.id is not None and enqueue_email(
            EmailDelivery(notification_id=notification.id),
        ):
            queued += 1
    if queued:
        logger.info("notification.email.requeued", extra={"count": queued})
    return queued
