"""Worker-side delivery of queued notification emails."""

from __future__ import annotations

from typing import TYPE_CHECKING

from intake_board.core.logging import get_logger
from intake_board.core.time import utcnow
from intake_board.db.session import async_session_maker
from intake_board.models.notifications import Notification
from intake_board.models.users import User
from intake_board.services.email import EmailMessage, EmailTransport, get_email_transport
from intake_board.services.notifications.queue import decode_email_task, requeue_email

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from intake_board.services.queue import QueuedTask

logger = get_logger(__name__)


def _render(notification: Notification, recipient: User) -> EmailMessage:
    lines = [f"Hello {recipient.name or recipient.email},", "", notification.message]
    if notification.action_url:
        lines.extend(["", notification.action_url])
    return EmailMessage(to=recipient.email, subject=notification.title, body="\n".join(lines))


async def deliver_notification_email(
    session: AsyncSession,
    notification_id: int,
    *,
    transport: EmailTransport | None = None,
) -> bool:
    """Send the email for one notification and mark it sent.

    Returns False when nothing was delivered; the row then stays pending for the
    outbox sweep. Transport failures propagate so the worker can retry the task.
    """
    notification = await Notification.objects.by_id(notification_id).first(session)
    if notification is None:
        logger.warning("notification.email.missing", extra={"notification_id": notification_id})
        return False
    if notification.email_sent:
        return False
    recipient = await User.objects.by_id(notification.recipient_id).first(session)
    if recipient is None or not recipient.email:
        logger.warning(
            "notification.email.no_address",
            extra={"notification_id": notification_id},
        )
        return False

    delivered = await (transport or get_email_transport()).send(_render(notification, recipient))
    if not delivered:
        logger.info(
            "notification.email.skipped",
            extra={"notification_id": notification_id},
        )
        return False
    notification.email_sent = True
    notification.email_sent_at = utcnow()
    session.add(notification)
    await session.commit()
    logger.info(
        "notification.email.delivered",
        extra={
            "notification_id": notification_id,
            "notification_type": notification.notification_type.value,
        },
    )
    return True


async def process_email_task(task: QueuedTask) -> None:
    delivery = decode_email_task(task)
    async with async_session_maker() as session:
        await deliver_notification_email(session, delivery.notification_id)


def requeue_email_task(task: QueuedTask, *, delay_seconds: float = 0) -> bool:
    return requeue_email(decode_email_task(task), delay_seconds=delay_seconds)
