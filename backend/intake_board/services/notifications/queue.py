"""Email outbox queue helpers for notification delivery."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from intake_board.core.config import settings
from intake_board.core.logging import get_logger
from intake_board.services.queue import QueuedTask, enqueue_task
from intake_board.services.queue import requeue_if_failed as generic_requeue_if_failed

logger = get_logger(__name__)
TASK_TYPE = "application_email"


@dataclass(frozen=True)
class EmailDelivery:
    """Queued request to email the content of one stored notification."""

    notification_id: int
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    attempts: int = 0


def _task_from_delivery(delivery: EmailDelivery) -> QueuedTask:
    return QueuedTask(
        task_type=TASK_TYPE,
        payload={"notification_id": delivery.notification_id},
        created_at=delivery.created_at,
        attempts=delivery.attempts,
    )


def decode_email_task(task: QueuedTask) -> EmailDelivery:
    if task.task_type != TASK_TYPE:
        raise ValueError(f"Unexpected task_type={task.task_type!r}; expected {TASK_TYPE!r}")
    return EmailDelivery(
        notification_id=int(task.payload["notification_id"]),
        created_at=task.created_at,
        attempts=task.attempts,
    )


def enqueue_email(delivery: EmailDelivery) -> bool:
    """Queue an email for a committed notification row."""
    queued = enqueue_task(
        _task_from_delivery(delivery),
        settings.rq_queue_name,
        redis_url=settings.rq_redis_url,
    )
    if queued:
        logger.info(
            "notification.email.enqueued",
            extra={"notification_id": delivery.notification_id},
        )
    return queued


def requeue_email(delivery: EmailDelivery, *, delay_seconds: float = 0) -> bool:
    """Requeue a failed delivery with capped retries."""
    return generic_requeue_if_failed(
        _task_from_delivery(delivery),
        settings.rq_queue_name,
        max_retries=settings.rq_dispatch_max_retries,
        redis_url=settings.rq_redis_url,
        delay_seconds=delay_seconds,
    )
