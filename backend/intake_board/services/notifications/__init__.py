"""Application notifications and their queued email delivery."""

from intake_board.services.notifications.queue import (
    TASK_TYPE,
    EmailDelivery,
    decode_email_task,
    enqueue_email,
)
from intake_board.services.notifications.service import (
    application_url,
    list_notifications,
    mark_all_read,
    mark_read,
    notify,
    notify_many,
    purge_expired_notifications,
    requeue_pending_emails,
    unread_count,
)

__all__ = [
    "TASK_TYPE",
    "EmailDelivery",
    "application_url",
    "decode_email_task",
    "enqueue_email",
    "list_notifications",
    "mark_all_read",
    "mark_read",
    "notify",
    "notify_many",
    "purge_expired_notifications",
    "requeue_pending_emails",
    "unread_count",
]
