"""Queue worker that drains the notification email outbox."""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from intake_board.core.config import settings
from intake_board.core.logging import configure_logging, get_logger
from intake_board.db.session import async_session_maker
from intake_board.services.applications import remind_stale_reviews
from intake_board.services.notifications.dispatch import process_email_task, requeue_email_task
from intake_board.services.notifications.queue import TASK_TYPE as EMAIL_TASK_TYPE
from intake_board.services.notifications.service import (
    purge_expired_notifications,
    requeue_pending_emails,
)
from intake_board.services.queue import QueuedTask, dequeue_task

logger = get_logger(__name__)
_WORKER_BLOCK_TIMEOUT_SECONDS = 5.0
_SWEEP_INTERVAL_SECONDS = 3600.0


@dataclass(frozen=True)
class _TaskHandler:
    handler: Callable[[QueuedTask], Awaitable[None]]
    requeue: Callable[[QueuedTask, float], bool]


_TASK_HANDLERS: dict[str, _TaskHandler] = {
    EMAIL_TASK_TYPE: _TaskHandler(
        handler=process_email_task,
        requeue=lambda task, delay: requeue_email_task(task, delay_seconds=delay),
    ),
}


def retry_delay(attempts: int) -> float:
    """Exponential backoff capped at the configured maximum, plus jitter."""
    base_delay = min(
        settings.rq_dispatch_retry_base_seconds * (2 ** max(0, attempts)),
        settings.rq_dispatch_retry_max_seconds,
    )
    jitter = random.uniform(0, min(settings.rq_dispatch_retry_max_seconds / 10, base_delay * 0.1))
    return base_delay + jitter


async def flush_queue(*, block: bool = False, block_timeout: float = 0) -> int:
    """Consume queued tasks until the queue is empty; returns how many succeeded."""
    processed = 0
    while True:
        try:
            task = dequeue_task(
                settings.rq_queue_name,
                redis_url=settings.rq_redis_url,
                block=block,
                block_timeout=block_timeout,
            )
        except Exception:
            logger.exception("queue.worker.dequeue_failed", extra={"queue_name": settings.rq_queue_name})
            break

        if task is None:
            break

        handler = _TASK_HANDLERS.get(task.task_type)
        if handler is None:
            logger.warning("queue.worker.task_unhandled", extra={"task_type": task.task_type})
            continue

        try:
            await handler.handler(task)
        except Exception as exc:
            logger.exception(
                "queue.worker.failed",
                extra={"task_type": task.task_type, "attempt": task.attempts, "error": str(exc)},
            )
            if not handler.requeue(task, retry_delay(task.attempts)):
                logger.warning(
                    "queue.worker.drop_task",
                    extra={"task_type": task.task_type, "attempt": task.attempts},
                )
        else:
            processed += 1
            logger.info(
                "queue.worker.success",
                extra={"task_type": task.task_type, "attempt": task.attempts},
            )
        await asyncio.sleep(settings.rq_dispatch_throttle_seconds)

    if processed > 0:
        logger.info("queue.worker.batch_complete", extra={"count": processed})
    return processed


async def sweep_outbox() -> int:
    """Drop expired notifications, then re-enqueue emails stored but never delivered."""
    async with async_session_maker() as session:
        await purge_expired_notifications(session)
        if not settings.smtp_configured:
            return 0
        return await requeue_pending_emails(session)


async def send_review_reminders() -> int:
    async with async_session_maker() as session:
        return await remind_stale_reviews(session)


async def _run_housekeeping() -> None:
    try:
        await sweep_outbox()
        await send_review_reminders()
    except Exception:
        logger.exception("queue.worker.sweep_failed")


async def _run_worker_loop() -> None:
    last_sweep = time.monotonic()
    await _run_housekeeping()
    while True:
        if time.monotonic() - last_sweep >= _SWEEP_INTERVAL_SECONDS:
            last_sweep = time.monotonic()
            await _run_housekeeping()
        try:
            # Finite timeout so delayed retries are drained periodically.
            await flush_queue(block=True, block_timeout=_WORKER_BLOCK_TIMEOUT_SECONDS)
        except Exception:
            logger.exception("queue.worker.loop_failed", extra={"queue_name": settings.rq_queue_name})
            await asyncio.sleep(1)


def run_worker() -> None:
    """Console entrypoint for continuous email delivery."""
    configure_logging()
    logger.info(
        "queue.worker.started",
        extra={"queue_name": settings.rq_queue_name, "throttle_seconds": settings.rq_dispatch_throttle_seconds},
    )
    try:
        asyncio.run(_run_worker_loop())
    finally:
        logger.info("queue.worker.stopped", extra={"queue_name": settings.rq_queue_name})
