"""Redis list-backed task queue used by the notification outbox worker."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any, cast

import redis

from intake_board.core.config import settings
from intake_board.core.logging import get_logger

logger = get_logger(__name__)

_SCHEDULED_SUFFIX = ":scheduled"
_DRAIN_BATCH_SIZE = 100


@dataclass(frozen=True)
class QueuedTask:
    """Envelope stored on the queue: a task type plus a JSON payload."""

    task_type: str
    payload: dict[str, Any]
    created_at: datetime
    attempts: int = 0

    def to_json(self) -> str:
        return json.dumps(
            {
                "task_type": self.task_type,
                "payload": self.payload,
                "created_at": self.created_at.isoformat(),
                "attempts": self.attempts,
            },
            sort_keys=True,
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> QueuedTask:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data: dict[str, Any] = json.loads(raw)
        created_raw = data.get("created_at")
        created_at = (
            datetime.fromisoformat(created_raw) if isinstance(created_raw, str) else datetime.now(UTC)
        )
        return cls(
            task_type=str(data["task_type"]),
            payload=dict(data.get("payload") or {}),
            created_at=created_at,
            attempts=int(data.get("attempts", 0)),
        )


def _redis_client(redis_url: str | None = None) -> redis.Redis:
    return redis.Redis.from_url(redis_url or settings.rq_redis_url)


def _scheduled_queue_name(queue_name: str) -> str:
    return f"{queue_name}{_SCHEDULED_SUFFIX}"


def _drain_ready_scheduled_tasks(client: redis.Redis, queue_name: str) -> float | None:
    """Move due delayed tasks onto the main list; return seconds until the next one."""
    scheduled_queue = _scheduled_queue_name(queue_name)
    now = time.time()
    ready = cast(
        list[str | bytes],
        client.zrangebyscore(scheduled_queue, "-inf", now, start=0, num=_DRAIN_BATCH_SIZE),
    )
    if ready:
        client.lpush(queue_name, *ready)
        client.zrem(scheduled_queue, *ready)
        logger.debug("queue.scheduled_drained", extra={"queue_name": queue_name, "count": len(ready)})

    upcoming = cast(
        list[tuple[str | bytes, float]],
        client.zrangebyscore(scheduled_queue, now, "+inf", start=0, num=1, withscores=True),
    )
    if not upcoming:
        return None
    return max(0.0, float(upcoming[0][1]) - now)


def enqueue_task(
    task: QueuedTask,
    queue_name: str | None = None,
    *,
    delay_seconds: float = 0,
    redis_url: str | None = None,
) -> bool:
    """Push a task (optionally delayed); returns False instead of raising."""
    queue_name = queue_name or settings.rq_queue_name
    delay = max(0.0, float(delay_seconds))
    try:
        client = _redis_client(redis_url=redis_url)
        if delay > 0:
            client.zadd(_scheduled_queue_name(queue_name), {task.to_json(): time.time() + delay})
        else:
            client.lpush(queue_name, task.to_json())
    except Exception as exc:
        logger.warning(
            "queue.enqueue_failed",
            extra={"task_type": task.task_type, "queue_name": queue_name, "error": str(exc)},
        )
        return False
    logger.info(
        "queue.enqueued",
        extra={
            "task_type": task.task_type,
            "queue_name": queue_name,
            "attempt": task.attempts,
            "delay_seconds": delay,
        },
    )
    return True


def dequeue_task(
    queue_name: str | None = None,
    *,
    redis_url: str | None = None,
    block: bool = False,
    block_timeout: float = 0,
) -> QueuedTask | None:
    """Pop the oldest task, optionally blocking up to ``block_timeout`` seconds."""
    queue_name = queue_name or settings.rq_queue_name
    client = _redis_client(redis_url=redis_url)
    raw: str | bytes | None
    if block:
        next_delay = _drain_ready_scheduled_tasks(client, queue_name)
        timeout = max(0.0, float(block_timeout))
        if next_delay is not None:
            timeout = min(timeout, next_delay) if timeout else next_delay
        popped = cast(
            tuple[bytes | str, bytes | str] | None,
            client.brpop([queue_name], timeout=timeout),
        )
        raw = popped[1] if popped is not None else None
    else:
        raw = cast(str | bytes | None, client.rpop(queue_name))
    if raw is None:
        _drain_ready_scheduled_tasks(client, queue_name)
        return None
    try:
        return QueuedTask.from_json(raw)
    except (ValueError, KeyError) as exc:
        logger.error(
            "queue.decode_failed",
            extra={"queue_name": queue_name, "raw_payload": str(raw), "error": str(exc)},
        )
        raise


def requeue_if_failed(
    task: QueuedTask,
    queue_name: str | None = None,
    *,
    max_retries: int,
    delay_seconds: float = 0,
    redis_url: str | None = None,
) -> bool:
    """Requeue a failed task with one more attempt, unless retries are exhausted."""
    retried = replace(task, attempts=task.attempts + 1)
    if retried.attempts > max_retries:
        logger.warning(
            "queue.drop_failed_task",
            extra={"task_type": task.task_type, "attempts": retried.attempts},
        )
        return False
    return enqueue_task(
        retried,
        queue_name,
        delay_seconds=delay_seconds,
        redis_url=redis_url,
    )
