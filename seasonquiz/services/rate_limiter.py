"""Per-attempt submission throttle backed by Redis.

Every (user, attempt) pair owns a fixed-window counter::

    quiz:submit:<user_id>:<attempt_id>:<window>

``INCR`` and ``EXPIRE`` are sent in one MULTI/EXEC pipeline, so a counter
never outlives two windows.  Players answer one question at a time against a
per-question clock, which keeps honest traffic on a single attempt far below
``SUBMIT_LIMIT_PER_ATTEMPT``; the cap only bites on scripted flooding.

When Redis is unreachable the submission is allowed.  Correctness never
depends on the throttle: the attempt row lock and the progress unique
constraint still guard every write.
"""

from __future__ import annotations

import logging
import time
import uuid

import redis

from seasonquiz.config import settings

logger = logging.getLogger(__name__)

_client: redis.Redis | None = None


def get_redis() -> redis.Redis:
    """Lazily created shared client; connections are opened on first use."""
    global _client
    if _client is None:
        _client = redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
        )
    return _client


def submission_key(user_id: uuid.UUID, attempt_id: uuid.UUID, now: float | None = None) -> str:
    window = int((time.time() if now is None else now) // settings.SUBMIT_WINDOW_SECONDS)
    return f"quiz:submit:{user_id}:{attempt_id}:{window}"


def allow_submission(
    user_id: uuid.UUID, attempt_id: uuid.UUID, now: float | None = None
) -> bool:
    """Count one submission against the attempt's window.

    Returns:
        False once the window already holds ``SUBMIT_LIMIT_PER_ATTEMPT``
        submissions, True otherwise (including when the limit is disabled
        with a value <= 0 or Redis is down).
    """
    limit = settings.SUBMIT_LIMIT_PER_ATTEMPT
    if limit <= 0:
        return True

    key = submission_key(user_id, attempt_id, now)
    try:
        pipe = get_redis().pipeline(transaction=True)
        pipe.incr(key)
        pipe.expire(key, settings.SUBMIT_WINDOW_SECONDS * 2)
        count, _ = pipe.execute()
    except redis.RedisError as e:
        logger.warning("Submission throttle unavailable, allowing %s: %s", key, e)
        return True

    if count > limit:
        logger.info("Throttled %s (%d submissions in window)", key, count)
        return False
    return True
