import logging
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

import redis

from app.core import redis_config
from app.core.config import ADMISSION_MAX_RETRIES, EVENT_LOCK_BLOCKING_TIMEOUT, EVENT_LOCK_TIMEOUT
from app.core.exceptions import ConcurrencyConflict, ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@contextmanager
def event_lock(event_id: int) -> Iterator[None]:
    """
    Hold the Redis lock for one event.

    Only one admission operation per event runs at a time, so two callers
    can never both observe the same last free seat.
    """
    redis_client = redis_config.get_redis_client()
    lock = redis_client.lock(f"event_lock:{event_id}", timeout=EVENT_LOCK_TIMEOUT)

    try:
        acquired = lock.acquire(blocking=True, blocking_timeout=EVENT_LOCK_BLOCKING_TIMEOUT)
    except redis.exceptions.LockError as exc:
        raise ConflictError("Event is busy, please try again.") from exc
    if not acquired:
        logger.warning("Could not acquire the admission lock for event %s.", event_id)
        raise ConflictError("Event is busy, please try again.")

    try:
        yield
    finally:
        try:
            lock.release()
        except redis.exceptions.LockNotOwnedError:
            # the version claim still guards the commit
            logger.warning("Admission lock for event %s expired before release.", event_id)


def run_with_retry(operation: Callable[[], T], *, attempts: int = ADMISSION_MAX_RETRIES) -> T:
    """Re-run ``operation`` from scratch while it loses a version race."""
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except ConcurrencyConflict as exc:
            logger.info("Attempt %s/%s lost a race on event %s, retrying.", attempt, attempts, exc.event_id)
            last_conflict = exc
    raise ConflictError(
        "Event was modified concurrently.",
        detail=f"Gave up on event with ID = {last_conflict.event_id} after {attempts} attempts.",
    )
