from typing import Iterable, Optional

import redis

from app.core import redis_config

VIEWS_KEY = "event_views"


class ViewCountClient:
    """Per-event view counters kept in a single Redis hash."""

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        self.redis = redis_client if redis_client is not None else redis_config.get_redis_client()

    def views_for(self, event_id: int) -> int:
        value = self.redis.hget(VIEWS_KEY, str(event_id))
        return int(value or 0)

    def views_for_many(self, event_ids: Iterable[int]) -> dict[int, int]:
        event_ids = list(event_ids)
        if not event_ids:
            return {}
        values = self.redis.hmget(VIEWS_KEY, [str(event_id) for event_id in event_ids])
        return {event_id: int(value or 0) for event_id, value in zip(event_ids, values)}

    def record_view(self, event_id: int) -> int:
        return int(self.redis.hincrby(VIEWS_KEY, str(event_id), 1))


def get_view_client() -> ViewCountClient:
    return ViewCountClient()
