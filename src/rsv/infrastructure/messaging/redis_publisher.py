from __future__ import annotations

from collections.abc import Callable

import redis

from rsv.application.ports.publisher import EventPublisher
from rsv.infrastructure.messaging.redis_client import get_redis_client


class RedisEventPublisher(EventPublisher):
    """Publishes reservation events on a Redis pub/sub channel.

    Errors propagate to the caller, which decides whether a lost notification
    matters.
    """

    def __init__(
        self,
        timeout_seconds: float = 1.0,
        client_factory: Callable[[float], redis.Redis] = get_redis_client,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._client_factory = client_factory

    def publish(self, channel: str, message: str) -> None:
        self._client_factory(self._timeout_seconds).publish(channel, message)
