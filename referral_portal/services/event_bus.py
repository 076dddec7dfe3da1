from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

import redis.asyncio as redis

from referral_portal.core.config import settings

logger = logging.getLogger("referrals.events")


class Subscription:
    """One listener on the change feed. ``referrer_id`` narrows it to one employee's referrals."""

    def __init__(self, *, referrer_id: str | None = None, maxsize: int = 200) -> None:
        self.referrer_id = referrer_id
        self.queue: asyncio.Queue[Dict[str, Any]] = asyncio.Queue(maxsize=maxsize)

    def matches(self, payload: Dict[str, Any]) -> bool:
        if self.referrer_id is None:
            return True
        return payload.get("referrer_id") == self.referrer_id

    def offer(self, payload: Dict[str, Any]) -> None:
        if self.queue.full():
            try:
                self.queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
        self.queue.put_nowait(payload)

    async def get(self, timeout: float | None = None) -> Dict[str, Any]:
        if timeout is None:
            return await self.queue.get()
        return await asyncio.wait_for(self.queue.get(), timeout=timeout)


class EventBus:
    def __init__(self, redis_url: str | None = None, channel: str | None = None) -> None:
        self._subscribers: set[Subscription] = set()
        self._lock = asyncio.Lock()
        self._redis_url = (redis_url if redis_url is not None else settings.redis_url).strip()
        self._redis: redis.Redis | None = None
        self._redis_lock = asyncio.Lock()
        self._listener_task: asyncio.Task | None = None
        self._channel = channel or settings.event_channel

    async def _broadcast(self, data: str) -> None:
        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            logger.warning("event_dropped", extra={"reason": "invalid_json"})
            return
        if not isinstance(payload, dict):
            return
        async with self._lock:
            for subscription in list(self._subscribers):
                if subscription.matches(payload):
                    subscription.offer(payload)

    async def _ensure_redis(self) -> bool:
        if not self._redis_url:
            return False
        if self._redis is None:
            async with self._redis_lock:
                if self._redis is None:
                    self._redis = redis.from_url(self._redis_url, decode_responses=True)
        await self._ensure_listener()
        return True

    async def _ensure_listener(self) -> None:
        if self._listener_task and not self._listener_task.done():
            return
        self._listener_task = asyncio.create_task(self._listen())

    async def _listen(self) -> None:
        if not self._redis:
            return
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if not message or message.get("type") != "message":
                    continue
                data = message.get("data")
                if isinstance(data, bytes):
                    data = data.decode()
                if not isinstance(data, str):
                    continue
                await self._broadcast(data)
        finally:
            await pubsub.close()

    async def subscribe(self, *, referrer_id: str | None = None) -> Subscription:
        subscription = Subscription(referrer_id=referrer_id)
        async with self._lock:
            self._subscribers.add(subscription)
        await self._ensure_redis()
        return subscription

    async def unsubscribe(self, subscription: Subscription) -> None:
        async with self._lock:
            self._subscribers.discard(subscription)

    @asynccontextmanager
    async def subscription(self, *, referrer_id: str | None = None) -> AsyncIterator[Subscription]:
        sub = await self.subscribe(referrer_id=referrer_id)
        try:
            yield sub
        finally:
            await self.unsubscribe(sub)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, payload: Dict[str, Any]) -> None:
        data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
        if await self._ensure_redis():
            try:
                if self._redis:
                    await self._redis.publish(self._channel, data)
                    return
            except redis.RedisError as exc:
                logger.warning("redis_publish_failed", extra={"error": str(exc)})
        await self._broadcast(data)

    async def close(self) -> None:
        if self._listener_task and not self._listener_task.done():
            self._listener_task.cancel()
            try:
                await self._listener_task
            except asyncio.CancelledError:
                pass
        self._listener_task = None
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


event_bus = EventBus()
