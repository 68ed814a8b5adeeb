"""
Job event fan-out.

Events are published as JSON ``{event, payload, timestamp}`` on the channel
``job:<jobId>``. Delivery is fire-and-forget and at-most-once: a subscriber
only sees events published after it subscribed, and nothing is replayed.
Per-job ordering is preserved because one job publishes from one task.

The Redis client is created once per process and injected; each running job
acquires a scoped ``JobChannel`` and releases it when the job finishes.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, AsyncContextManager, AsyncIterator, Protocol

import redis.asyncio as redis

from app.models.workflow import BroadcastEvent

logger = logging.getLogger(__name__)

TERMINAL_EVENTS = frozenset({"job:complete", "job:error"})


def channel_name(job_id: str) -> str:
    return f"job:{job_id}"


class EventBroadcaster(Protocol):
    async def publish(self, job_id: str, event: str, payload: dict[str, Any]) -> None: ...

    def subscription(self, job_id: str) -> AsyncContextManager[AsyncIterator[BroadcastEvent]]: ...

    def subscribe(self, job_id: str) -> AsyncIterator[BroadcastEvent]: ...


class JobChannel:
    """Publisher bound to one job for the duration of its run."""

    def __init__(self, broadcaster: EventBroadcaster, job_id: str):
        self.broadcaster = broadcaster
        self.job_id = job_id
        self.closed = False

    async def publish(self, event: str, payload: dict[str, Any]) -> None:
        if self.closed:
            logger.warning("Dropping %s for job %s: channel already released", event, self.job_id)
            return
        await self.broadcaster.publish(self.job_id, event, payload)


@asynccontextmanager
async def job_channel(broadcaster: EventBroadcaster, job_id: str) -> AsyncIterator[JobChannel]:
    channel = JobChannel(broadcaster, job_id)
    try:
        yield channel
    finally:
        channel.closed = True


class RedisBroadcaster:

    def __init__(self, client: redis.Redis):
        self.client = client

    async def publish(self, job_id: str, event: str, payload: dict[str, Any]) -> None:
        message = BroadcastEvent.create(event, payload)
        try:
            await self.client.publish(channel_name(job_id), message.model_dump_json())
        except redis.RedisError as e:
            # At-most-once: a lost event must not fail the job.
            logger.warning("Failed to publish %s for job %s: %s", event, job_id, e)

    async def _events(self, pubsub, job_id: str) -> AsyncIterator[BroadcastEvent]:
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue
            data = message.get("data")
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            try:
                event = BroadcastEvent.model_validate(json.loads(data))
            except (ValueError, TypeError) as e:
                logger.warning("Ignoring malformed event on %s: %s", channel_name(job_id), e)
                continue
            yield event
            if event.event in TERMINAL_EVENTS:
                break

    @asynccontextmanager
    async def subscription(self, job_id: str) -> AsyncIterator[AsyncIterator[BroadcastEvent]]:
        """
        Subscribe on enter and yield the event stream.

        Events published after entering are buffered by Redis until read, so
        callers can check job state inside the block without missing any.
        """
        pubsub = self.client.pubsub()
        await pubsub.subscribe(channel_name(job_id))
        try:
            yield self._events(pubsub, job_id)
        finally:
            await pubsub.unsubscribe(channel_name(job_id))
            await pubsub.aclose()

    async def subscribe(self, job_id: str) -> AsyncIterator[BroadcastEvent]:
        """Yield events for ``job_id`` until a terminal event arrives."""
        async with self.subscription(job_id) as events:
            async for event in events:
                yield event


async def _drain(queue: asyncio.Queue[BroadcastEvent]) -> AsyncIterator[BroadcastEvent]:
    while True:
        event = await queue.get()
        yield event
        if event.event in TERMINAL_EVENTS:
            break


class InMemoryBroadcaster:
    """Single-process broadcaster; also records every event for inspection in tests."""

    def __init__(self):
        self._subscribers: defaultdict[str, list[asyncio.Queue[BroadcastEvent]]] = defaultdict(list)
        self.history: defaultdict[str, list[BroadcastEvent]] = defaultdict(list)

    async def publish(self, job_id: str, event: str, payload: dict[str, Any]) -> None:
        message = BroadcastEvent.create(event, payload)
        self.history[job_id].append(message)
        for queue in list(self._subscribers.get(job_id, [])):
            queue.put_nowait(message)

    @asynccontextmanager
    async def subscription(self, job_id: str) -> AsyncIterator[AsyncIterator[BroadcastEvent]]:
        queue: asyncio.Queue[BroadcastEvent] = asyncio.Queue()
        self._subscribers[job_id].append(queue)
        try:
            yield _drain(queue)
        finally:
            self._subscribers[job_id].remove(queue)
            if not self._subscribers[job_id]:
                del self._subscribers[job_id]

    async def subscribe(self, job_id: str) -> AsyncIterator[BroadcastEvent]:
        async with self.subscription(job_id) as events:
            async for event in events:
                yield event

    def subscriber_count(self, job_id: str) -> int:
        return len(self._subscribers.get(job_id, []))

    def events(self, job_id: str) -> list[tuple[str, dict[str, Any]]]:
        return [(e.event, e.payload) for e in self.history[job_id]]


def create_redis(url: str) -> redis.Redis:
    return redis.from_url(url, encoding="utf-8", decode_responses=True)
