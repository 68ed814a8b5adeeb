"""
Job hand-off between the API and the worker pool.

The API pushes serialized ``JobRequest`` payloads; workers block-pop them.
Redis is the production transport; ``InMemoryJobQueue`` backs tests and
single-process runs.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import redis.asyncio as redis

from app.models.workflow import JobRequest

logger = logging.getLogger(__name__)

QUEUE_KEY = "haus-node:jobs"


class JobQueue(Protocol):
    async def enqueue(self, request: JobRequest) -> None: ...

    async def dequeue(self, timeout: float = 5.0) -> JobRequest | None: ...


class RedisJobQueue:

    def __init__(self, client: redis.Redis, key: str = QUEUE_KEY):
        self.client = client
        self.key = key

    async def enqueue(self, request: JobRequest) -> None:
        await self.client.lpush(self.key, request.model_dump_json(by_alias=True))

    async def dequeue(self, timeout: float = 5.0) -> JobRequest | None:
        item = await self.client.brpop([self.key], timeout=timeout)
        if item is None:
            return None
        _, payload = item
        try:
            return JobRequest.model_validate_json(payload)
        except ValueError as e:
            logger.error("Dropping malformed job payload: %s", e)
            return None


class InMemoryJobQueue:

    def __init__(self):
        self._queue: asyncio.Queue[JobRequest] = asyncio.Queue()

    async def enqueue(self, request: JobRequest) -> None:
        await self._queue.put(request)

    async def dequeue(self, timeout: float = 5.0) -> JobRequest | None:
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    def qsize(self) -> int:
        return self._queue.qsize()
