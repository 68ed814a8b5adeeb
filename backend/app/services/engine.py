"""
Process-wide engine wiring.

``build_engine`` picks store implementations from ``ENGINE_BACKEND`` and
returns everything the API and the worker share. The Redis client is owned
here and closed by ``close_engine`` at shutdown.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import redis.asyncio as redis

from app import config
from app.services.broadcaster import EventBroadcaster, InMemoryBroadcaster, RedisBroadcaster, create_redis
from app.services.credits import CreditLedger, InMemoryCreditStore, SupabaseCreditStore
from app.services.job_executor import ExecutionContext
from app.services.job_queue import InMemoryJobQueue, JobQueue, RedisJobQueue
from app.services.job_store import InMemoryJobStore, SupabaseJobStore
from app.services.providers import ProviderRegistry
from app.storage.r2 import MediaStorage
from app.workers.job_worker import JobWorker

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    ctx: ExecutionContext
    queue: JobQueue
    storage: MediaStorage
    worker: JobWorker | None = None
    redis: redis.Redis | None = None

    @property
    def broadcaster(self) -> EventBroadcaster:
        return self.ctx.broadcaster

    @property
    def ledger(self) -> CreditLedger:
        return self.ctx.ledger


def build_engine(backend: str | None = None, with_worker: bool = True) -> Engine:
    backend = backend or config.engine_backend()
    storage = MediaStorage()
    providers = ProviderRegistry(storage=storage)

    if backend == "memory":
        ctx = ExecutionContext(
            jobs=InMemoryJobStore(),
            ledger=CreditLedger(InMemoryCreditStore()),
            broadcaster=InMemoryBroadcaster(),
            providers=providers,
        )
        engine = Engine(ctx=ctx, queue=InMemoryJobQueue(), storage=storage)
    else:
        client = create_redis(config.redis_url())
        ctx = ExecutionContext(
            jobs=SupabaseJobStore(),
            ledger=CreditLedger(SupabaseCreditStore()),
            broadcaster=RedisBroadcaster(client),
            providers=providers,
        )
        engine = Engine(ctx=ctx, queue=RedisJobQueue(client), storage=storage, redis=client)

    if with_worker:
        engine.worker = JobWorker(engine.queue, engine.ctx)
    logger.info("Engine built with %s backend", backend)
    return engine


async def start_engine(engine: Engine) -> None:
    if engine.redis is not None:
        await engine.redis.ping()
    if engine.worker is not None:
        engine.worker.start()


async def close_engine(engine: Engine) -> None:
    if engine.worker is not None:
        await engine.worker.stop()
    if engine.redis is not None:
        await engine.redis.aclose()
