"""
Job persistence.

Writes are keyed upserts on the job id: the orchestrator only ever sends the
fields that changed. Terminal jobs are never moved back to a non-terminal
status.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from app.db.supabase import get_supabase
from app.models.workflow import TERMINAL_JOB_STATUSES, Job
from app.services.errors import JobNotFoundError

logger = logging.getLogger(__name__)


class JobStore(Protocol):
    async def create(self, job: Job) -> Job: ...

    async def get(self, job_id: str) -> Job: ...

    async def update(self, job_id: str, **fields: Any) -> Job: ...

    async def list_for_workspace(self, workspace_id: str, limit: int = 20, offset: int = 0) -> list[Job]: ...


def _check_transition(job: Job, fields: dict[str, Any]) -> None:
    new_status = fields.get("status")
    if new_status and job.is_terminal and new_status != job.status:
        raise ValueError(f"Job {job.id} is already {job.status}; cannot move to {new_status}")


class InMemoryJobStore:

    def __init__(self):
        self._jobs: dict[str, Job] = {}

    async def create(self, job: Job) -> Job:
        self._jobs[job.id] = job.model_copy(deep=True)
        return job

    async def get(self, job_id: str) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job.model_copy(deep=True)

    async def update(self, job_id: str, **fields: Any) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        _check_transition(job, fields)
        updated = job.model_copy(update=fields, deep=True)
        self._jobs[job_id] = updated
        return updated.model_copy(deep=True)

    async def list_for_workspace(self, workspace_id: str, limit: int = 20, offset: int = 0) -> list[Job]:
        jobs = sorted(
            (j for j in self._jobs.values() if j.workspace_id == workspace_id),
            key=lambda j: j.created_at,
            reverse=True,
        )
        return [j.model_copy(deep=True) for j in jobs[offset:offset + limit]]


class SupabaseJobStore:
    """Jobs live in the ``jobs`` table (see ``db/migrations``)."""

    table = "jobs"

    def __init__(self, client: Any = None):
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = get_supabase().client
        return self._client

    async def create(self, job: Job) -> Job:
        row = job.model_dump(mode="json")
        await asyncio.to_thread(lambda: self.client.table(self.table).insert(row).execute())
        return job

    async def get(self, job_id: str) -> Job:
        result = await asyncio.to_thread(
            lambda: self.client.table(self.table).select("*").eq("id", job_id).limit(1).execute()
        )
        if not result.data:
            raise JobNotFoundError(job_id)
        return Job.model_validate(result.data[0])

    async def update(self, job_id: str, **fields: Any) -> Job:
        current = await self.get(job_id)
        _check_transition(current, fields)
        updated = current.model_copy(update=fields, deep=True)
        dumped = updated.model_dump(mode="json")
        changes = {key: dumped[key] for key in fields}
        query = self.client.table(self.table).update(changes).eq("id", job_id)
        if fields.get("status"):
            # Guard against a racing writer having already finished the job.
            query = query.not_.in_("status", sorted(TERMINAL_JOB_STATUSES - {fields["status"]}))
        result = await asyncio.to_thread(query.execute)
        if not result.data:
            logger.warning("Job %s update matched no rows (fields: %s)", job_id, ", ".join(fields))
        return updated

    async def list_for_workspace(self, workspace_id: str, limit: int = 20, offset: int = 0) -> list[Job]:
        result = await asyncio.to_thread(
            lambda: self.client.table(self.table)
            .select("*")
            .eq("workspace_id", workspace_id)
            .order("created_at", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
        return [Job.model_validate(row) for row in result.data or []]
