"""
Job endpoints: submit a workflow run, read job state, and stream job events.
"""
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...models.workflow import BroadcastEvent, GraphSnapshot
from ...services.engine import Engine
from ...services.errors import InsufficientCreditsError, JobNotFoundError, WorkspaceNotFoundError
from ...services.job_executor import submit_job
from ..dependencies import get_engine, get_ws_engine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["jobs"])


class SubmitJobRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    graph_snapshot: GraphSnapshot
    user_id: str
    runtime_inputs: dict[str, Any] = Field(default_factory=dict)
    workflow_id: Optional[str] = None


def _job_payload(job) -> dict[str, Any]:
    return job.model_dump(by_alias=True, mode="json")


def _sse(event: BroadcastEvent) -> str:
    return f"event: {event.event}\ndata: {event.model_dump_json()}\n\n"


@router.post("/workspaces/{workspace_id}/jobs", status_code=202)
async def create_job(workspace_id: str, request: SubmitJobRequest, engine: Engine = Depends(get_engine)):
    """
    Queue a workflow run.

    Rejects with 402 when the workspace cannot cover the pre-flight estimate.
    """
    if not request.graph_snapshot.nodes:
        raise HTTPException(status_code=400, detail="No nodes in workflow")

    try:
        job, estimate = await submit_job(
            engine.ctx,
            engine.queue,
            workspace_id=workspace_id,
            user_id=request.user_id,
            graph_snapshot=request.graph_snapshot,
            runtime_inputs=request.runtime_inputs,
            workflow_id=request.workflow_id,
        )
    except InsufficientCreditsError as e:
        raise HTTPException(
            status_code=402,
            detail={"message": "Insufficient credits", "required": e.required, "available": e.available},
        )
    except WorkspaceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {"data": {"jobId": job.id, "status": job.status, "estimatedCredits": estimate}}


@router.get("/workspaces/{workspace_id}/jobs")
async def list_jobs(
    workspace_id: str,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    engine: Engine = Depends(get_engine),
):
    jobs = await engine.ctx.jobs.list_for_workspace(workspace_id, limit=limit, offset=offset)
    return {"data": [_job_payload(j) for j in jobs], "limit": limit, "offset": offset}


@router.get("/jobs/{job_id}")
async def get_job(job_id: str, engine: Engine = Depends(get_engine)):
    try:
        job = await engine.ctx.jobs.get(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    return {"data": _job_payload(job)}


@router.get("/jobs/{job_id}/events")
async def stream_job_events(job_id: str, engine: Engine = Depends(get_engine)):
    """
    Relay the job's broadcast events as Server-Sent Events.

    Only events published after the client connects are delivered. The
    first message is a ``ping`` carrying the job's status; the stream ends
    right after it when the job is already finished, otherwise after
    ``job:complete`` or ``job:error``.
    """
    try:
        await engine.ctx.jobs.get(job_id)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")

    async def event_generator():
        # Subscribed before the status read: a job finishing in between still ends the stream.
        async with engine.broadcaster.subscription(job_id) as events:
            job = await engine.ctx.jobs.get(job_id)
            yield _sse(BroadcastEvent.create("ping", {"jobId": job_id, "status": job.status}))
            if job.is_terminal:
                return
            async for event in events:
                yield _sse(event)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )


@router.websocket("/ws/jobs/{job_id}")
async def job_events_socket(websocket: WebSocket, job_id: str, engine: Engine = Depends(get_ws_engine)):
    """Same relay as the SSE endpoint, over a WebSocket. Unknown jobs are refused with 1008."""
    async with engine.broadcaster.subscription(job_id) as events:
        try:
            job = await engine.ctx.jobs.get(job_id)
        except JobNotFoundError:
            await websocket.close(code=1008, reason="Job not found")
            return

        await websocket.accept()
        try:
            await websocket.send_text(
                BroadcastEvent.create("ping", {"jobId": job_id, "status": job.status}).model_dump_json()
            )
            if not job.is_terminal:
                async for event in events:
                    await websocket.send_text(event.model_dump_json())
        except WebSocketDisconnect:
            logger.debug("Client left job stream %s", job_id)
            return

    await websocket.close()
