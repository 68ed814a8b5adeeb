"""
Job orchestration.

``run_job`` drives one job from ``queued`` to a terminal status:

    pre-flight credits -> running -> schedule -> nodes in order -> completed
                                                              \\-> failed

Nodes run strictly one after another; each provider call is awaited before
the next node is resolved. A node failure aborts the job but keeps the
outputs produced and the credits spent up to that point.

Events published per job (channel ``job:<jobId>``):

- ``job:status``      ``{status}`` for the job, ``{nodeId, nodeStatus}`` per node
- ``job:output``      one per declared output port with a value
- ``job:node_error``  ``{nodeId, error}`` when a node fails
- ``job:complete``    ``{outputs, creditsUsed}``
- ``job:error``       ``{error}``
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable

from app.models.node_definition import NodeDefinition
from app.models.node_registry import get_node
from app.models.workflow import Job, JobOutput, JobRequest, utcnow
from app.services.broadcaster import EventBroadcaster, JobChannel, job_channel
from app.services.credits import CreditLedger
from app.services.errors import EngineError, NodeExecutionError, UnknownNodeTypeError
from app.services.input_resolver import resolve_node_inputs
from app.services.job_queue import JobQueue
from app.services.job_store import JobStore
from app.services.providers import ProviderRegistry
from app.services.scheduler import schedule

logger = logging.getLogger(__name__)


@dataclass
class ExecutionContext:
    """Collaborators a job run needs; built once per process, shared by all jobs."""

    jobs: JobStore
    ledger: CreditLedger
    broadcaster: EventBroadcaster
    providers: ProviderRegistry = field(default_factory=ProviderRegistry)
    get_definition: Callable[[str], NodeDefinition | None] = get_node


@dataclass
class _RunState:
    outputs: list[JobOutput] = field(default_factory=list)
    node_outputs: dict[str, dict[str, Any]] = field(default_factory=dict)
    credits_used: int = 0


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


async def submit_job(
    ctx: ExecutionContext,
    queue: JobQueue,
    *,
    workspace_id: str,
    user_id: str,
    graph_snapshot,
    runtime_inputs: dict[str, Any] | None = None,
    workflow_id: str | None = None,
) -> tuple[Job, int]:
    """
    Create a queued job and hand it to the worker pool.

    Raises ``InsufficientCreditsError`` before anything is written when the
    pre-flight estimate exceeds the balance. Returns the job and the estimate.
    """
    estimate = await ctx.ledger.preflight(workspace_id, graph_snapshot.nodes, ctx.get_definition)

    request = JobRequest(
        job_id=str(uuid.uuid4()),
        workspace_id=workspace_id,
        user_id=user_id,
        workflow_id=workflow_id,
        graph_snapshot=graph_snapshot,
        runtime_inputs=runtime_inputs or {},
    )
    job = await ctx.jobs.create(
        Job(
            id=request.job_id,
            workflow_id=workflow_id,
            workspace_id=workspace_id,
            user_id=user_id,
            status="queued",
            workflow_snapshot=graph_snapshot,
            inputs=request.runtime_inputs,
        )
    )
    await queue.enqueue(request)
    logger.info(
        "Queued job %s for workspace %s (%d nodes, estimated %d credits)",
        job.id, workspace_id, len(graph_snapshot.nodes), estimate,
    )
    return job, estimate


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


async def _run_node(
    ctx: ExecutionContext,
    request: JobRequest,
    channel: JobChannel,
    state: _RunState,
    node,
    definition: NodeDefinition,
) -> None:
    snapshot = request.graph_snapshot
    resolved = resolve_node_inputs(
        node,
        snapshot.edges,
        state.node_outputs,
        request.runtime_inputs,
        definition=definition,
    )

    await channel.publish("job:status", {"nodeId": node.id, "nodeStatus": "running"})
    label = node.data.label or definition.label

    try:
        result = await ctx.providers.execute(definition, resolved)
        state.node_outputs[node.id] = result

        if definition.credit_cost > 0:
            await ctx.ledger.deduct(
                request.workspace_id,
                definition.credit_cost,
                f"Node: {definition.label}",
                job_id=request.job_id,
                user_id=request.user_id,
            )
            state.credits_used += definition.credit_cost
    except Exception as e:
        cause = str(e) or type(e).__name__
        if not isinstance(e, EngineError):
            logger.exception("Node %s (%s) raised unexpectedly", node.id, node.type)
        await channel.publish("job:node_error", {"nodeId": node.id, "error": cause})
        raise NodeExecutionError(node.id, label, cause) from e

    for port in definition.outputs:
        value = result.get(port.id)
        if value is None:
            continue
        output = JobOutput.from_value(node.id, port.id, port.type, value)
        state.outputs.append(output)
        await channel.publish("job:output", output.to_payload())

    await channel.publish("job:status", {"nodeId": node.id, "nodeStatus": "completed"})


def _lookup_definition(ctx: ExecutionContext, node) -> NodeDefinition:
    definition = ctx.get_definition(node.type)
    if definition is None:
        raise UnknownNodeTypeError(node.type)
    return definition


async def _mark_failed(ctx: ExecutionContext, request: JobRequest, state: _RunState, message: str) -> Job | None:
    try:
        return await ctx.jobs.update(
            request.job_id,
            status="failed",
            error=message,
            outputs=state.outputs,
            credits_used=state.credits_used,
            completed_at=utcnow(),
        )
    except Exception:
        logger.exception("Failed to persist failure for job %s", request.job_id)
        return None


async def run_job(request: JobRequest, ctx: ExecutionContext) -> Job | None:
    """
    Execute one job to completion. Never raises: every failure becomes a
    ``failed`` job plus a ``job:error`` event.
    """
    state = _RunState()
    snapshot = request.graph_snapshot

    async with job_channel(ctx.broadcaster, request.job_id) as channel:
        try:
            await ctx.ledger.preflight(request.workspace_id, snapshot.nodes, ctx.get_definition)

            await ctx.jobs.update(request.job_id, status="running", started_at=utcnow())
            await channel.publish("job:status", {"status": "running"})

            ordered = schedule(snapshot.nodes, snapshot.edges)

            for node in ordered:
                try:
                    definition = _lookup_definition(ctx, node)
                except UnknownNodeTypeError as e:
                    logger.warning("Skipping node %s: %s", node.id, e)
                    continue
                await _run_node(ctx, request, channel, state, node, definition)

            job = await ctx.jobs.update(
                request.job_id,
                status="completed",
                outputs=state.outputs,
                credits_used=state.credits_used,
                completed_at=utcnow(),
            )
            await channel.publish(
                "job:complete",
                {
                    "outputs": [o.to_payload() for o in state.outputs],
                    "creditsUsed": state.credits_used,
                },
            )
            logger.info("Job %s completed (%d credits used)", request.job_id, state.credits_used)
            return job

        except Exception as e:
            message = str(e) or type(e).__name__
            if isinstance(e, EngineError):
                logger.warning("Job %s failed: %s", request.job_id, message)
            else:
                logger.exception("Job %s failed unexpectedly", request.job_id)
            job = await _mark_failed(ctx, request, state, message)
            await channel.publish("job:error", {"error": message})
            return job
