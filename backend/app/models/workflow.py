"""
Workflow graph and job models.

The editor ships graphs as camelCase JSON (``sourceHandle``, ``targetHandle``),
so these models accept both camelCase and snake_case input and dump with
camelCase aliases where the payload leaves the engine.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


JobStatus = Literal["queued", "running", "completed", "failed", "cancelled"]
NodeStatus = Literal["pending", "running", "completed", "error"]

TERMINAL_JOB_STATUSES: frozenset[str] = frozenset({"completed", "failed", "cancelled"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Graph
# ---------------------------------------------------------------------------


class NodePosition(BaseModel):
    x: float = 0
    y: float = 0


class WorkflowNodeData(_CamelModel):
    parameters: dict[str, Any] = Field(default_factory=dict)
    label: str | None = None


class WorkflowNode(_CamelModel):
    id: str
    type: str
    position: NodePosition = Field(default_factory=NodePosition)
    data: WorkflowNodeData = Field(default_factory=WorkflowNodeData)

    @property
    def parameters(self) -> dict[str, Any]:
        return self.data.parameters


class WorkflowEdge(_CamelModel):
    id: str | None = None
    source: str
    source_handle: str
    target: str
    target_handle: str


class GraphSnapshot(_CamelModel):
    nodes: list[WorkflowNode] = Field(default_factory=list)
    edges: list[WorkflowEdge] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


class JobOutput(_CamelModel):
    node_id: str
    port_id: str
    type: str
    url: str | None = None
    value: Any = None

    @classmethod
    def from_value(cls, node_id: str, port_id: str, port_type: str, value: Any) -> "JobOutput":
        # Strings are media URLs or text and travel under ``url``; everything else under ``value``.
        if isinstance(value, str):
            return cls(node_id=node_id, port_id=port_id, type=port_type, url=value)
        return cls(node_id=node_id, port_id=port_id, type=port_type, value=value)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class JobRequest(_CamelModel):
    """Everything a worker needs to run one job."""

    job_id: str
    workspace_id: str
    user_id: str
    workflow_id: str | None = None
    graph_snapshot: GraphSnapshot
    runtime_inputs: dict[str, Any] = Field(default_factory=dict)


class Job(_CamelModel):
    id: str
    workflow_id: str | None = None
    workspace_id: str
    user_id: str
    status: JobStatus = "queued"
    workflow_snapshot: GraphSnapshot = Field(default_factory=GraphSnapshot)
    inputs: dict[str, Any] = Field(default_factory=dict)
    outputs: list[JobOutput] = Field(default_factory=list)
    credits_used: int = 0
    error: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_JOB_STATUSES


class CreditTransaction(_CamelModel):
    id: str
    workspace_id: str
    user_id: str | None = None
    amount: int
    reason: str
    job_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class BroadcastEvent(BaseModel):
    event: str
    payload: dict[str, Any]
    timestamp: str

    @classmethod
    def create(cls, event: str, payload: dict[str, Any]) -> "BroadcastEvent":
        return cls(
            event=event,
            payload=payload,
            timestamp=utcnow().isoformat().replace("+00:00", "Z"),
        )
