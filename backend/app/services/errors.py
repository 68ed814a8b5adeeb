"""
Engine error taxonomy.

Every failure the execution engine reports derives from ``EngineError`` so
that workers and routes can catch the family without swallowing unrelated
exceptions.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for workflow engine failures."""


class GraphCycleError(EngineError):
    """
    The graph contains one or more cycles.

    ``node_ids`` lists every node the scheduler could not place, in declaration
    order. ``cycle_node_ids`` narrows that to the nodes that sit on a cycle,
    leaving out nodes that are merely downstream of one.
    """

    def __init__(self, node_ids: list[str], cycle_node_ids: list[str] | None = None):
        self.node_ids = list(node_ids)
        self.cycle_node_ids = list(cycle_node_ids) if cycle_node_ids is not None else list(node_ids)
        super().__init__(
            "Workflow contains a cycle and cannot execute. "
            f"Cyclic nodes: {', '.join(self.cycle_node_ids)}"
        )


class UnknownNodeTypeError(EngineError):
    def __init__(self, node_type: str):
        self.node_type = node_type
        super().__init__(f"Unknown node type: {node_type}")


class UnknownProviderError(EngineError):
    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unknown provider: {provider}")


class ProviderExecutionError(EngineError):
    """A provider call failed or returned something the adapter could not use."""

    def __init__(self, message: str, *, provider: str | None = None, transient: bool = False):
        self.provider = provider
        self.transient = transient
        super().__init__(message)


class NodeExecutionError(EngineError):
    """A node failed; the message names the node by its label."""

    def __init__(self, node_id: str, label: str, cause: str):
        self.node_id = node_id
        self.label = label
        self.cause = cause
        super().__init__(f"Node '{label}' failed: {cause}")


class InsufficientCreditsError(EngineError):
    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(f"Insufficient credits: need {required}, have {available}")


class WorkspaceNotFoundError(EngineError):
    def __init__(self, workspace_id: str):
        self.workspace_id = workspace_id
        super().__init__(f"Workspace {workspace_id} not found")


class JobNotFoundError(EngineError):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job {job_id} not found")


class MirrorError(EngineError):
    """Copying a remote media file into durable storage failed."""
