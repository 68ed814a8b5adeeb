"""
Graph validator: save-time checks for an editor graph.

The execution engine does not run these checks: it tolerates
unknown node types and unknown ports. Validation exists so that a graph can
be rejected when it is saved, before ambiguous wiring (two edges into one
input port) ever reaches a run.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Callable, Literal

from pydantic import BaseModel, Field

from app.models.node_definition import NodeDefinition
from app.models.node_registry import get_node
from app.models.workflow import WorkflowEdge, WorkflowNode
from app.services.errors import GraphCycleError
from app.services.scheduler import schedule


class GraphDiagnostic(BaseModel):
    level: Literal["error", "warning"]
    message: str
    node_id: str | None = None
    field: str | None = None


class ValidationResult(BaseModel):
    success: bool
    diagnostics: list[GraphDiagnostic] = Field(default_factory=list)
    execution_order: list[str] = Field(default_factory=list)


def validate_graph(
    nodes: list[WorkflowNode],
    edges: list[WorkflowEdge],
    *,
    get_definition: Callable[[str], NodeDefinition | None] = get_node,
) -> ValidationResult:
    """Validate a graph, returning every problem found rather than the first."""
    diagnostics: list[GraphDiagnostic] = []

    # 1. Node ids
    node_map: dict[str, WorkflowNode] = {}
    for node in nodes:
        if not node.id:
            diagnostics.append(GraphDiagnostic(level="error", message="Node missing 'id' field"))
            continue
        if node.id in node_map:
            diagnostics.append(GraphDiagnostic(
                level="error",
                message=f"Duplicate node ID '{node.id}'",
                node_id=node.id,
            ))
            continue
        node_map[node.id] = node

    if not node_map:
        diagnostics.append(GraphDiagnostic(
            level="error",
            message="Workflow must contain at least one node",
        ))
        return ValidationResult(success=False, diagnostics=diagnostics)

    for nid, node in node_map.items():
        if get_definition(node.type) is None:
            diagnostics.append(GraphDiagnostic(
                level="warning",
                message=f"Unknown node type '{node.type}' (it will be skipped at run time)",
                node_id=nid,
            ))

    # 2. Edges
    input_connections: dict[tuple[str, str], list[WorkflowEdge]] = defaultdict(list)
    for edge in edges:
        if edge.source == edge.target:
            diagnostics.append(GraphDiagnostic(
                level="error",
                message=f"Node '{edge.source}' cannot be connected to itself",
                node_id=edge.source,
            ))
            continue
        if edge.source not in node_map:
            diagnostics.append(GraphDiagnostic(
                level="error",
                message=f"Edge references unknown source node '{edge.source}'",
            ))
            continue
        if edge.target not in node_map:
            diagnostics.append(GraphDiagnostic(
                level="error",
                message=f"Edge references unknown target node '{edge.target}'",
            ))
            continue

        src_def = get_definition(node_map[edge.source].type)
        tgt_def = get_definition(node_map[edge.target].type)

        if src_def and src_def.output_port(edge.source_handle) is None:
            diagnostics.append(GraphDiagnostic(
                level="warning",
                message=f"Node '{edge.source}' has no output port '{edge.source_handle}'",
                node_id=edge.source,
                field=edge.source_handle,
            ))
        if tgt_def and tgt_def.input_port(edge.target_handle) is None:
            diagnostics.append(GraphDiagnostic(
                level="warning",
                message=f"Node '{edge.target}' has no input port '{edge.target_handle}'",
                node_id=edge.target,
                field=edge.target_handle,
            ))

        input_connections[(edge.target, edge.target_handle)].append(edge)

    # Only one connection per input port; otherwise the winner depends on edge order.
    for (node_id, input_key), conns in input_connections.items():
        if len(conns) > 1:
            diagnostics.append(GraphDiagnostic(
                level="error",
                message=(
                    f"Multiple edges connect to input '{input_key}' of node '{node_id}' "
                    "(only one connection per input allowed)"
                ),
                node_id=node_id,
                field=input_key,
            ))

    # 3. Cycles
    execution_order: list[str] = []
    try:
        execution_order = [n.id for n in schedule(list(node_map.values()), edges)]
    except GraphCycleError as exc:
        for nid in exc.cycle_node_ids:
            diagnostics.append(GraphDiagnostic(
                level="error",
                message=f"Node '{nid}' is part of a cycle",
                node_id=nid,
            ))

    success = not any(d.level == "error" for d in diagnostics)
    return ValidationResult(
        success=success,
        diagnostics=diagnostics,
        execution_order=execution_order if success else [],
    )
