"""
Input resolution: computes the parameter set a node executes with.

Sources, lowest to highest precedence:

1. declared parameter defaults from the node definition (when known)
2. the node's own saved parameters
3. upstream outputs wired in via edges (``source.sourceHandle`` -> ``targetHandle``)
4. run-time overrides keyed ``"<nodeId>.<paramKey>"``

Wiring beats saved values because connecting two nodes is how a user says
"use that instead". Run-time overrides beat wiring so batch runs can sweep a
parameter without editing the graph.
"""

from __future__ import annotations

import logging
from typing import Any

from app.models.node_definition import NodeDefinition
from app.models.workflow import WorkflowEdge, WorkflowNode

logger = logging.getLogger(__name__)


def resolve_node_inputs(
    node: WorkflowNode,
    edges: list[WorkflowEdge],
    node_outputs: dict[str, dict[str, Any]],
    global_inputs: dict[str, Any] | None = None,
    definition: NodeDefinition | None = None,
) -> dict[str, Any]:
    """
    Merge defaults, saved parameters, wired upstream outputs and run-time
    overrides into one flat mapping.

    An edge contributes nothing when its upstream node has not produced the
    referenced output, or when ``definition`` is given and does not declare
    the edge's target port.
    """
    resolved: dict[str, Any] = {}
    if definition is not None:
        resolved.update(definition.parameter_defaults())
    resolved.update(node.parameters)

    for edge in edges:
        if edge.target != node.id:
            continue

        if definition is not None and definition.input_port(edge.target_handle) is None:
            logger.warning(
                "Node %s (%s) has no input port '%s'; ignoring edge from %s",
                node.id,
                node.type,
                edge.target_handle,
                edge.source,
            )
            continue

        upstream = node_outputs.get(edge.source)
        if upstream is None:
            continue
        value = upstream.get(edge.source_handle)
        if value is not None:
            resolved[edge.target_handle] = value

    prefix = f"{node.id}."
    for key, value in (global_inputs or {}).items():
        if key.startswith(prefix):
            resolved[key[len(prefix):]] = value

    return resolved
