"""
Execution scheduler: orders workflow nodes with Kahn's algorithm.

Zero in-degree nodes are seeded in declaration order, so disconnected nodes
run in the order the graph lists them and the output is deterministic for a
given snapshot. Any node left unscheduled sits on, or behind, a cycle.
"""

from __future__ import annotations

import logging
from collections import deque

from app.models.workflow import WorkflowEdge, WorkflowNode
from app.services.errors import GraphCycleError

logger = logging.getLogger(__name__)


def build_dependency_graph(
    nodes: list[WorkflowNode],
    edges: list[WorkflowEdge],
) -> tuple[dict[str, int], dict[str, list[str]]]:
    """
    Build dependency tracking structures from graph edges.

    Returns:
        in_degree: count of distinct upstream nodes for each node
        adjacency: node -> downstream nodes, in edge order

    Several edges between the same pair of nodes (different ports) count as a
    single dependency. Edges that reference nodes outside ``nodes`` are ignored.
    """
    in_degree: dict[str, int] = {n.id: 0 for n in nodes}
    adjacency: dict[str, list[str]] = {n.id: [] for n in nodes}
    upstream: dict[str, set[str]] = {n.id: set() for n in nodes}

    for edge in edges:
        if edge.source not in in_degree or edge.target not in in_degree:
            logger.debug(
                "Ignoring edge %s -> %s: endpoint not in graph", edge.source, edge.target
            )
            continue
        if edge.source in upstream[edge.target]:
            continue
        upstream[edge.target].add(edge.source)
        in_degree[edge.target] += 1
        adjacency[edge.source].append(edge.target)

    return in_degree, adjacency


def _cycle_members(remaining: set[str], adjacency: dict[str, list[str]]) -> list[str]:
    """Strip nodes that only lead out of the remainder; what survives lies on a cycle."""
    members = set(remaining)
    changed = True
    while changed:
        changed = False
        for node_id in list(members):
            if not any(child in members for child in adjacency[node_id]):
                members.discard(node_id)
                changed = True
    return [nid for nid in adjacency if nid in members]


def schedule(nodes: list[WorkflowNode], edges: list[WorkflowEdge]) -> list[WorkflowNode]:
    """
    Return ``nodes`` in a valid execution order.

    Raises:
        GraphCycleError: naming the nodes that sit on a cycle; every unscheduled
            node is still available on ``node_ids``.
    """
    in_degree, adjacency = build_dependency_graph(nodes, edges)
    node_map = {n.id: n for n in nodes}

    queue: deque[str] = deque(n.id for n in nodes if in_degree[n.id] == 0)
    order: list[WorkflowNode] = []
    seen: set[str] = set()

    while queue:
        node_id = queue.popleft()
        if node_id in seen:
            continue
        seen.add(node_id)
        order.append(node_map[node_id])
        for downstream in adjacency[node_id]:
            in_degree[downstream] -= 1
            if in_degree[downstream] == 0:
                queue.append(downstream)

    if len(order) < len(node_map):
        unscheduled = [n.id for n in nodes if n.id not in seen]
        cyclic = _cycle_members(set(unscheduled), adjacency)
        logger.warning(
            "Cycle detected: %d unscheduled node(s), %d on a cycle",
            len(unscheduled),
            len(cyclic),
        )
        raise GraphCycleError(unscheduled, cycle_node_ids=cyclic)

    return order
