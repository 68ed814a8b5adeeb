"""
Node type registry: source of truth for what each node type accepts,
produces, costs and which provider fulfils it.

Keys match the editor's node ``type`` values. Handle ids on edges are the
``id`` of the ports declared here.
"""

from __future__ import annotations

from app.models.node_definition import NodeCategory, NodeDefinition
from app.models.nodes.helper import HELPER_NODES
from app.models.nodes.image_edit import IMAGE_EDIT_NODES
from app.models.nodes.image_gen import IMAGE_GEN_NODES
from app.models.nodes.video_gen import VIDEO_GEN_NODES


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

ALL_NODES: list[NodeDefinition] = [
    *IMAGE_GEN_NODES,
    *VIDEO_GEN_NODES,
    *IMAGE_EDIT_NODES,
    *HELPER_NODES,
]

NODE_REGISTRY: dict[str, NodeDefinition] = {node.id: node for node in ALL_NODES}

CATEGORY_META: dict[str, dict[str, object]] = {
    "image-gen": {"label": "Image Generation", "order": 1},
    "video-gen": {"label": "Video Generation", "order": 2},
    "image-edit": {"label": "Image Editing", "order": 3},
    "video-edit": {"label": "Video Editing", "order": 4},
    "audio": {"label": "Audio", "order": 5},
    "3d": {"label": "3D", "order": 6},
    "lipsync": {"label": "Lip Sync", "order": 7},
    "vector": {"label": "Vector / SVG", "order": 8},
    "text": {"label": "Text & LLM", "order": 9},
    "data": {"label": "Data", "order": 10},
    "helper": {"label": "Helper", "order": 11},
}


def get_node(node_type: str) -> NodeDefinition | None:
    """Look up a node definition, returning None if unknown."""
    return NODE_REGISTRY.get(node_type)


def get_nodes_by_category(category: NodeCategory | str) -> list[NodeDefinition]:
    return [node for node in ALL_NODES if node.category == category]
