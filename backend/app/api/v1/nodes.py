"""
Node catalogue endpoints. Read-only views over the node registry.
"""
from fastapi import APIRouter, HTTPException

from ...models.node_registry import ALL_NODES, CATEGORY_META, get_node, get_nodes_by_category

router = APIRouter(prefix="/nodes", tags=["nodes"])


def _dump(definition) -> dict:
    return definition.model_dump(by_alias=True, exclude_none=True)


@router.get("")
async def list_nodes():
    return {
        "data": [_dump(n) for n in ALL_NODES],
        "categories": CATEGORY_META,
        "total": len(ALL_NODES),
    }


@router.get("/category/{category}")
async def list_nodes_in_category(category: str):
    return {"data": [_dump(n) for n in get_nodes_by_category(category)]}


@router.get("/{node_id}")
async def get_node_definition(node_id: str):
    definition = get_node(node_id)
    if definition is None:
        raise HTTPException(status_code=404, detail="Node not found")
    return {"data": _dump(definition)}
