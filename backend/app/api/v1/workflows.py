"""
Workflow graph endpoints.

Validation runs when a graph is saved; the engine itself accepts any graph
and only refuses cycles at run time.
"""
from fastapi import APIRouter, HTTPException

from ...models.workflow import GraphSnapshot
from ...services.graph_validator import validate_graph

router = APIRouter(prefix="/workflows", tags=["workflows"])


@router.post("/validate")
async def validate_workflow(graph: GraphSnapshot):
    """
    Check a graph for structural problems.

    Returns 422 with the diagnostics when any error is found; warnings alone
    still validate.
    """
    result = validate_graph(graph.nodes, graph.edges)
    if not result.success:
        raise HTTPException(
            status_code=422,
            detail={
                "message": "Workflow validation failed",
                "diagnostics": [d.model_dump() for d in result.diagnostics],
            },
        )
    return {"data": result.model_dump()}
