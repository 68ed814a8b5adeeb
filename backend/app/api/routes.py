from fastapi import APIRouter
from .v1 import jobs, nodes, uploads, workflows, workspaces

api_router = APIRouter(prefix="/api", tags=["workflow-engine"])

api_router.include_router(jobs.router, prefix="/v1")
api_router.include_router(nodes.router, prefix="/v1")
api_router.include_router(workflows.router, prefix="/v1")
api_router.include_router(workspaces.router, prefix="/v1")
api_router.include_router(uploads.router, prefix="/v1")

@api_router.get("/")
def read_root():
    return {"message": "Haus Node workflow engine"}
