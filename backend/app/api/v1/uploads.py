"""
Upload endpoints. Browsers upload media straight to the bucket with a
pre-signed URL and then reference the public URL from an Import node.
"""
import re

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ...services.engine import Engine
from ..dependencies import get_engine

router = APIRouter(prefix="/uploads", tags=["uploads"])

ALLOWED_PREFIXES = ("image/", "video/", "audio/")
FOLDER_RE = re.compile(r"^[a-z0-9][a-z0-9_\-/]*$")


class PresignedUploadRequest(BaseModel):
    contentType: str
    folder: str = "user-uploads"


@router.post("/presigned")
async def create_presigned_upload(request: PresignedUploadRequest, engine: Engine = Depends(get_engine)):
    if not request.contentType.startswith(ALLOWED_PREFIXES):
        raise HTTPException(status_code=400, detail=f"Unsupported content type: {request.contentType}")
    if not FOLDER_RE.fullmatch(request.folder) or ".." in request.folder:
        raise HTTPException(status_code=400, detail="Invalid folder")
    try:
        return engine.storage.presigned_upload_url(request.folder, request.contentType)
    except ValueError as e:
        raise HTTPException(status_code=503, detail=f"Storage is not configured: {str(e)}")
