"""
FastAPI dependencies for the engine.

The engine is created in the app lifespan and stored on ``app.state``.
Tests replace it with ``app.dependency_overrides[get_engine]``.
"""
from fastapi import HTTPException, Request, WebSocket, WebSocketException

from ..services.engine import Engine


def get_engine(request: Request) -> Engine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Engine not started")
    return engine


def get_ws_engine(websocket: WebSocket) -> Engine:
    engine = getattr(websocket.app.state, "engine", None)
    if engine is None:
        raise WebSocketException(code=1011, reason="Engine not started")
    return engine
