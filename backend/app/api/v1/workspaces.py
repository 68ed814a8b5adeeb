"""
Workspace credit endpoints: balance, history and manual top-ups.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ...services.engine import Engine
from ...services.errors import WorkspaceNotFoundError
from ..dependencies import get_engine

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


class TopUpRequest(BaseModel):
    amount: int = Field(..., gt=0, le=100000)
    userId: Optional[str] = None


@router.get("/{workspace_id}/credits")
async def get_credits(workspace_id: str, engine: Engine = Depends(get_engine)):
    try:
        balance = await engine.ledger.get_balance(workspace_id)
    except WorkspaceNotFoundError:
        raise HTTPException(status_code=404, detail="Workspace not found")
    transactions = await engine.ledger.list_transactions(workspace_id)
    return {
        "data": {
            "balance": balance,
            "transactions": [t.model_dump(by_alias=True, mode="json") for t in transactions],
        }
    }


@router.post("/{workspace_id}/credits/topup")
async def top_up_credits(workspace_id: str, request: TopUpRequest, engine: Engine = Depends(get_engine)):
    try:
        balance = await engine.ledger.add(workspace_id, request.amount, "manual-topup", user_id=request.userId)
    except WorkspaceNotFoundError:
        raise HTTPException(status_code=404, detail="Workspace not found")
    return {"data": {"balance": balance}}
