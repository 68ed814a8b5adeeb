"""
Workspace credit ledger.

The balance is the only state shared between concurrently running jobs, so
check-and-deduct must be atomic per workspace. The Supabase store delegates
that to Postgres functions that lock the workspace row
(``db/migrations/001_credit_functions.sql``). The in-memory store serializes
with one ``asyncio.Lock`` per workspace.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import defaultdict
from typing import Any, Iterable, Protocol

from app.db.supabase import get_supabase
from app.models.node_definition import NodeDefinition
from app.models.node_registry import get_node
from app.models.workflow import CreditTransaction, WorkflowNode
from app.services.errors import InsufficientCreditsError, WorkspaceNotFoundError

logger = logging.getLogger(__name__)

PLAN_CREDITS: dict[str, int] = {
    "free": 150,
    "starter": 1500,
    "pro": 4000,
    "team": 4500,
    "enterprise": 999999,
}


def estimate_workflow_cost(nodes: Iterable[WorkflowNode], get_definition=get_node) -> int:
    """Pre-flight estimate: sum of ``credit_cost`` over nodes with a registered type."""
    total = 0
    for node in nodes:
        definition: NodeDefinition | None = get_definition(node.type)
        if definition is not None:
            total += definition.credit_cost
    return total


def _validate_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValueError("Amount must be a positive integer")


class CreditStore(Protocol):
    async def get_balance(self, workspace_id: str) -> int: ...

    async def deduct(
        self,
        workspace_id: str,
        amount: int,
        reason: str,
        job_id: str | None = None,
        user_id: str | None = None,
    ) -> int: ...

    async def add(self, workspace_id: str, amount: int, reason: str, user_id: str | None = None) -> int: ...

    async def list_transactions(self, workspace_id: str, limit: int = 50) -> list[CreditTransaction]: ...


class InMemoryCreditStore:
    """Process-local ledger used for local runs and tests."""

    def __init__(self, balances: dict[str, int] | None = None):
        self._balances: dict[str, int] = dict(balances or {})
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.transactions: list[CreditTransaction] = []

    def set_balance(self, workspace_id: str, balance: int) -> None:
        self._balances[workspace_id] = balance

    async def get_balance(self, workspace_id: str) -> int:
        if workspace_id not in self._balances:
            raise WorkspaceNotFoundError(workspace_id)
        return self._balances[workspace_id]

    async def deduct(
        self,
        workspace_id: str,
        amount: int,
        reason: str,
        job_id: str | None = None,
        user_id: str | None = None,
    ) -> int:
        _validate_amount(amount)
        async with self._locks[workspace_id]:
            balance = await self.get_balance(workspace_id)
            if balance < amount:
                raise InsufficientCreditsError(amount, balance)
            # Suspends inside the lock; concurrent deductions still serialize.
            await asyncio.sleep(0)
            new_balance = balance - amount
            self._balances[workspace_id] = new_balance
            self.transactions.append(
                CreditTransaction(
                    id=str(uuid.uuid4()),
                    workspace_id=workspace_id,
                    user_id=user_id,
                    amount=-amount,
                    reason=reason,
                    job_id=job_id,
                )
            )
            return new_balance

    async def add(self, workspace_id: str, amount: int, reason: str, user_id: str | None = None) -> int:
        _validate_amount(amount)
        async with self._locks[workspace_id]:
            new_balance = await self.get_balance(workspace_id) + amount
            self._balances[workspace_id] = new_balance
            self.transactions.append(
                CreditTransaction(
                    id=str(uuid.uuid4()),
                    workspace_id=workspace_id,
                    user_id=user_id,
                    amount=amount,
                    reason=reason,
                )
            )
            return new_balance

    async def list_transactions(self, workspace_id: str, limit: int = 50) -> list[CreditTransaction]:
        return [t for t in self.transactions if t.workspace_id == workspace_id][:limit]


class SupabaseCreditStore:
    """Ledger backed by the ``workspaces`` and ``credit_transactions`` tables."""

    def __init__(self, client: Any = None):
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = get_supabase().client
        return self._client

    async def get_balance(self, workspace_id: str) -> int:
        def _query():
            return (
                self.client.table("workspaces")
                .select("credits")
                .eq("id", workspace_id)
                .limit(1)
                .execute()
            )

        result = await asyncio.to_thread(_query)
        if not result.data:
            raise WorkspaceNotFoundError(workspace_id)
        return int(result.data[0]["credits"])

    async def _rpc(self, fn: str, params: dict[str, Any]) -> dict[str, Any]:
        result = await asyncio.to_thread(lambda: self.client.rpc(fn, params).execute())
        data = result.data
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict):
            raise RuntimeError(f"{fn} returned no result")
        return data

    async def deduct(
        self,
        workspace_id: str,
        amount: int,
        reason: str,
        job_id: str | None = None,
        user_id: str | None = None,
    ) -> int:
        _validate_amount(amount)
        data = await self._rpc(
            "deduct_credits",
            {
                "p_workspace_id": workspace_id,
                "p_user_id": user_id,
                "p_amount": amount,
                "p_reason": reason,
                "p_job_id": job_id,
            },
        )
        if data.get("balance") is None:
            raise WorkspaceNotFoundError(workspace_id)
        if not data.get("ok"):
            raise InsufficientCreditsError(amount, int(data["balance"]))
        return int(data["balance"])

    async def add(self, workspace_id: str, amount: int, reason: str, user_id: str | None = None) -> int:
        _validate_amount(amount)
        data = await self._rpc(
            "add_credits",
            {
                "p_workspace_id": workspace_id,
                "p_user_id": user_id,
                "p_amount": amount,
                "p_reason": reason,
            },
        )
        if data.get("balance") is None:
            raise WorkspaceNotFoundError(workspace_id)
        return int(data["balance"])

    async def list_transactions(self, workspace_id: str, limit: int = 50) -> list[CreditTransaction]:
        result = await asyncio.to_thread(
            lambda: self.client.table("credit_transactions")
            .select("*")
            .eq("workspace_id", workspace_id)
            .order("created_at")
            .limit(limit)
            .execute()
        )
        return [CreditTransaction.model_validate(row) for row in result.data or []]


class CreditLedger:
    """Facade the engine talks to; logs every balance change."""

    def __init__(self, store: CreditStore):
        self.store = store

    async def get_balance(self, workspace_id: str) -> int:
        return await self.store.get_balance(workspace_id)

    async def deduct(
        self,
        workspace_id: str,
        amount: int,
        reason: str,
        job_id: str | None = None,
        user_id: str | None = None,
    ) -> int:
        new_balance = await self.store.deduct(workspace_id, amount, reason, job_id=job_id, user_id=user_id)
        logger.info(
            "Deducted %d credits from workspace %s (%s), balance now %d",
            amount, workspace_id, reason, new_balance,
        )
        return new_balance

    async def add(self, workspace_id: str, amount: int, reason: str, user_id: str | None = None) -> int:
        new_balance = await self.store.add(workspace_id, amount, reason, user_id=user_id)
        logger.info(
            "Added %d credits to workspace %s (%s), balance now %d",
            amount, workspace_id, reason, new_balance,
        )
        return new_balance

    async def preflight(self, workspace_id: str, nodes: Iterable[WorkflowNode], get_definition=get_node) -> int:
        """Raise ``InsufficientCreditsError`` when the estimate exceeds the balance; return the estimate."""
        required = estimate_workflow_cost(nodes, get_definition)
        available = await self.get_balance(workspace_id)
        if available < required:
            raise InsufficientCreditsError(required, available)
        return required

    async def grant_plan(self, workspace_id: str, plan: str, user_id: str | None = None) -> int:
        """Top up a workspace with its plan's allocation."""
        if plan not in PLAN_CREDITS:
            raise ValueError(f"Unknown plan: {plan}")
        return await self.add(workspace_id, PLAN_CREDITS[plan], f"plan:{plan}", user_id=user_id)

    async def list_transactions(self, workspace_id: str, limit: int = 50) -> list[CreditTransaction]:
        return await self.store.list_transactions(workspace_id, limit=limit)
