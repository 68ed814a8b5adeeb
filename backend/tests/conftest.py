"""
Shared fixtures: graph builders, an in-memory engine and fake providers.
"""

import sys
from pathlib import Path
from typing import Any, Awaitable, Callable

import pytest

backend_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend_root))

from app.models.node_definition import NodeDefinition
from app.models.workflow import WorkflowEdge, WorkflowNode
from app.services.broadcaster import InMemoryBroadcaster
from app.services.credits import CreditLedger, InMemoryCreditStore
from app.services.job_executor import ExecutionContext
from app.services.job_store import InMemoryJobStore
from app.services.providers import ProviderAdapter, ProviderRegistry
from app.storage.r2 import StoredObject


WORKSPACE = "ws-1"
USER = "user-1"


def make_node(node_id: str, node_type: str = "text-input", label: str | None = None, **params: Any) -> WorkflowNode:
    return WorkflowNode(id=node_id, type=node_type, data={"parameters": params, "label": label})


def make_edge(source: str, source_handle: str, target: str, target_handle: str) -> WorkflowEdge:
    return WorkflowEdge(
        id=f"{source}.{source_handle}->{target}.{target_handle}",
        source=source,
        source_handle=source_handle,
        target=target,
        target_handle=target_handle,
    )


class FakeStorage:
    """Stands in for MediaStorage; records what would have been stored."""

    def __init__(self, fail_mirror: bool = False):
        self.fail_mirror = fail_mirror
        self.mirrored: list[tuple[str, str]] = []
        self.uploaded: list[tuple[bytes, str, str]] = []

    async def mirror(self, remote_url: str, folder: str, content_type: str | None = None) -> StoredObject:
        self.mirrored.append((remote_url, folder))
        if self.fail_mirror:
            return StoredObject(url=remote_url, key="")
        name = remote_url.rsplit("/", 1)[-1]
        return StoredObject(url=f"https://cdn.test/{folder}/{name}", key=f"{folder}/{name}")

    async def upload_bytes(self, data: bytes, *, folder: str = "uploads", content_type: str = "application/octet-stream") -> StoredObject:
        self.uploaded.append((data, folder, content_type))
        return StoredObject(url=f"https://cdn.test/{folder}/upload-{len(self.uploaded)}", key=f"{folder}/upload")

    def presigned_upload_url(self, folder: str, content_type: str, expires_in: int = 3600) -> dict[str, str]:
        key = f"{folder}/presigned"
        return {"uploadUrl": f"https://bucket.test/{key}?sig=1", "key": key, "publicUrl": f"https://cdn.test/{key}"}


Handler = Callable[[NodeDefinition, dict[str, Any]], Awaitable[dict[str, Any]]]


class FakeAdapter(ProviderAdapter):
    """Runs the real preparation pipeline, then hands the call to ``handler``."""

    def __init__(self, provider: str, handler: Handler):
        super().__init__(storage=FakeStorage())
        self.name = provider
        self.handler = handler
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def dispatch(self, definition: NodeDefinition, inputs: dict[str, Any]) -> dict[str, Any]:
        self.calls.append((definition.id, dict(inputs)))
        return await self.handler(definition, inputs)


async def enhance_prompt(definition: NodeDefinition, inputs: dict[str, Any]) -> dict[str, Any]:
    return {"text": f"enhanced: {inputs.get('text', '')}"}


@pytest.fixture
def credit_store() -> InMemoryCreditStore:
    return InMemoryCreditStore({WORKSPACE: 100})


@pytest.fixture
def broadcaster() -> InMemoryBroadcaster:
    return InMemoryBroadcaster()


@pytest.fixture
def job_store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest.fixture
def openai_adapter() -> FakeAdapter:
    return FakeAdapter("openai", enhance_prompt)


@pytest.fixture
def ctx(job_store, credit_store, broadcaster, openai_adapter) -> ExecutionContext:
    storage = FakeStorage()
    return ExecutionContext(
        jobs=job_store,
        ledger=CreditLedger(credit_store),
        broadcaster=broadcaster,
        providers=ProviderRegistry(storage=storage, overrides={"openai": openai_adapter}),
    )
