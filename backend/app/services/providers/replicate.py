"""
Replicate adapter.

Talks to the HTTP API directly: create a prediction for an official model
(``owner/name``) with ``Prefer: wait``, then poll until it reaches a
terminal status.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Callable

import httpx

from app import config
from app.models.node_definition import NodeDefinition
from app.services.errors import ProviderExecutionError
from app.services.providers.base import (
    ProviderAdapter,
    adapter,
    call_with_retries,
    is_transient_http_error,
)
from app.storage.r2 import MediaStorage

logger = logging.getLogger(__name__)

REPLICATE_API = "https://api.replicate.com/v1"
TERMINAL_STATUSES = {"succeeded", "failed", "canceled"}
MEDIA_PORT_TYPES = ("image", "video", "audio")

_MEDIA_FOLDERS = {
    "image": ("outputs/images", "image/png"),
    "video": ("outputs/videos", "video/mp4"),
    "audio": ("outputs/audio", "audio/mpeg"),
}


@adapter("replicate")
class ReplicateAdapter(ProviderAdapter):

    def __init__(
        self,
        storage: MediaStorage | None = None,
        http_client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ):
        super().__init__(storage)
        self._http_client_factory = http_client_factory or self._default_client

    @staticmethod
    def _default_client() -> httpx.AsyncClient:
        token = os.getenv("REPLICATE_API_TOKEN", "")
        return httpx.AsyncClient(
            base_url=REPLICATE_API,
            headers={"Authorization": f"Bearer {token}"},
            timeout=120.0,
        )

    async def _request(self, http: httpx.AsyncClient, method: str, url: str, **kwargs) -> dict[str, Any]:
        try:
            resp = await http.request(method, url, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPError as e:
            raise ProviderExecutionError(
                f"Replicate request failed: {e}",
                provider=self.name,
                transient=is_transient_http_error(e),
            ) from e

    async def dispatch(self, definition: NodeDefinition, inputs: dict[str, Any]) -> dict[str, Any]:
        model = definition.provider_model
        async with self._http_client_factory() as http:
            prediction = await call_with_retries(
                lambda: self._request(
                    http,
                    "POST",
                    f"/models/{model}/predictions",
                    json={"input": inputs},
                    headers={"Prefer": "wait"},
                ),
                provider=self.name,
            )
            poll_interval = config.replicate_poll_interval()
            while prediction.get("status") not in TERMINAL_STATUSES:
                await asyncio.sleep(poll_interval)
                prediction = await call_with_retries(
                    lambda: self._request(http, "GET", f"/predictions/{prediction['id']}"),
                    provider=self.name,
                )

        status = prediction.get("status")
        if status != "succeeded":
            detail = prediction.get("error") or status
            raise ProviderExecutionError(f"Replicate prediction {status}: {detail}", provider=self.name)

        return await self.normalize(definition, prediction.get("output"))

    async def normalize(self, definition: NodeDefinition, output: Any) -> dict[str, Any]:
        if isinstance(output, dict):
            return output

        port = next((p for p in definition.outputs if p.type in MEDIA_PORT_TYPES), None)
        if port is None:
            fallback = definition.outputs[0].id if definition.outputs else "output"
            return {fallback: output}

        urls = output if isinstance(output, list) else [output]
        first = next((u for u in urls if isinstance(u, str) and u), None)
        if first is None:
            raise ProviderExecutionError("Replicate prediction returned no output", provider=self.name)

        folder, content_type = _MEDIA_FOLDERS[port.type]
        stored = await self.storage.mirror(first, folder, content_type)
        return {port.id: stored.url}
