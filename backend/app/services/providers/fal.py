"""
fal.ai adapter.

Calls go through ``fal_client``'s queue API (submit, then wait for the
result). Generated media is mirrored into our bucket before it is returned.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Awaitable, Callable

import fal_client

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

FalSubscribe = Callable[[str, dict[str, Any]], Awaitable[dict[str, Any]]]


def _default_subscribe() -> FalSubscribe:
    client = fal_client.AsyncClient(key=os.getenv("FAL_KEY"))

    async def subscribe(model: str, arguments: dict[str, Any]) -> dict[str, Any]:
        return await client.subscribe(model, arguments=arguments)

    return subscribe


def _unwrap(result: Any) -> dict[str, Any]:
    if isinstance(result, dict) and isinstance(result.get("data"), dict):
        return result["data"]
    if isinstance(result, dict):
        return result
    raise ProviderExecutionError(f"Unexpected fal response: {type(result).__name__}", provider="fal")


def _media_url(value: Any) -> str | None:
    if isinstance(value, dict) and isinstance(value.get("url"), str):
        return value["url"]
    return None


@adapter("fal")
class FalAdapter(ProviderAdapter):

    def __init__(self, storage: MediaStorage | None = None, subscribe: FalSubscribe | None = None):
        super().__init__(storage)
        self._subscribe = subscribe

    @property
    def subscribe(self) -> FalSubscribe:
        if self._subscribe is None:
            self._subscribe = _default_subscribe()
        return self._subscribe

    async def _call(self, model: str, arguments: dict[str, Any]) -> dict[str, Any]:
        try:
            return await self.subscribe(model, arguments)
        except ProviderExecutionError:
            raise
        except Exception as e:
            raise ProviderExecutionError(
                f"fal request to {model} failed: {e}",
                provider=self.name,
                transient=is_transient_http_error(e),
            ) from e

    async def dispatch(self, definition: NodeDefinition, inputs: dict[str, Any]) -> dict[str, Any]:
        model = definition.provider_model
        logger.info("Submitting fal request to %s", model)
        raw = await call_with_retries(lambda: self._call(model, inputs), provider=self.name)
        return await self.normalize(_unwrap(raw))

    async def normalize(self, output: dict[str, Any]) -> dict[str, Any]:
        """Flatten a fal payload into port outputs, mirroring any media it points to."""
        images = output.get("images")
        if isinstance(images, list) and images:
            first = _media_url(images[0])
            if first:
                stored = await self.storage.mirror(first, "outputs/images", "image/png")
                return {"image": stored.url, "images": images}

        video_url = _media_url(output.get("video"))
        if video_url:
            stored = await self.storage.mirror(video_url, "outputs/videos", "video/mp4")
            return {"video": stored.url}

        image_url = _media_url(output.get("image"))
        if image_url:
            stored = await self.storage.mirror(image_url, "outputs/images", "image/png")
            return {"image": stored.url}

        audio_url = _media_url(output.get("audio"))
        if audio_url:
            stored = await self.storage.mirror(audio_url, "outputs/audio", "audio/mpeg")
            return {"audio": stored.url}

        return output
