"""
Gemini adapter for Imagen text-to-image models.

Imagen returns raw image bytes rather than a hosted URL, so the first image
is uploaded to our bucket. If that upload fails the node still succeeds with
a ``data:`` URL.
"""

from __future__ import annotations

import base64
import logging
import os
from typing import Any

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from app.models.node_definition import NodeDefinition
from app.services.errors import ProviderExecutionError
from app.services.providers.base import ProviderAdapter, adapter, call_with_retries
from app.storage.r2 import MediaStorage

logger = logging.getLogger(__name__)


@adapter("gemini")
class GeminiAdapter(ProviderAdapter):

    def __init__(self, storage: MediaStorage | None = None, client: genai.Client | None = None):
        super().__init__(storage)
        self._client = client

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=os.getenv("GEMINI_API_KEY"))
        return self._client

    async def _generate(self, model: str, prompt: str, sample_count: int, aspect_ratio: str):
        try:
            return await self.client.aio.models.generate_images(
                model=model,
                prompt=prompt,
                config=types.GenerateImagesConfig(
                    number_of_images=sample_count,
                    aspect_ratio=aspect_ratio,
                ),
            )
        except genai_errors.APIError as e:
            raise ProviderExecutionError(
                f"Gemini API error {e.code}: {e.message}",
                provider=self.name,
                transient=isinstance(e, genai_errors.ServerError) or e.code == 429,
            ) from e

    async def dispatch(self, definition: NodeDefinition, inputs: dict[str, Any]) -> dict[str, Any]:
        prompt = str(inputs.get("prompt") or "")
        try:
            sample_count = int(inputs.get("sampleCount") or 1)
        except (TypeError, ValueError):
            sample_count = 1
        aspect_ratio = str(inputs.get("aspectRatio") or "1:1")

        response = await call_with_retries(
            lambda: self._generate(definition.provider_model, prompt, sample_count, aspect_ratio),
            provider=self.name,
        )

        generated = [
            g for g in (getattr(response, "generated_images", None) or [])
            if g.image is not None and g.image.image_bytes
        ]
        if not generated:
            raise ProviderExecutionError("Gemini API returned no images", provider=self.name)

        image = generated[0].image
        mime_type = image.mime_type or "image/png"
        try:
            stored = await self.storage.upload_bytes(
                image.image_bytes, folder="outputs/images", content_type=mime_type
            )
            return {"image": stored.url}
        except Exception as e:
            logger.warning("Uploading Imagen output failed, returning inline data: %s", e)
            encoded = base64.b64encode(image.image_bytes).decode("ascii")
            return {"image": f"data:{mime_type};base64,{encoded}"}
