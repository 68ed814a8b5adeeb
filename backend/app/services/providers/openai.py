"""
OpenAI adapter: prompt enhancement, image description and DALL-E 3.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from openai import APIConnectionError, APIStatusError, AsyncOpenAI, OpenAIError

from app import config
from app.models.node_definition import NodeDefinition
from app.services.errors import ProviderExecutionError
from app.services.providers.base import ProviderAdapter, adapter
from app.storage.r2 import MediaStorage

logger = logging.getLogger(__name__)

ENHANCER_SYSTEM_PROMPTS = {
    "detailed": (
        "You are an expert image prompt writer. Expand and improve the given prompt to be more "
        "detailed and descriptive. Return only the improved prompt, nothing else."
    ),
    "cinematic": (
        "You are a cinematographer. Rewrite this prompt in cinematic terms with camera angles, "
        "lighting, and mood. Return only the improved prompt."
    ),
    "artistic": (
        "You are an art director. Enhance this prompt with artistic style, technique, and "
        "aesthetic details. Return only the improved prompt."
    ),
    "photography": (
        "You are a professional photographer. Add technical photography details like lens, "
        "aperture, lighting setup. Return only the improved prompt."
    ),
    "minimal": "Clean up and slightly improve this prompt. Keep it concise. Return only the improved prompt.",
}

DESCRIBER_PROMPTS = {
    "prompt": (
        "Describe this image as a detailed AI image generation prompt. Be specific about style, "
        "subject, colors, lighting, composition."
    ),
    "descriptive": "Describe what you see in this image in natural language.",
    "technical": (
        "Provide a technical analysis of this image: composition, lighting, color palette, "
        "style, and technique."
    ),
}

DALLE_SIZES = {"1024x1024", "1792x1024", "1024x1792"}


@adapter("openai")
class OpenAIAdapter(ProviderAdapter):

    def __init__(self, storage: MediaStorage | None = None, client: AsyncOpenAI | None = None):
        super().__init__(storage)
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            # The SDK retries connection errors, 429 and 5xx itself.
            self._client = AsyncOpenAI(
                api_key=os.getenv("OPENAI_API_KEY"),
                max_retries=config.provider_retry_attempts() - 1,
            )
        return self._client

    async def dispatch(self, definition: NodeDefinition, inputs: dict[str, Any]) -> dict[str, Any]:
        try:
            if definition.id == "prompt-enhancer":
                return await self._enhance_prompt(definition.provider_model, inputs)
            if definition.id == "image-describer":
                return await self._describe_image(definition.provider_model, inputs)
            if definition.id == "dalle-3":
                return await self._generate_image(definition.provider_model, inputs)
        except OpenAIError as e:
            raise ProviderExecutionError(
                f"OpenAI request failed: {e}",
                provider=self.name,
                transient=isinstance(e, APIConnectionError)
                or (isinstance(e, APIStatusError) and (e.status_code == 429 or e.status_code >= 500)),
            ) from e
        raise ProviderExecutionError(f"Unhandled OpenAI node: {definition.id}", provider=self.name)

    async def _enhance_prompt(self, model: str, inputs: dict[str, Any]) -> dict[str, Any]:
        style = str(inputs.get("style") or "detailed")
        system = ENHANCER_SYSTEM_PROMPTS.get(style, ENHANCER_SYSTEM_PROMPTS["detailed"])
        completion = await self.client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": str(inputs.get("text") or "")},
            ],
            max_tokens=500,
        )
        return {"text": _first_message(completion)}

    async def _describe_image(self, model: str, inputs: dict[str, Any]) -> dict[str, Any]:
        image_url = inputs.get("image")
        if not isinstance(image_url, str) or not image_url:
            raise ProviderExecutionError("Image Describer needs an image URL", provider=self.name)
        style = str(inputs.get("style") or "prompt")
        prompt = DESCRIBER_PROMPTS.get(style, DESCRIBER_PROMPTS["prompt"])
        completion = await self.client.chat.completions.create(
            model=model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "image_url", "image_url": {"url": image_url}},
                        {"type": "text", "text": prompt},
                    ],
                }
            ],
            max_tokens=500,
        )
        return {"text": _first_message(completion)}

    async def _generate_image(self, model: str, inputs: dict[str, Any]) -> dict[str, Any]:
        size = inputs.get("size")
        response = await self.client.images.generate(
            model=model,
            prompt=str(inputs.get("prompt") or ""),
            n=1,
            size=size if size in DALLE_SIZES else "1024x1024",
            quality=inputs.get("quality") if inputs.get("quality") in ("standard", "hd") else "standard",
            style=inputs.get("style") if inputs.get("style") in ("vivid", "natural") else "vivid",
        )
        data = response.data or []
        image_url = data[0].url if data else None
        if not image_url:
            raise ProviderExecutionError("DALL-E 3 returned no image URL", provider=self.name)
        stored = await self.storage.mirror(image_url, "outputs/images", "image/png")
        return {"image": stored.url}


def _first_message(completion: Any) -> str:
    choices = getattr(completion, "choices", None) or []
    if not choices:
        return ""
    return choices[0].message.content or ""
