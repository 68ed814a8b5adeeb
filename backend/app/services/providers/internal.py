"""
Built-in helper nodes. Pure functions of their inputs: no network, no cost.
"""

from __future__ import annotations

import logging
from typing import Any

from app.models.node_definition import NodeDefinition
from app.services.providers.base import ProviderAdapter, adapter, random_seed

logger = logging.getLogger(__name__)


def _as_number(value: Any) -> int | float:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    try:
        text = str(value).strip()
        return float(text) if "." in text else int(text)
    except (TypeError, ValueError):
        return 0


def _seed(value: Any) -> int:
    if value in (None, "", -1, "-1"):
        return random_seed()
    number = _as_number(value)
    return int(number) if number else random_seed()


@adapter("internal")
class InternalAdapter(ProviderAdapter):

    async def dispatch(self, definition: NodeDefinition, inputs: dict[str, Any]) -> dict[str, Any]:
        model = definition.provider_model

        if model == "internal/text":
            value = inputs.get("value")
            return {"text": value if value is not None else ""}

        if model == "internal/number":
            return {"number": _as_number(inputs.get("value", 0))}

        if model == "internal/seed":
            return {"seed": _seed(inputs.get("value"))}

        if model == "internal/import":
            # Same URL on every media port; downstream wiring picks the one it needs.
            url = inputs.get("url")
            return {"image": url, "video": url, "audio": url}

        if model == "internal/export":
            return dict(inputs)

        if model == "internal/preview":
            for key in ("media", "image", "video", "audio"):
                if inputs.get(key) is not None:
                    return {"media": inputs[key]}
            return {"media": None}

        if model == "internal/text-iterator":
            return {"text": inputs.get("items")}

        logger.warning("Unhandled internal model %s, passing inputs through", model)
        return dict(inputs)
