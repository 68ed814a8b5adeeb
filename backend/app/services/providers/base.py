"""
Provider adapter base class and registry.

Every adapter runs the same preparation pipeline before dispatching:

1. numeric strings become numbers, except for text-typed parameters/ports
2. ``seed == -1`` becomes a fresh random seed
3. graph port names are remapped to the provider's field names

Subclasses only implement ``dispatch``. Any non-engine exception raised
there is wrapped in ``ProviderExecutionError``.
"""

from __future__ import annotations

import asyncio
import logging
import re
import secrets
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, ClassVar, TypeVar

import httpx

from app import config
from app.models.node_definition import NodeDefinition
from app.services.errors import EngineError, ProviderExecutionError, UnknownProviderError
from app.services.providers.remapping import remap_fields
from app.storage.r2 import MediaStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_SEED = 2_147_483_647
_NUMERIC_RE = re.compile(r"-?[0-9]+(\.[0-9]+)?")


def random_seed() -> int:
    """Uniform seed in ``[0, MAX_SEED - 1]``."""
    return secrets.randbelow(MAX_SEED)


def coerce_numeric(definition: NodeDefinition | None, inputs: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in inputs.items():
        if (
            isinstance(value, str)
            and _NUMERIC_RE.fullmatch(value)
            and not (definition is not None and definition.declares_text(key))
        ):
            out[key] = float(value) if "." in value else int(value)
        else:
            out[key] = value
    return out


def normalize_seed(inputs: dict[str, Any]) -> dict[str, Any]:
    if inputs.get("seed") == -1:
        return {**inputs, "seed": random_seed()}
    return inputs


async def call_with_retries(
    call: Callable[[], Awaitable[T]],
    *,
    provider: str,
    attempts: int | None = None,
) -> T:
    """
    Await ``call``, retrying transient ``ProviderExecutionError``s.

    ``attempts`` counts the first try, so the default of 1 never retries.
    """
    total = attempts if attempts is not None else config.provider_retry_attempts()
    for attempt in range(1, total + 1):
        try:
            return await call()
        except ProviderExecutionError as e:
            if not e.transient or attempt >= total:
                raise
            delay = min(2 ** (attempt - 1), 8)
            logger.warning(
                "%s call failed (attempt %d/%d), retrying in %ss: %s",
                provider, attempt, total, delay, e,
            )
            await asyncio.sleep(delay)
    raise ProviderExecutionError(f"{provider} call was never attempted", provider=provider)


class ProviderAdapter(ABC):
    name: ClassVar[str]

    def __init__(self, storage: MediaStorage | None = None):
        self.storage = storage or MediaStorage()

    def prepare(self, definition: NodeDefinition, inputs: dict[str, Any]) -> dict[str, Any]:
        prepared = coerce_numeric(definition, inputs)
        prepared = normalize_seed(prepared)
        return remap_fields(self.name, definition.provider_model, prepared)

    async def execute(self, definition: NodeDefinition, resolved_inputs: dict[str, Any]) -> dict[str, Any]:
        prepared = self.prepare(definition, resolved_inputs)
        try:
            return await self.dispatch(definition, prepared)
        except EngineError:
            raise
        except Exception as e:
            raise ProviderExecutionError(str(e) or type(e).__name__, provider=self.name) from e

    @abstractmethod
    async def dispatch(self, definition: NodeDefinition, inputs: dict[str, Any]) -> dict[str, Any]:
        """Call the provider and return outputs keyed by output port id."""


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_registry: dict[str, type[ProviderAdapter]] = {}


def adapter(provider: str):
    """
    Decorator that registers an adapter class for a provider name.

    Usage:
        @adapter("fal")
        class FalAdapter(ProviderAdapter):
            async def dispatch(self, definition, inputs): ...
    """
    def decorator(cls: type[ProviderAdapter]):
        cls.name = provider
        _registry[provider] = cls
        return cls
    return decorator


def registered_providers() -> list[str]:
    return sorted(_registry)


class ProviderRegistry:
    """
    Adapter instances keyed by provider, built lazily from the registered classes.

    Tests pass pre-built adapters through ``overrides`` to stub network calls.
    """

    def __init__(
        self,
        storage: MediaStorage | None = None,
        overrides: dict[str, ProviderAdapter] | None = None,
    ):
        self.storage = storage
        self._instances: dict[str, ProviderAdapter] = dict(overrides or {})

    def get(self, provider: str) -> ProviderAdapter:
        instance = self._instances.get(provider)
        if instance is not None:
            return instance
        cls = _registry.get(provider)
        if cls is None:
            raise UnknownProviderError(provider)
        if self.storage is None:
            self.storage = MediaStorage()
        instance = cls(storage=self.storage)
        self._instances[provider] = instance
        return instance

    async def execute(self, definition: NodeDefinition, resolved_inputs: dict[str, Any]) -> dict[str, Any]:
        return await self.get(definition.provider).execute(definition, resolved_inputs)


def is_transient_http_error(exc: BaseException) -> bool:
    """Connection failures, 429 and 5xx responses are worth another attempt."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False
