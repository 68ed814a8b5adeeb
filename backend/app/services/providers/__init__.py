"""
Provider adapters. Importing this package registers every adapter.
"""

from app.services.providers.base import (
    ProviderAdapter,
    ProviderRegistry,
    adapter,
    registered_providers,
)
from app.services.providers import fal, gemini, internal, openai, replicate  # noqa: F401

__all__ = ["ProviderAdapter", "ProviderRegistry", "adapter", "registered_providers"]
