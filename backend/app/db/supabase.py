"""
Supabase client for the engine's tables (``jobs``, ``workspaces``,
``credit_transactions``) and the credit RPC functions in ``migrations/``.

Calls use the service-role key, so row-level security does not apply.
"""
import logging
from typing import Optional

from supabase import Client, create_client

from app import config

logger = logging.getLogger(__name__)


class SupabaseClient:
    """Process-wide Supabase client, created on first use."""

    _instance: Optional['SupabaseClient'] = None
    _client: Optional[Client] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._client is None:
            url, key = config.supabase_credentials()
            try:
                self._client = create_client(url, key)
            except Exception as e:
                raise ValueError(f"Failed to create Supabase client: {str(e)}")
            logger.info("Supabase client created for %s", url)

    @property
    def client(self) -> Client:
        if self._client is None:
            raise RuntimeError("Supabase client not initialized")
        return self._client


def get_supabase() -> SupabaseClient:
    return SupabaseClient()
