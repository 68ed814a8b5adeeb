"""
Runtime settings read from the environment.

Values are looked up at call time so tests can monkeypatch the environment
without reloading modules. Invalid numeric values fall back to defaults.
"""
import os

from dotenv import load_dotenv

load_dotenv()


def _positive_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        parsed = int(raw)
        if parsed <= 0:
            return default
        return parsed
    except ValueError:
        return default


def _positive_float(name: str, default: float) -> float:
    raw = os.getenv(name, str(default))
    try:
        parsed = float(raw)
        if parsed <= 0:
            return default
        return parsed
    except ValueError:
        return default


def worker_concurrency() -> int:
    """Maximum number of jobs one worker process runs at once."""
    return _positive_int("WORKER_CONCURRENCY", 5)


def provider_retry_attempts() -> int:
    """Total attempts per provider call; 1 disables retries."""
    return _positive_int("PROVIDER_RETRY_ATTEMPTS", 1)


def replicate_poll_interval() -> float:
    return _positive_float("REPLICATE_POLL_INTERVAL", 1.0)


def engine_backend() -> str:
    """
    Which store implementations back the engine.

    ``supabase`` (default) persists jobs and credits in Postgres and relays
    events through Redis. ``memory`` keeps everything in-process, which is
    what local runs and the test-suite use.
    """
    raw = os.getenv("ENGINE_BACKEND", "supabase").strip().lower()
    return raw if raw in {"supabase", "memory"} else "supabase"


def redis_url() -> str:
    return os.getenv("REDIS_URL", "redis://localhost:6379/0")


def supabase_credentials() -> tuple[str, str]:
    """URL and service-role key; both are required for the ``supabase`` backend."""
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    if not url:
        raise ValueError("SUPABASE_URL environment variable is required")
    if not key:
        raise ValueError("SUPABASE_SERVICE_ROLE_KEY environment variable is required")
    return url, key
