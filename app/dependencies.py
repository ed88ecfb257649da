"""FastAPI dependencies — DB sessions, auth, and service collaborators."""

from functools import lru_cache

from fastapi import Header, HTTPException

from config import get_settings
from db.connection import get_db as get_db  # noqa: F401 — re-exported for routes
from db.connection import get_session_factory as get_session_factory  # noqa: F401
from yieldbridge.services.chain_reader import ChainReader
from yieldbridge.services.order_service import OrderService
from yieldbridge.services.registry import Registry, default_registry


def get_api_key(x_api_key: str = Header(default="")) -> str:
    """Validate API key on mutation endpoints."""
    expected: str | None = get_settings().api_key
    if not expected:
        return ""  # auth disabled when no key configured
    if x_api_key != expected:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
    return x_api_key


def get_registry() -> Registry:
    return default_registry(get_settings())


@lru_cache
def get_chain_reader() -> ChainReader:
    """Process-wide reader so RPC sessions are reused between refreshes."""
    return ChainReader()


def get_order_service() -> OrderService:
    return OrderService()
