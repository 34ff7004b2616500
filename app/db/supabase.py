"""Unified async Supabase client (single entry point).

Import using: from app.db.supabase import get_supabase
"""
from __future__ import annotations

import asyncio
from typing import Optional
from supabase import AsyncClient, create_async_client
from app.core.config import get_settings

_client: Optional[AsyncClient] = None
_lock = asyncio.Lock()


async def get_supabase() -> AsyncClient:
    """Return a cached `AsyncClient` instance (lazy-created)."""
    global _client
    if _client is not None:
        return _client
    settings = get_settings()
    if not settings.store_configured:
        raise RuntimeError("SUPABASE_URL / SUPABASE_KEY are not configured")
    async with _lock:
        if _client is None:
            try:
                _client = await create_async_client(settings.supabase_url, settings.supabase_key)
            except Exception as exc:  # pragma: no cover (network/init failure)
                raise RuntimeError("Could not create Supabase async client") from exc
    return _client


def reset_client() -> None:
    """Drop the cached client (used by tests and after credential rotation)."""
    global _client
    _client = None


__all__ = ["get_supabase", "reset_client"]
