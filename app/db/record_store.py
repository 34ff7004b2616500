"""Record store gateway: filtered reads and change subscriptions.

The aggregation engine talks to the remote store only through the small
``RecordStore`` surface defined here. Records come back as plain field maps;
turning them into typed shapes is the job of ``app.features.records``.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Set, Tuple

import httpx

from app.core.config import get_settings
from app.db.supabase import get_supabase

logger = logging.getLogger("db.record_store")

Filter = Tuple[str, Any]
Record = Dict[str, Any]
OnChange = Callable[[List[Record]], Any]
Unsubscribe = Callable[[], Awaitable[None]]


class StoreError(Exception):
    """A query or subscription against the record store failed."""

    def __init__(self, message: str, *, collection: Optional[str] = None) -> None:
        super().__init__(message)
        self.collection = collection


class StoreUnavailableError(StoreError):
    """The record store could not be reached at all."""


class RecordStore(Protocol):
    async def query(self, collection: str, filters: Sequence[Filter] = ()) -> List[Record]:
        ...

    async def subscribe(self, collection: str, filters: Sequence[Filter], on_change: OnChange) -> Unsubscribe:
        ...


async def deliver(handler: Callable[..., Any], *args: Any) -> None:
    """Invoke a plain or coroutine handler."""
    result = handler(*args)
    if inspect.isawaitable(result):
        await result


class _RealtimeSubscription:
    """One realtime channel re-reading its collection on every change."""

    def __init__(
        self,
        store: "SupabaseRecordStore",
        client: Any,
        collection: str,
        filters: Tuple[Filter, ...],
        on_change: OnChange,
    ) -> None:
        self._store = store
        self._client = client
        self._collection = collection
        self._filters = filters
        self._on_change = on_change
        self._channel: Any = None
        self._closed = False
        self._generation = 0
        self._delivered = 0
        self._tasks: Set[asyncio.Task] = set()

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        channel = self._client.channel(f"{self._collection}:{uuid.uuid4().hex}")
        options: Dict[str, Any] = {"schema": "public", "table": self._collection}
        if self._filters:
            # Realtime supports a single server-side filter; refresh() re-applies all of them
            field, value = self._filters[0]
            options["filter"] = f"{field}=eq.{value}"
        channel.on_postgres_changes("*", callback=self._on_event, **options)
        try:
            await channel.subscribe()
        except Exception as exc:
            logger.warning("supabase_%s_subscribe_failed error=%s", self._collection, exc)
            await self._release(channel)
            raise StoreError(f"could not subscribe to {self._collection}", collection=self._collection) from exc
        self._channel = channel
        await self.refresh()

    def _on_event(self, payload: Any) -> None:
        if self._closed:
            return
        task = asyncio.ensure_future(self.refresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def refresh(self) -> None:
        self._generation += 1
        generation = self._generation
        try:
            records = await self._store.query(self._collection, self._filters)
        except StoreError as exc:
            logger.warning("subscription_refresh_failed collection=%s error=%s", self._collection, exc)
            return
        # Never overwrite a snapshot read by a refresh that started later
        if self._closed or generation <= self._delivered:
            return
        self._delivered = generation
        try:
            await deliver(self._on_change, records)
        except Exception:
            logger.exception("subscription_handler_failed collection=%s", self._collection)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        channel, self._channel = self._channel, None
        if channel is not None:
            await self._release(channel)

    async def _release(self, channel: Any) -> None:
        try:
            await self._client.remove_channel(channel)
        except Exception as exc:
            logger.warning("supabase_%s_unsubscribe_failed error=%s", self._collection, exc)


class SupabaseRecordStore:
    """``RecordStore`` backed by the async Supabase client."""

    def __init__(
        self,
        client_factory: Callable[[], Awaitable[Any]] = get_supabase,
        *,
        timeout: Optional[float] = None,
        order_by: Optional[str] = "id",
    ) -> None:
        self._client_factory = client_factory
        self._timeout = timeout
        self._order_by = order_by

    async def _client(self) -> Any:
        try:
            return await self._client_factory()
        except Exception as exc:
            logger.warning("supabase_client_unavailable error=%s", exc)
            raise StoreUnavailableError("record store is unreachable") from exc

    async def query(self, collection: str, filters: Sequence[Filter] = ()) -> List[Record]:
        client = await self._client()
        query = client.table(collection).select("*")
        for field, value in filters:
            query = query.eq(field, value)
        if self._order_by:
            # Stable row order keeps tie resolution identical between passes
            query = query.order(self._order_by)
        timeout = self._timeout if self._timeout is not None else get_settings().store_query_timeout
        try:
            resp = await asyncio.wait_for(query.execute(), timeout=timeout)
        except httpx.ConnectError as exc:
            logger.warning("supabase_%s_connect_failed error=%s", collection, exc)
            raise StoreUnavailableError(f"record store is unreachable ({collection})", collection=collection) from exc
        except asyncio.TimeoutError as exc:
            logger.warning("supabase_%s_query_timeout timeout=%s", collection, timeout)
            raise StoreError(f"{collection} query timed out", collection=collection) from exc
        except Exception as exc:
            logger.warning("supabase_%s_query_failed error=%s", collection, exc)
            raise StoreError(f"{collection} query failed", collection=collection) from exc
        rows = getattr(resp, "data", None) or []
        return [dict(row) for row in rows if isinstance(row, dict)]

    async def subscribe(self, collection: str, filters: Sequence[Filter], on_change: OnChange) -> Unsubscribe:
        client = await self._client()
        subscription = _RealtimeSubscription(self, client, collection, tuple(filters), on_change)
        await subscription.start()
        return subscription.close


record_store = SupabaseRecordStore()

__all__ = [
    "Filter",
    "Record",
    "RecordStore",
    "StoreError",
    "StoreUnavailableError",
    "SupabaseRecordStore",
    "Unsubscribe",
    "deliver",
    "record_store",
]
