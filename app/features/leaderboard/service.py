from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, List, Optional

from app.common.ranking import rank_by_score
from app.core.config import get_settings
from app.db.record_store import Record, RecordStore, StoreError, StoreUnavailableError, Unsubscribe, deliver
from app.features.records import LeaderboardSource, parse_records
from .repository import LeaderboardRepository
from .schemas import LeaderboardEntry

logger = logging.getLogger("leaderboard.service")

LeaderboardCallback = Callable[[List[LeaderboardEntry]], Any]


def _points(value: float) -> Any:
    return int(value) if float(value).is_integer() else value


def build_leaderboard(sources: Iterable[LeaderboardSource], limit: Optional[int] = None) -> List[LeaderboardEntry]:
    """Rank sources by points (highest first) and keep the top ``limit``."""
    scored: List[LeaderboardSource] = []
    for source in sources:
        if source.total_points is None:
            logger.warning("leaderboard_entry_without_points id=%s", source.id)
            continue
        scored.append(source)
    ranked = rank_by_score(scored, lambda source: source.total_points)
    if limit is not None:
        ranked = ranked[: max(limit, 0)]
    return [
        LeaderboardEntry(
            id=source.id,
            display_name=source.display_name,
            total_points=_points(source.total_points),
            badges=source.badges,
            last_activity=source.last_activity,
            rank=rank,
        )
        for rank, source in ranked
    ]


class LeaderboardSubscription:
    """Handle for a live leaderboard; await it (or ``close()``) to stop updates.

    Closing releases the store-side channel. Closing twice is a no-op.
    """

    def __init__(self) -> None:
        self._closed = False
        self._unsubscribe: Optional[Unsubscribe] = None

    @property
    def closed(self) -> bool:
        return self._closed

    async def _attach(self, unsubscribe: Unsubscribe) -> None:
        self._unsubscribe = unsubscribe
        # Closed from inside the initial delivery, before the channel handle was known
        if self._closed:
            self._unsubscribe = None
            await unsubscribe()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            await unsubscribe()

    async def __call__(self) -> None:
        await self.close()


class LeaderboardService:
    def __init__(self, store: Optional[RecordStore] = None):
        self.repo = LeaderboardRepository(store)
        self.log = logger

    def _limit(self, limit: Optional[int]) -> int:
        return get_settings().leaderboard_limit if limit is None else limit

    async def get_leaderboard(self, limit: Optional[int] = None) -> List[LeaderboardEntry]:
        try:
            sources = await self.repo.list_sources()
        except StoreUnavailableError:
            raise
        except StoreError as exc:
            self.log.warning("leaderboard_query_failed error=%s", exc)
            return []
        return build_leaderboard(sources, self._limit(limit))

    async def subscribe_to_leaderboard(
        self, callback: LeaderboardCallback, limit: Optional[int] = None
    ) -> LeaderboardSubscription:
        """Call ``callback`` with a freshly ranked snapshot now and after every change."""
        limit = self._limit(limit)
        subscription = LeaderboardSubscription()

        async def _on_change(records: List[Record]) -> None:
            if subscription.closed:
                return
            entries = build_leaderboard(parse_records(LeaderboardSource, records, "leaderboard"), limit)
            await deliver(callback, entries)

        unsubscribe = await self.repo.subscribe(_on_change)
        await subscription._attach(unsubscribe)
        self.log.info("leaderboard_subscribed limit=%d", limit)
        return subscription


leaderboard_service = LeaderboardService()
