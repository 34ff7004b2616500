from __future__ import annotations

from typing import Any, Callable, List, Optional

from app.core.config import get_settings
from app.db.record_store import Record, RecordStore, Unsubscribe, record_store
from app.features.records import LeaderboardSource, parse_records


class LeaderboardRepository:
    def __init__(self, store: Optional[RecordStore] = None) -> None:
        self.store = store or record_store

    async def list_sources(self) -> List[LeaderboardSource]:
        rows = await self.store.query(get_settings().leaderboard_table)
        return parse_records(LeaderboardSource, rows, "leaderboard")

    async def subscribe(self, on_change: Callable[[List[Record]], Any]) -> Unsubscribe:
        return await self.store.subscribe(get_settings().leaderboard_table, [], on_change)
