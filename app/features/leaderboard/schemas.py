from __future__ import annotations
from pydantic import BaseModel, computed_field
from typing import Any, List, Optional, Union
from datetime import datetime


class LeaderboardEntry(BaseModel):
    id: str
    display_name: str
    total_points: Union[int, float]
    badges: List[Any] = []
    last_activity: Optional[datetime] = None
    rank: int

    @computed_field
    @property
    def badge_count(self) -> int:
        return len(self.badges)
