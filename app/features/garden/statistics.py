from __future__ import annotations

from typing import Dict, Iterable

from pydantic import BaseModel, Field

from app.common.utils import percentage, round_half_up
from app.features.progress.schemas import ProgressCounts
from .stages import STAGES, classify

BLOOMING_THRESHOLD = 90


class ClassStatistics(BaseModel):
    student_count: int = 0
    average_growth: int = 0
    blooming_count: int = 0
    distribution: Dict[str, int] = Field(default_factory=lambda: {stage.label: 0 for stage in STAGES})


def summarize_class(rows: Iterable[ProgressCounts]) -> ClassStatistics:
    """Class-wide growth from already fetched progress rows.

    Students without assignments count as 0% and still weigh on the mean.
    """
    pcts = [percentage(row.completed, row.total) for row in rows]
    stats = ClassStatistics(student_count=len(pcts))
    if not pcts:
        return stats
    stats.average_growth = round_half_up(sum(pcts) / len(pcts))
    stats.blooming_count = sum(1 for pct in pcts if pct >= BLOOMING_THRESHOLD)
    for pct in pcts:
        stats.distribution[classify(pct).label] += 1
    return stats
