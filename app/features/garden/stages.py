"""Growth stages shown on the garden cards.

A student's plant grows with their assignment completion percentage:

    Blooming  (>= 90)
    Sprout    (>= 60)
    Seedling  (> 0)
    Seed      (0)
"""
from __future__ import annotations

import math
from typing import List, Tuple

from pydantic import BaseModel


class GrowthStage(BaseModel):
    label: str
    tier: int
    tone: str


BLOOMING = GrowthStage(label="Blooming", tier=3, tone="emerald")
SPROUT = GrowthStage(label="Sprout", tier=2, tone="lime")
SEEDLING = GrowthStage(label="Seedling", tier=1, tone="amber")
SEED = GrowthStage(label="Seed", tier=0, tone="slate")

STAGES: List[GrowthStage] = [BLOOMING, SPROUT, SEEDLING, SEED]

# (lower bound, inclusive?, stage), checked top-down
_THRESHOLDS: List[Tuple[float, bool, GrowthStage]] = [
    (90, True, BLOOMING),
    (60, True, SPROUT),
    (0, False, SEEDLING),
]


def classify(pct: float) -> GrowthStage:
    """Map a 0-100 completion percentage to its growth stage."""
    if pct is None or math.isnan(pct):
        return SEED
    for bound, inclusive, stage in _THRESHOLDS:
        if pct > bound or (inclusive and pct == bound):
            return stage
    return SEED
