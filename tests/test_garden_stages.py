import math

import pytest

from app.common.utils import percentage, round_half_up
from app.features.garden.stages import BLOOMING, SEED, SEEDLING, SPROUT, classify
from app.features.garden.statistics import summarize_class
from app.features.progress.schemas import ProgressCounts


@pytest.mark.parametrize(
    "pct,stage",
    [
        (100, BLOOMING),
        (90, BLOOMING),
        (89.999, SPROUT),
        (89.99, SPROUT),
        (60, SPROUT),
        (59.999, SEEDLING),
        (59.9, SEEDLING),
        (0.1, SEEDLING),
        (0.001, SEEDLING),
        (150, BLOOMING),
        (0, SEED),
        (-5, SEED),
        (None, SEED),
        (math.nan, SEED),
    ],
)
def test_classify_boundaries(pct, stage):
    assert classify(pct) == stage


def test_stage_styling_is_stable():
    assert [s.tier for s in (BLOOMING, SPROUT, SEEDLING, SEED)] == [3, 2, 1, 0]
    assert BLOOMING.tone == "emerald"
    assert SEED.label == "Seed"


def test_percentage_rounds_half_up():
    assert percentage(1, 8) == 13
    assert percentage(2, 3) == 67
    assert percentage(1, 2) == 50
    assert percentage(5, 0) == 0
    assert round_half_up(50.5) == 51
    assert round_half_up(2.5) == 3


def test_progress_counts_percentage():
    assert ProgressCounts(total=2, completed=1).percentage == 50
    assert ProgressCounts().percentage == 0


def test_summarize_empty_class():
    stats = summarize_class([])
    assert stats.student_count == 0
    assert stats.average_growth == 0
    assert stats.blooming_count == 0
    assert set(stats.distribution.values()) == {0}


def test_summarize_class_counts_zero_assignment_students():
    rows = [
        ProgressCounts(total=10, completed=10),
        ProgressCounts(total=10, completed=6),
        ProgressCounts(total=0, completed=0),
    ]
    stats = summarize_class(rows)
    assert stats.student_count == 3
    assert stats.average_growth == 53
    assert stats.blooming_count == 1
    assert stats.distribution == {"Blooming": 1, "Sprout": 1, "Seedling": 0, "Seed": 1}


def test_summarize_class_average_rounds_half_up():
    rows = [ProgressCounts(total=2, completed=1), ProgressCounts(total=100, completed=51)]
    assert summarize_class(rows).average_growth == 51


def test_blooming_uses_rounded_percentage():
    # 179/199 = 89.95% shows as 90 and therefore blooms
    stats = summarize_class([ProgressCounts(total=199, completed=179)])
    assert stats.blooming_count == 1
    assert stats.distribution["Blooming"] == 1
