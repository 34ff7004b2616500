"""Ranking rule shared by subject rankings and the leaderboard.

Rows are ordered by descending score; rows with equal scores keep the order
they arrived in. Ranks run 1..N without gaps or repeats, so two tied rows get
consecutive ranks and the earlier one wins.
"""
from __future__ import annotations

from typing import Callable, Iterable, List, Tuple, TypeVar

T = TypeVar("T")


def rank_by_score(rows: Iterable[T], score: Callable[[T], float]) -> List[Tuple[int, T]]:
    # sorted() is stable, so reverse=False on the negated score keeps input order for ties
    ordered = sorted(rows, key=lambda row: -score(row))
    return [(index, row) for index, row in enumerate(ordered, start=1)]
