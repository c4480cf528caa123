"""Rank-sum ranking engine (per-judge ranks -> category placements -> overall placement).

Single source of truth for rankings across API/display/export:
- Per judge and category: higher total weighted score ranks better.
- Per category: sum of per-judge ranks, lower is better.
- Overall: sum of category placements, lower is better.
- Every stage resolves ties the same way: a maximal run of equal values shares
  the average of the ordinal positions it occupies (1,2 tied -> 1.5 each).
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from .types import Score
from .weighted import DEFAULT_PRECISION, aggregate_category_score


@dataclass(frozen=True)
class JudgeRank:
    judge_id: str
    category_id: str
    contestant_id: str
    total_score: float
    rank: float


@dataclass(frozen=True)
class CategoryPlacement:
    category_id: str
    contestant_id: str
    rank_sum: float
    placement: float
    # (judge_id, rank) for every judge that ranked this contestant, sorted by judge.
    judge_ranks: tuple[tuple[str, float], ...]


@dataclass(frozen=True)
class CategoryRanking:
    category_id: str
    rows: tuple[CategoryPlacement, ...]
    judge_ids: tuple[str, ...]

    def placement_of(self, contestant_id: str) -> float | None:
        for row in self.rows:
            if row.contestant_id == contestant_id:
                return row.placement
        return None

    def by_contestant(self) -> dict[str, CategoryPlacement]:
        return {row.contestant_id: row for row in self.rows}


@dataclass(frozen=True)
class OverallPlacement:
    contestant_id: str
    total_points: float
    final_placement: float
    categories_counted: int


@dataclass(frozen=True)
class OverallRanking:
    rows: tuple[OverallPlacement, ...]

    @property
    def leader_points(self) -> float | None:
        if not self.rows:
            return None
        return min(row.total_points for row in self.rows)

    def by_contestant(self) -> dict[str, OverallPlacement]:
        return {row.contestant_id: row for row in self.rows}


def average_ranks(values: Mapping[str, float], *, descending: bool) -> dict[str, float]:
    """
    Rank keys by value, averaging ordinal positions across equal values.

    The result depends only on the values, never on mapping order.
    """
    ordered = sorted(
        values.items(),
        key=lambda kv: ((-kv[1] if descending else kv[1]), kv[0]),
    )
    ranks: dict[str, float] = {}
    i = 0
    while i < len(ordered):
        current = ordered[i][1]
        j = i + 1
        while j < len(ordered) and ordered[j][1] == current:
            j += 1
        # Run occupies positions i+1 .. j.
        shared = (i + 1 + j) / 2
        for key, _ in ordered[i:j]:
            ranks[key] = shared
        i = j
    return ranks


def judge_category_totals(
    scores: Iterable[Score],
    locked_contestant_ids: Iterable[str],
    *,
    judge_id: str | None = None,
    category_id: str | None = None,
    precision: int = DEFAULT_PRECISION,
) -> dict[str, float]:
    """
    Sum one judge's weighted scores per contestant within one category.

    Only contestants whose submission is locked are included; unlocked rows
    are work in progress and never ranked.
    """
    locked = set(locked_contestant_ids)
    grouped: dict[str, list[float]] = defaultdict(list)
    for score in scores:
        if judge_id is not None and score.judge_id != judge_id:
            continue
        if category_id is not None and score.category_id != category_id:
            continue
        if score.contestant_id not in locked:
            continue
        grouped[score.contestant_id].append(score.weighted_score)
    return {
        contestant_id: aggregate_category_score(values, precision)
        for contestant_id, values in grouped.items()
    }


def rank_judge_category(
    judge_id: str, category_id: str, totals: Mapping[str, float]
) -> tuple[JudgeRank, ...]:
    """Rank one judge's contestants in one category, best total first."""
    ranks = average_ranks(totals, descending=True)
    rows = [
        JudgeRank(
            judge_id=judge_id,
            category_id=category_id,
            contestant_id=contestant_id,
            total_score=float(totals[contestant_id]),
            rank=rank,
        )
        for contestant_id, rank in ranks.items()
    ]
    rows.sort(key=lambda row: (row.rank, row.contestant_id))
    return tuple(rows)


def compute_category_ranking(
    category_id: str, judge_ranks: Iterable[JudgeRank]
) -> CategoryRanking:
    """
    Combine every judge's ranks for one category into final placements.

    A contestant's rank-sum only includes judges that actually ranked them;
    a missing judge contributes nothing (no default, no penalty).
    """
    rank_sums: dict[str, float] = defaultdict(float)
    per_contestant: dict[str, list[tuple[str, float]]] = defaultdict(list)
    judge_ids: set[str] = set()
    for jr in judge_ranks:
        if jr.category_id != category_id:
            continue
        rank_sums[jr.contestant_id] += jr.rank
        per_contestant[jr.contestant_id].append((jr.judge_id, jr.rank))
        judge_ids.add(jr.judge_id)

    placements = average_ranks(rank_sums, descending=False)
    rows = [
        CategoryPlacement(
            category_id=category_id,
            contestant_id=contestant_id,
            rank_sum=rank_sums[contestant_id],
            placement=placement,
            judge_ranks=tuple(sorted(per_contestant[contestant_id])),
        )
        for contestant_id, placement in placements.items()
    ]
    rows.sort(key=lambda row: (row.placement, row.contestant_id))
    return CategoryRanking(
        category_id=category_id,
        rows=tuple(rows),
        judge_ids=tuple(sorted(judge_ids)),
    )


def compute_overall_ranking(category_rankings: Iterable[CategoryRanking]) -> OverallRanking:
    """
    Sum each contestant's category placements into total points and place them.

    Category weights are not applied: every category placement counts 1:1.
    """
    totals: dict[str, float] = defaultdict(float)
    counted: dict[str, int] = defaultdict(int)
    for ranking in category_rankings:
        for row in ranking.rows:
            totals[row.contestant_id] += row.placement
            counted[row.contestant_id] += 1

    placements = average_ranks(totals, descending=False)
    rows = [
        OverallPlacement(
            contestant_id=contestant_id,
            total_points=totals[contestant_id],
            final_placement=placement,
            categories_counted=counted[contestant_id],
        )
        for contestant_id, placement in placements.items()
    ]
    rows.sort(key=lambda row: (row.final_placement, row.contestant_id))
    return OverallRanking(rows=tuple(rows))


def placement_title(placement: float, titles: Mapping[int, str]) -> str | None:
    # Shared (fractional) placements carry no title.
    if not float(placement).is_integer():
        return None
    return titles.get(int(placement))


def group_by_placement(
    rows: Sequence[CategoryPlacement] | Sequence[OverallPlacement],
) -> list[list]:
    """Split placement-ordered rows into tie groups (used by displays and exports)."""
    groups: list[list] = []
    i = 0
    while i < len(rows):
        value = _placement_value(rows[i])
        j = i + 1
        while j < len(rows) and _placement_value(rows[j]) == value:
            j += 1
        groups.append(list(rows[i:j]))
        i = j
    return groups


def _placement_value(row: CategoryPlacement | OverallPlacement) -> float:
    if isinstance(row, OverallPlacement):
        return row.final_placement
    return row.placement


__all__ = [
    "JudgeRank",
    "CategoryPlacement",
    "CategoryRanking",
    "OverallPlacement",
    "OverallRanking",
    "average_ranks",
    "judge_category_totals",
    "rank_judge_category",
    "compute_category_ranking",
    "compute_overall_ranking",
    "placement_title",
    "group_by_placement",
]
