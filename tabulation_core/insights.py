"""Contestant insights derived from category and overall rankings.

Everything here is read-only and recomputed from rankings on demand.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from .ranking import CategoryRanking, OverallRanking
from .types import Category


@dataclass(frozen=True)
class CategoryRankEntry:
    category_id: str
    category_label: str
    placement: float


@dataclass(frozen=True)
class ContestantInsight:
    contestant_id: str
    category_ranks: tuple[CategoryRankEntry, ...]
    average_rank: float | None
    # Population variance / std deviation of category placements; lower is steadier.
    rank_variance: float | None
    rank_stddev: float | None
    strongest_category: str | None
    weakest_category: str | None
    total_points: float | None
    overall_placement: float | None
    gap_to_leader: float | None


@dataclass(frozen=True)
class HeadToHead:
    first_id: str
    second_id: str
    categories_won_by_first: tuple[str, ...]
    categories_won_by_second: tuple[str, ...]
    tied_categories: tuple[str, ...]
    # Categories in which only one of the two was placed; counted for neither.
    unmatched_categories: tuple[str, ...]
    first_overall_placement: float | None
    second_overall_placement: float | None
    first_total_points: float | None
    second_total_points: float | None
    overall_winner: str | None


def _ordered_categories(
    category_rankings: Sequence[CategoryRanking], categories: Sequence[Category]
) -> list[tuple[str, str]]:
    labels = {c.id: c.label for c in categories}
    order = {c.id: (c.sort_order, idx) for idx, c in enumerate(categories)}
    ids = [r.category_id for r in category_rankings]
    ids.sort(key=lambda cid: order.get(cid, (math.inf, math.inf)))
    return [(cid, labels.get(cid, cid)) for cid in ids]


def rank_dispersion(placements: Sequence[float]) -> tuple[float, float] | None:
    """Population variance and standard deviation of a contestant's placements."""
    if not placements:
        return None
    mean = sum(placements) / len(placements)
    variance = sum((p - mean) ** 2 for p in placements) / len(placements)
    return variance, math.sqrt(variance)


def contestant_insights(
    category_rankings: Sequence[CategoryRanking],
    overall: OverallRanking,
    categories: Sequence[Category] = (),
    *,
    precision: int = 3,
) -> tuple[ContestantInsight, ...]:
    """
    Build one insight per contestant appearing in any category or the overall ranking.

    Results are ordered by overall placement, then contestant ID.
    """
    ordered = _ordered_categories(category_rankings, categories)
    by_category = {r.category_id: r.by_contestant() for r in category_rankings}
    overall_rows = overall.by_contestant()
    leader = overall.leader_points

    contestant_ids = set(overall_rows)
    for placements in by_category.values():
        contestant_ids.update(placements)

    insights: list[ContestantInsight] = []
    for contestant_id in contestant_ids:
        entries = [
            CategoryRankEntry(
                category_id=cid,
                category_label=label,
                placement=by_category[cid][contestant_id].placement,
            )
            for cid, label in ordered
            if contestant_id in by_category[cid]
        ]
        placements = [e.placement for e in entries]
        dispersion = rank_dispersion(placements)
        strongest = weakest = None
        if entries:
            # min/max keep the first entry in category order on equal placement.
            strongest = min(entries, key=lambda e: e.placement).category_id
            weakest = max(entries, key=lambda e: e.placement).category_id
        row = overall_rows.get(contestant_id)
        insights.append(
            ContestantInsight(
                contestant_id=contestant_id,
                category_ranks=tuple(entries),
                average_rank=round(sum(placements) / len(placements), precision) if placements else None,
                rank_variance=round(dispersion[0], precision) if dispersion else None,
                rank_stddev=round(dispersion[1], precision) if dispersion else None,
                strongest_category=strongest,
                weakest_category=weakest,
                total_points=row.total_points if row else None,
                overall_placement=row.final_placement if row else None,
                gap_to_leader=(row.total_points - leader) if row and leader is not None else None,
            )
        )

    insights.sort(
        key=lambda i: (
            i.overall_placement if i.overall_placement is not None else math.inf,
            i.contestant_id,
        )
    )
    return tuple(insights)


def most_consistent(insights: Sequence[ContestantInsight]) -> ContestantInsight | None:
    """Contestant with the lowest rank variance; overall placement breaks ties."""
    candidates = [i for i in insights if i.rank_variance is not None]
    if not candidates:
        return None
    return min(
        candidates,
        key=lambda i: (
            i.rank_variance,
            i.overall_placement if i.overall_placement is not None else math.inf,
            i.contestant_id,
        ),
    )


def head_to_head(
    first_id: str,
    second_id: str,
    category_rankings: Sequence[CategoryRanking],
    overall: OverallRanking,
    categories: Sequence[Category] = (),
) -> HeadToHead:
    """Compare two contestants category by category and overall (lower placement wins)."""
    won_first: list[str] = []
    won_second: list[str] = []
    tied: list[str] = []
    unmatched: list[str] = []
    by_category = {r.category_id: r for r in category_rankings}
    for cid, _label in _ordered_categories(category_rankings, categories):
        first = by_category[cid].placement_of(first_id)
        second = by_category[cid].placement_of(second_id)
        if first is None and second is None:
            continue
        if first is None or second is None:
            unmatched.append(cid)
        elif first < second:
            won_first.append(cid)
        elif second < first:
            won_second.append(cid)
        else:
            tied.append(cid)

    overall_rows = overall.by_contestant()
    first_row = overall_rows.get(first_id)
    second_row = overall_rows.get(second_id)
    winner = None
    if first_row and second_row:
        if first_row.final_placement < second_row.final_placement:
            winner = first_id
        elif second_row.final_placement < first_row.final_placement:
            winner = second_id

    return HeadToHead(
        first_id=first_id,
        second_id=second_id,
        categories_won_by_first=tuple(won_first),
        categories_won_by_second=tuple(won_second),
        tied_categories=tuple(tied),
        unmatched_categories=tuple(unmatched),
        first_overall_placement=first_row.final_placement if first_row else None,
        second_overall_placement=second_row.final_placement if second_row else None,
        first_total_points=first_row.total_points if first_row else None,
        second_total_points=second_row.total_points if second_row else None,
        overall_winner=winner,
    )


__all__ = [
    "CategoryRankEntry",
    "ContestantInsight",
    "HeadToHead",
    "rank_dispersion",
    "contestant_insights",
    "most_consistent",
    "head_to_head",
]
