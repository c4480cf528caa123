"""Flat, denormalized ranking rows for tabular export.

Rows are plain dicts with stable column order; turning them into CSV or a
spreadsheet is the caller's job.
"""
from __future__ import annotations

from typing import Any, Mapping, Sequence

from .ranking import group_by_placement, placement_title
from .tabulation import DivisionResults, ScoringSnapshot
from .types import LockKey


def _tied_ids(rows: Sequence) -> set[str]:
    return {
        row.contestant_id
        for group in group_by_placement(rows)
        if len(group) > 1
        for row in group
    }


def category_ranking_rows(results: DivisionResults) -> list[dict[str, Any]]:
    """One row per (category, contestant) placement, categories in display order."""
    contestants = {c.id: c for c in results.contestants}
    labels = {c.id: c for c in results.categories}
    rows: list[dict[str, Any]] = []
    for ranking in results.category_rankings:
        category = labels.get(ranking.category_id)
        tied = _tied_ids(ranking.rows)
        for row in ranking.rows:
            contestant = contestants.get(row.contestant_id)
            rows.append(
                {
                    "division": results.division,
                    "category_id": ranking.category_id,
                    "category_slug": category.slug if category else ranking.category_id,
                    "category_label": category.label if category else ranking.category_id,
                    "contestant_id": row.contestant_id,
                    "number": contestant.number if contestant else None,
                    "full_name": contestant.name if contestant else None,
                    "rank_sum": row.rank_sum,
                    "rank": row.placement,
                    "judges_counted": len(row.judge_ranks),
                    "tied": row.contestant_id in tied,
                }
            )
    return rows


def overall_ranking_rows(
    results: DivisionResults, titles: Mapping[int, str] | None = None
) -> list[dict[str, Any]]:
    """One row per contestant in final placement order."""
    contestants = {c.id: c for c in results.contestants}
    tied = _tied_ids(results.overall.rows)
    rows: list[dict[str, Any]] = []
    for row in results.overall.rows:
        contestant = contestants.get(row.contestant_id)
        rows.append(
            {
                "division": results.division,
                "contestant_id": row.contestant_id,
                "number": contestant.number if contestant else None,
                "full_name": contestant.name if contestant else None,
                "total_points": row.total_points,
                "final_placement": row.final_placement,
                "categories_counted": row.categories_counted,
                "title": placement_title(row.final_placement, titles or {}),
                "tied": row.contestant_id in tied,
            }
        )
    return rows


def score_export_rows(snapshot: ScoringSnapshot) -> list[dict[str, Any]]:
    """Every stored score with judge/contestant/category/criterion names resolved."""
    judges = {j.id: j for j in snapshot.judges}
    contestants = {c.id: c for c in snapshot.contestants}
    categories = {c.id: c for c in snapshot.categories}
    criteria = {c.id: c for c in snapshot.criteria}
    locked = set(snapshot.locks)
    rows: list[dict[str, Any]] = []
    for score in snapshot.scores:
        judge = judges.get(score.judge_id)
        contestant = contestants.get(score.contestant_id)
        category = categories.get(score.category_id)
        criterion = criteria.get(score.criterion_id)
        rows.append(
            {
                "division": contestant.division if contestant else None,
                "judge_id": score.judge_id,
                "judge_name": judge.name if judge else None,
                "contestant_id": score.contestant_id,
                "number": contestant.number if contestant else None,
                "full_name": contestant.name if contestant else None,
                "category_id": score.category_id,
                "category_label": category.label if category else None,
                "criterion_id": score.criterion_id,
                "criterion_label": criterion.label if criterion else None,
                "raw_score": score.raw_score,
                "weighted_score": score.weighted_score,
                "locked": LockKey(
                    judge_id=score.judge_id,
                    category_id=score.category_id,
                    contestant_id=score.contestant_id,
                )
                in locked,
            }
        )
    rows.sort(
        key=lambda r: (
            str(r["division"]),
            r["number"] if r["number"] is not None else -1,
            r["category_id"],
            r["judge_id"],
            r["criterion_id"],
        )
    )
    return rows


__all__ = [
    "category_ranking_rows",
    "overall_ranking_rows",
    "score_export_rows",
]
