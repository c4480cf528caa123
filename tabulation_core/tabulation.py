"""Snapshot-based tabulation (pure, no transport).

Architecture:
- ``read_snapshot()`` pulls categories, criteria, judges, contestants, scores and
  locks from a ScoreStore and validates every row into typed records
- ``compute_division_results()`` is a pure function of one snapshot: per-judge
  ranks -> category placements -> overall placement for one division
- ``Tabulator`` wires the two together and never caches across calls: every
  ranking reflects the store as it was at read time
- Parent (API/display layer) is responsible for caching, invalidation and pushing

Key concepts:
- Only locked submissions are ranked; work-in-progress scores are ignored
- A judge participates in a category only if they locked at least one contestant
  of the division in it
- Divisions are disjoint: judges rank only contestants of their own division
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Sequence

from .config import TabulationSettings
from .insights import ContestantInsight, HeadToHead, contestant_insights, head_to_head
from .ranking import (
    CategoryRanking,
    JudgeRank,
    OverallRanking,
    compute_category_ranking,
    compute_overall_ranking,
    judge_category_totals,
    rank_judge_category,
)
from .store import ScoreStore
from .types import Category, Contestant, Criterion, Judge, LockKey, Score
from .validation import (
    CategoryModel,
    ContestantModel,
    CriterionModel,
    JudgeModel,
    LockModel,
    ScoreModel,
    parse_rows,
)
from .weighted import round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringSnapshot:
    categories: tuple[Category, ...]
    criteria: tuple[Criterion, ...]
    judges: tuple[Judge, ...]
    contestants: tuple[Contestant, ...]
    scores: tuple[Score, ...]
    locks: tuple[LockKey, ...]

    def criteria_for(self, category_id: str) -> list[Criterion]:
        return sorted(
            (c for c in self.criteria if c.category_id == category_id),
            key=lambda c: (c.sort_order, c.id),
        )


@dataclass(frozen=True)
class DivisionResults:
    division: str
    categories: tuple[Category, ...]
    contestants: tuple[Contestant, ...]
    judges: tuple[Judge, ...]
    judge_ranks: tuple[JudgeRank, ...]
    category_rankings: tuple[CategoryRanking, ...]
    overall: OverallRanking

    def category(self, category_id: str) -> CategoryRanking | None:
        for ranking in self.category_rankings:
            if ranking.category_id == category_id:
                return ranking
        return None


@dataclass(frozen=True)
class JudgeProgress:
    judge_id: str
    judge_name: str
    division: str
    locked_count: int
    expected_count: int
    percent_complete: int


@dataclass(frozen=True)
class ScoringProgress:
    total_expected: int
    total_submitted: int
    percent_complete: int
    by_judge: tuple[JudgeProgress, ...]
    # Judges that still have unlocked (contestant, category) pairs.
    waiting_on: tuple[str, ...]


def read_snapshot(store: ScoreStore) -> ScoringSnapshot:
    """
    Read and validate the whole scoring dataset.

    Raises:
        TransientStoreError: If the store is unreachable (never retried here)
    """
    categories = [c for c in parse_rows(CategoryModel, store.list_categories()) if c.is_active]
    categories.sort(key=lambda c: (c.sort_order, c.id))
    snapshot = ScoringSnapshot(
        categories=tuple(categories),
        criteria=tuple(parse_rows(CriterionModel, store.list_criteria())),
        judges=tuple(parse_rows(JudgeModel, store.list_judges())),
        contestants=tuple(parse_rows(ContestantModel, store.list_contestants())),
        scores=tuple(parse_rows(ScoreModel, store.list_scores())),
        locks=tuple(
            sorted(
                set(parse_rows(LockModel, store.list_locks())),
                key=lambda k: (k.judge_id, k.category_id, k.contestant_id),
            )
        ),
    )
    logger.debug(
        f"Snapshot: {len(snapshot.scores)} scores, {len(snapshot.locks)} locks, "
        f"{len(snapshot.contestants)} contestants"
    )
    return snapshot


def _percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return round_half_up(part * 100 / whole)


def compute_division_results(
    snapshot: ScoringSnapshot, division: str, *, precision: int = 3
) -> DivisionResults:
    """Rank every category and the overall standings for one division."""
    contestants = tuple(
        sorted(
            (c for c in snapshot.contestants if c.division == division and c.is_active),
            key=lambda c: (c.number, c.id),
        )
    )
    judges = tuple(
        sorted(
            (j for j in snapshot.judges if j.division == division and j.is_active),
            key=lambda j: j.id,
        )
    )
    contestant_ids = {c.id for c in contestants}

    locked_by: dict[tuple[str, str], set[str]] = defaultdict(set)
    for key in snapshot.locks:
        if key.contestant_id in contestant_ids:
            locked_by[(key.judge_id, key.category_id)].add(key.contestant_id)
    scores_by: dict[tuple[str, str], list[Score]] = defaultdict(list)
    for score in snapshot.scores:
        if score.contestant_id in contestant_ids:
            scores_by[(score.judge_id, score.category_id)].append(score)

    all_judge_ranks: list[JudgeRank] = []
    rankings: list[CategoryRanking] = []
    for category in snapshot.categories:
        category_ranks: list[JudgeRank] = []
        for judge in judges:
            locked = locked_by.get((judge.id, category.id))
            if not locked:
                continue
            totals = judge_category_totals(
                scores_by.get((judge.id, category.id), ()),
                locked,
                precision=precision,
            )
            category_ranks.extend(rank_judge_category(judge.id, category.id, totals))
        all_judge_ranks.extend(category_ranks)
        rankings.append(compute_category_ranking(category.id, category_ranks))

    return DivisionResults(
        division=division,
        categories=snapshot.categories,
        contestants=contestants,
        judges=judges,
        judge_ranks=tuple(all_judge_ranks),
        category_rankings=tuple(rankings),
        overall=compute_overall_ranking(rankings),
    )


def compute_progress(
    snapshot: ScoringSnapshot, divisions: Sequence[str] | None = None
) -> ScoringProgress:
    """Locked (contestant, category) pairs per judge against what each judge owes."""
    category_ids = {c.id for c in snapshot.categories}
    active_contestants: dict[str, set[str]] = defaultdict(set)
    for c in snapshot.contestants:
        if c.is_active:
            active_contestants[c.division].add(c.id)

    by_judge: list[JudgeProgress] = []
    for judge in sorted(snapshot.judges, key=lambda j: (j.division, j.name, j.id)):
        if not judge.is_active:
            continue
        if divisions is not None and judge.division not in divisions:
            continue
        pool = active_contestants.get(judge.division, set())
        expected = len(pool) * len(category_ids)
        locked = sum(
            1
            for key in snapshot.locks
            if key.judge_id == judge.id
            and key.contestant_id in pool
            and key.category_id in category_ids
        )
        by_judge.append(
            JudgeProgress(
                judge_id=judge.id,
                judge_name=judge.name,
                division=judge.division,
                locked_count=locked,
                expected_count=expected,
                percent_complete=_percent(locked, expected),
            )
        )

    total_expected = sum(p.expected_count for p in by_judge)
    total_submitted = sum(p.locked_count for p in by_judge)
    return ScoringProgress(
        total_expected=total_expected,
        total_submitted=total_submitted,
        percent_complete=_percent(total_submitted, total_expected),
        by_judge=tuple(by_judge),
        waiting_on=tuple(p.judge_id for p in by_judge if p.locked_count < p.expected_count),
    )


class Tabulator:
    """On-demand rankings over a ScoreStore. Every call re-reads the store."""

    def __init__(self, store: ScoreStore, settings: TabulationSettings | None = None):
        self.store = store
        self.settings = settings or TabulationSettings()

    def snapshot(self) -> ScoringSnapshot:
        return read_snapshot(self.store)

    def division_results(self, division: str) -> DivisionResults:
        if division not in self.settings.divisions:
            logger.warning(f"Unknown division {division!r}; rankings will be empty")
        return compute_division_results(
            self.snapshot(), division, precision=self.settings.score_precision
        )

    def all_divisions(self) -> dict[str, DivisionResults]:
        # One read for all divisions so they reflect the same state.
        snapshot = self.snapshot()
        return {
            division: compute_division_results(
                snapshot, division, precision=self.settings.score_precision
            )
            for division in self.settings.divisions
        }

    def category_ranking(self, division: str, category_id: str) -> CategoryRanking | None:
        return self.division_results(division).category(category_id)

    def overall_ranking(self, division: str) -> OverallRanking:
        return self.division_results(division).overall

    def insights(self, division: str) -> tuple[ContestantInsight, ...]:
        results = self.division_results(division)
        return contestant_insights(
            results.category_rankings,
            results.overall,
            results.categories,
            precision=self.settings.stat_precision,
        )

    def head_to_head(self, division: str, first_id: str, second_id: str) -> HeadToHead:
        results = self.division_results(division)
        return head_to_head(
            first_id,
            second_id,
            results.category_rankings,
            results.overall,
            results.categories,
        )

    def progress(self) -> ScoringProgress:
        return compute_progress(self.snapshot(), self.settings.divisions)


__all__ = [
    "ScoringSnapshot",
    "DivisionResults",
    "JudgeProgress",
    "ScoringProgress",
    "read_snapshot",
    "compute_division_results",
    "compute_progress",
    "Tabulator",
]
