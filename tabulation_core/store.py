"""Store contract consumed by the engine, plus an in-memory reference store.

The engine never owns the score/lock dataset; it reads it fresh through
``ScoreStore`` on every computation. Writers must treat score upserts and lock
creation as compare-and-set operations on their natural keys.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Literal, Protocol, Sequence

from .errors import LockConflict, TransientStoreError
from .types import (
    CategoryRow,
    ContestantRow,
    CriterionRow,
    JudgeRow,
    LockKey,
    LockRow,
    Score,
    ScoreRow,
)

logger = logging.getLogger(__name__)

ChangeType = Literal["created", "updated"]


class ScoreStore(Protocol):
    """Narrow persistence contract. Implementations raise TransientStoreError when unreachable."""

    def list_scores(
        self, judge_id: str | None = None, category_id: str | None = None
    ) -> list[ScoreRow]:
        ...

    def list_locks(
        self, judge_id: str | None = None, category_id: str | None = None
    ) -> list[LockRow]:
        ...

    def list_criteria(self, category_id: str | None = None) -> list[CriterionRow]:
        ...

    def list_categories(self) -> list[CategoryRow]:
        ...

    def list_contestants(self, division: str | None = None) -> list[ContestantRow]:
        ...

    def list_judges(self, division: str | None = None) -> list[JudgeRow]:
        ...

    def upsert_scores(self, rows: Sequence[Score]) -> None:
        ...

    def create_lock(self, judge_id: str, category_id: str, contestant_id: str) -> bool:
        ...

    def remove_lock(self, judge_id: str, category_id: str, contestant_id: str) -> bool:
        ...


@dataclass(frozen=True)
class ScoreChange:
    """Audit entry written on every score upsert."""
    judge_id: str
    contestant_id: str
    category_id: str
    criterion_id: str
    change_type: ChangeType
    old_raw_score: float | None
    new_raw_score: float
    old_weighted_score: float | None
    new_weighted_score: float


def _score_key(score: Score) -> tuple[str, str, str]:
    # A criterion belongs to exactly one category, so it is not part of the key.
    return (score.judge_id, score.contestant_id, score.criterion_id)


def _lock_key(score: Score) -> LockKey:
    return LockKey(
        judge_id=score.judge_id,
        category_id=score.category_id,
        contestant_id=score.contestant_id,
    )


class InMemoryScoreStore:
    """
    Thread-safe in-memory ScoreStore.

    All writes run under one re-entrant mutex; upsert_scores re-checks locks
    inside it, so a lock and a racing score write for the same tuple are
    linearizable. ``available`` can be cleared to simulate an unreachable
    backend.
    """

    def __init__(
        self,
        *,
        categories: Iterable[CategoryRow] = (),
        criteria: Iterable[CriterionRow] = (),
        judges: Iterable[JudgeRow] = (),
        contestants: Iterable[ContestantRow] = (),
    ):
        self._mutex = threading.RLock()
        self._categories: list[CategoryRow] = [dict(r) for r in categories]
        self._criteria: list[CriterionRow] = [dict(r) for r in criteria]
        self._judges: list[JudgeRow] = [dict(r) for r in judges]
        self._contestants: list[ContestantRow] = [dict(r) for r in contestants]
        self._scores: dict[tuple[str, str, str], Score] = {}
        self._locks: set[LockKey] = set()
        self._history: list[ScoreChange] = []
        self.available = True

    def _ensure_available(self, op: str) -> None:
        if not self.available:
            raise TransientStoreError(f"store unavailable during {op}")

    # ---- reads ----

    def list_scores(
        self, judge_id: str | None = None, category_id: str | None = None
    ) -> list[ScoreRow]:
        with self._mutex:
            self._ensure_available("list_scores")
            return [
                s.to_row()
                for s in self._scores.values()
                if (judge_id is None or s.judge_id == judge_id)
                and (category_id is None or s.category_id == category_id)
            ]

    def list_locks(
        self, judge_id: str | None = None, category_id: str | None = None
    ) -> list[LockRow]:
        with self._mutex:
            self._ensure_available("list_locks")
            return [
                {
                    "judge_id": k.judge_id,
                    "category_id": k.category_id,
                    "contestant_id": k.contestant_id,
                }
                for k in self._locks
                if (judge_id is None or k.judge_id == judge_id)
                and (category_id is None or k.category_id == category_id)
            ]

    def list_criteria(self, category_id: str | None = None) -> list[CriterionRow]:
        with self._mutex:
            self._ensure_available("list_criteria")
            return [
                dict(r)
                for r in self._criteria
                if category_id is None or r.get("category_id") == category_id
            ]

    def list_categories(self) -> list[CategoryRow]:
        with self._mutex:
            self._ensure_available("list_categories")
            return [dict(r) for r in self._categories]

    def list_contestants(self, division: str | None = None) -> list[ContestantRow]:
        with self._mutex:
            self._ensure_available("list_contestants")
            return [
                dict(r)
                for r in self._contestants
                if division is None or r.get("division") == division
            ]

    def list_judges(self, division: str | None = None) -> list[JudgeRow]:
        with self._mutex:
            self._ensure_available("list_judges")
            return [
                dict(r) for r in self._judges if division is None or r.get("division") == division
            ]

    def history(self) -> list[ScoreChange]:
        with self._mutex:
            return list(self._history)

    # ---- writes ----

    def upsert_scores(self, rows: Sequence[Score]) -> None:
        with self._mutex:
            self._ensure_available("upsert_scores")
            # Check every tuple before touching anything: all-or-nothing.
            for score in rows:
                key = _lock_key(score)
                if key in self._locks:
                    raise LockConflict(key)
            for score in rows:
                previous = self._scores.get(_score_key(score))
                self._scores[_score_key(score)] = score
                self._history.append(
                    ScoreChange(
                        judge_id=score.judge_id,
                        contestant_id=score.contestant_id,
                        category_id=score.category_id,
                        criterion_id=score.criterion_id,
                        change_type="created" if previous is None else "updated",
                        old_raw_score=None if previous is None else previous.raw_score,
                        new_raw_score=score.raw_score,
                        old_weighted_score=None if previous is None else previous.weighted_score,
                        new_weighted_score=score.weighted_score,
                    )
                )
        logger.debug(f"Upserted {len(rows)} score rows")

    def create_lock(self, judge_id: str, category_id: str, contestant_id: str) -> bool:
        key = LockKey(judge_id=judge_id, category_id=category_id, contestant_id=contestant_id)
        with self._mutex:
            self._ensure_available("create_lock")
            # Upsert on the natural key: re-locking is a no-op.
            if key in self._locks:
                return False
            self._locks.add(key)
            return True

    def remove_lock(self, judge_id: str, category_id: str, contestant_id: str) -> bool:
        key = LockKey(judge_id=judge_id, category_id=category_id, contestant_id=contestant_id)
        with self._mutex:
            self._ensure_available("remove_lock")
            if key not in self._locks:
                return False
            self._locks.discard(key)
            return True


__all__ = [
    "ScoreStore",
    "ScoreChange",
    "InMemoryScoreStore",
]
