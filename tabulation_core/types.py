"""Type definitions for store rows and scoring records."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, TypedDict


class CategoryRow(TypedDict, total=False):
    """A category row as returned by the store."""
    id: str
    slug: str
    label: str
    weight: float
    sort_order: int
    is_active: bool


class CriterionRow(TypedDict, total=False):
    """A criterion row as returned by the store."""
    id: str
    category_id: str
    slug: str
    label: str
    percentage: float  # (0, 1]; max raw score is percentage * 100
    sort_order: int


class JudgeRow(TypedDict, total=False):
    id: str
    full_name: str
    division: str
    is_active: bool


class ContestantRow(TypedDict, total=False):
    id: str
    full_name: str
    number: int
    division: str
    is_active: bool


class ScoreRow(TypedDict, total=False):
    """
    A score row as exchanged with the store.

    Reads may omit judge_id/category_id when the query was already filtered
    on them; writes always carry the full natural key.
    """
    judge_id: str
    contestant_id: str
    category_id: str
    criterion_id: str
    raw_score: float
    weighted_score: Optional[float]


class LockRow(TypedDict, total=False):
    judge_id: str
    category_id: str
    contestant_id: str


@dataclass(frozen=True)
class Category:
    id: str
    label: str
    slug: str = ""
    # Carried for completeness; overall ranking is an unweighted rank-sum.
    weight: float = 1.0
    sort_order: int = 0
    is_active: bool = True


@dataclass(frozen=True)
class Criterion:
    id: str
    category_id: str
    label: str
    percentage: float
    slug: str = ""
    sort_order: int = 0


@dataclass(frozen=True)
class Judge:
    id: str
    name: str
    division: str
    is_active: bool = True


@dataclass(frozen=True)
class Contestant:
    id: str
    name: str
    number: int
    division: str
    is_active: bool = True


@dataclass(frozen=True)
class Score:
    judge_id: str
    contestant_id: str
    category_id: str
    criterion_id: str
    raw_score: float
    weighted_score: float

    def to_row(self) -> ScoreRow:
        return {
            "judge_id": self.judge_id,
            "contestant_id": self.contestant_id,
            "category_id": self.category_id,
            "criterion_id": self.criterion_id,
            "raw_score": self.raw_score,
            "weighted_score": self.weighted_score,
        }


@dataclass(frozen=True)
class LockKey:
    """Natural key of a submission lock: one judge, one category, one contestant."""
    judge_id: str
    category_id: str
    contestant_id: str

    def describe(self) -> str:
        return f"judge={self.judge_id} category={self.category_id} contestant={self.contestant_id}"
