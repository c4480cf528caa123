"""Weighted score calculator.

A criterion's percentage is its maximum attainable points (percentage * 100),
not a multiplier: the weighted value of a legal raw score is the raw score
itself rounded to the configured precision.
"""
from __future__ import annotations

import math
from typing import Any, Iterable, Sequence

from .errors import ValidationError
from .types import Criterion, Score
from .validation import InputSanitizer, ScoreSubmission

DEFAULT_PRECISION = 3


def round_half_up(value: float) -> int:
    # Half-up (0.125 * 100 -> 13), not Python's banker's rounding.
    return int(math.floor(value + 0.5))


def max_raw_score(criterion: Criterion) -> int:
    return round_half_up(float(criterion.percentage) * 100)


def _coerce_raw(raw: Any, criterion: Criterion) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValidationError(
            f"raw score for criterion {criterion.id} must be a number, got {type(raw).__name__}",
            field=criterion.id,
        )
    value = float(raw)
    if not math.isfinite(value):
        raise ValidationError(
            f"raw score for criterion {criterion.id} must be finite", field=criterion.id
        )
    return value


def weighted_score(raw: Any, criterion: Criterion, precision: int = DEFAULT_PRECISION) -> float:
    """
    Validate a raw criterion score and return its weighted value.

    Args:
        raw: Raw score entered by the judge
        criterion: Criterion the score belongs to (bounds the legal range)
        precision: Decimal digits kept (default 3)

    Returns:
        The raw score rounded to ``precision`` digits

    Raises:
        ValidationError: If raw is not a finite number in [0, max_raw_score(criterion)]
    """
    value = _coerce_raw(raw, criterion)
    upper = max_raw_score(criterion)
    if value < 0 or value > upper:
        raise ValidationError(
            f"raw score {value} for criterion {criterion.id} outside [0, {upper}]",
            field=criterion.id,
        )
    return round(value, precision)


def aggregate_category_score(
    weighted_values: Iterable[float], precision: int = DEFAULT_PRECISION
) -> float:
    """Sum of one judge's weighted scores for a contestant within a category."""
    return round(sum(float(v) for v in weighted_values), precision)


def build_score_rows(
    submission: ScoreSubmission | dict,
    criteria: Sequence[Criterion],
    precision: int = DEFAULT_PRECISION,
) -> list[Score]:
    """
    Turn a judge submission into the full set of score rows for its category.

    Every criterion of the category must be scored exactly once; extra or
    foreign criterion IDs are rejected.

    Raises:
        ValidationError: On any missing, unknown or out-of-range criterion score
    """
    submission = InputSanitizer.validate_submission(submission)
    category_criteria = [c for c in criteria if c.category_id == submission.category_id]
    if not category_criteria:
        raise ValidationError(
            f"category {submission.category_id} has no criteria", field="category_id"
        )

    known = {c.id for c in category_criteria}
    unknown = sorted(set(submission.raw_scores) - known)
    if unknown:
        raise ValidationError(
            f"criteria not in category {submission.category_id}: {', '.join(unknown)}",
            field=unknown[0],
        )

    rows: list[Score] = []
    for criterion in sorted(category_criteria, key=lambda c: (c.sort_order, c.id)):
        if criterion.id not in submission.raw_scores:
            raise ValidationError(
                f"missing raw score for criterion {criterion.id}", field=criterion.id
            )
        raw = submission.raw_scores[criterion.id]
        rows.append(
            Score(
                judge_id=submission.judge_id,
                contestant_id=submission.contestant_id,
                category_id=submission.category_id,
                criterion_id=criterion.id,
                raw_score=float(raw),
                weighted_score=weighted_score(raw, criterion, precision),
            )
        )
    return rows


__all__ = [
    "DEFAULT_PRECISION",
    "round_half_up",
    "max_raw_score",
    "weighted_score",
    "aggregate_category_score",
    "build_score_rows",
]
