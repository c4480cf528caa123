"""
Input validation schemas using Pydantic v2
Validates judge submissions and every row shape read from the store
"""

import logging
import math
import re
from typing import Any, Dict, Iterable, List, Optional, Self, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .types import Category, Contestant, Criterion, Judge, LockKey, Score

logger = logging.getLogger(__name__)

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

# ==================== VALIDATOR FUNCTIONS ====================


def _clean_identifier(v: str) -> str:
    v = InputSanitizer.sanitize_identifier(v)
    if len(v) == 0:
        raise ValueError("identifier cannot be empty")
    return v


def _finite(v: float, name: str) -> float:
    if not math.isfinite(v):
        raise ValueError(f"{name} must be finite")
    return v


# ==================== SUBMISSION ====================


class ScoreSubmission(BaseModel):
    """One judge's per-criterion scores for one contestant in one category"""

    judge_id: str = Field(..., min_length=1, max_length=64, description="Judge ID")
    category_id: str = Field(..., min_length=1, max_length=64, description="Category ID")
    contestant_id: str = Field(
        ..., min_length=1, max_length=64, description="Contestant ID"
    )
    raw_scores: Dict[str, float] = Field(
        ..., description="Raw score per criterion ID (bounded per criterion)"
    )

    @field_validator("judge_id", "category_id", "contestant_id")
    @classmethod
    def validate_ids(cls, v: str) -> str:
        return _clean_identifier(v)

    @field_validator("raw_scores", mode="before")
    @classmethod
    def reject_non_numeric_scores(cls, v: Any) -> Any:
        """Lax coercion would turn True into 1.0 and "30" into 30.0"""
        if isinstance(v, dict):
            for criterion_id, raw in v.items():
                if isinstance(raw, bool) or not isinstance(raw, (int, float)):
                    raise ValueError(
                        f"raw score for {criterion_id} must be a number, got {type(raw).__name__}"
                    )
        return v

    @field_validator("raw_scores")
    @classmethod
    def validate_raw_scores(cls, v: Dict[str, float]) -> Dict[str, float]:
        """Every entry must be a finite, non-negative number keyed by a clean criterion ID"""
        if len(v) == 0:
            raise ValueError("raw_scores cannot be empty")
        if len(v) > 100:
            raise ValueError("raw_scores cannot exceed 100 criteria")
        cleaned: Dict[str, float] = {}
        for criterion_id, raw in v.items():
            key = _clean_identifier(criterion_id)
            raw = _finite(raw, f"raw score for {key}")
            if raw < 0:
                raise ValueError(f"raw score for {key} cannot be negative")
            cleaned[key] = raw
        return cleaned

    @property
    def key(self) -> LockKey:
        return LockKey(
            judge_id=self.judge_id,
            category_id=self.category_id,
            contestant_id=self.contestant_id,
        )

    model_config = ConfigDict(frozen=True)


# ==================== STORE ROWS ====================


class CategoryModel(BaseModel):
    id: str = Field(..., min_length=1, max_length=64)
    label: str = Field(..., min_length=1, max_length=255)
    slug: str = Field("", max_length=100)
    weight: float = Field(1.0, gt=0)
    sort_order: int = 0
    is_active: bool = True

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        return _clean_identifier(v)

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        v = InputSanitizer.sanitize_label(v)
        if len(v) == 0:
            raise ValueError("label cannot be empty")
        return v

    def to_record(self) -> Category:
        return Category(
            id=self.id,
            label=self.label,
            slug=self.slug or self.id,
            weight=float(self.weight),
            sort_order=self.sort_order,
            is_active=self.is_active,
        )

    model_config = ConfigDict(extra="ignore")


class CriterionModel(BaseModel):
    id: str = Field(..., min_length=1, max_length=64)
    category_id: str = Field(..., min_length=1, max_length=64)
    label: str = Field("", max_length=255)
    slug: str = Field("", max_length=100)
    percentage: float = Field(..., gt=0.0, le=1.0, description="Weight in (0, 1]")
    sort_order: int = 0

    @field_validator("id", "category_id")
    @classmethod
    def validate_ids(cls, v: str) -> str:
        return _clean_identifier(v)

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        return InputSanitizer.sanitize_label(v)

    def to_record(self) -> Criterion:
        return Criterion(
            id=self.id,
            category_id=self.category_id,
            label=self.label or self.slug or self.id,
            percentage=float(self.percentage),
            slug=self.slug,
            sort_order=self.sort_order,
        )

    model_config = ConfigDict(extra="ignore")


class JudgeModel(BaseModel):
    id: str = Field(..., min_length=1, max_length=64)
    full_name: str = Field("", max_length=255)
    division: str = Field(..., min_length=1, max_length=50)
    is_active: bool = True

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        return _clean_identifier(v)

    @field_validator("full_name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return InputSanitizer.sanitize_label(v)

    def to_record(self) -> Judge:
        return Judge(
            id=self.id,
            name=self.full_name or self.id,
            division=self.division.strip(),
            is_active=self.is_active,
        )

    model_config = ConfigDict(extra="ignore")


class ContestantModel(BaseModel):
    id: str = Field(..., min_length=1, max_length=64)
    full_name: str = Field("", max_length=255)
    number: int = Field(..., ge=0, le=99999, description="Display number within division")
    division: str = Field(..., min_length=1, max_length=50)
    is_active: bool = True

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        return _clean_identifier(v)

    @field_validator("full_name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return InputSanitizer.sanitize_label(v)

    def to_record(self) -> Contestant:
        return Contestant(
            id=self.id,
            name=self.full_name or f"#{self.number}",
            number=self.number,
            division=self.division.strip(),
            is_active=self.is_active,
        )

    model_config = ConfigDict(extra="ignore")


class ScoreModel(BaseModel):
    judge_id: str = Field(..., min_length=1, max_length=64)
    contestant_id: str = Field(..., min_length=1, max_length=64)
    category_id: str = Field(..., min_length=1, max_length=64)
    criterion_id: str = Field(..., min_length=1, max_length=64)
    raw_score: float = Field(..., ge=0.0, le=100.0)
    weighted_score: Optional[float] = Field(None, ge=0.0)

    @field_validator("judge_id", "contestant_id", "category_id", "criterion_id")
    @classmethod
    def validate_ids(cls, v: str) -> str:
        return _clean_identifier(v)

    @field_validator("raw_score")
    @classmethod
    def validate_raw(cls, v: float) -> float:
        return _finite(v, "raw_score")

    @model_validator(mode="after")
    def fill_weighted(self) -> Self:
        """Older rows may lack weighted_score; it equals the rounded raw score"""
        if self.weighted_score is None:
            self.weighted_score = round(self.raw_score, 3)
        return self

    def to_record(self) -> Score:
        return Score(
            judge_id=self.judge_id,
            contestant_id=self.contestant_id,
            category_id=self.category_id,
            criterion_id=self.criterion_id,
            raw_score=float(self.raw_score),
            weighted_score=float(self.weighted_score),
        )

    model_config = ConfigDict(extra="ignore")


class LockModel(BaseModel):
    judge_id: str = Field(..., min_length=1, max_length=64)
    category_id: str = Field(..., min_length=1, max_length=64)
    contestant_id: str = Field(..., min_length=1, max_length=64)

    @field_validator("judge_id", "category_id", "contestant_id")
    @classmethod
    def validate_ids(cls, v: str) -> str:
        return _clean_identifier(v)

    def to_record(self) -> LockKey:
        return LockKey(
            judge_id=self.judge_id,
            category_id=self.category_id,
            contestant_id=self.contestant_id,
        )

    model_config = ConfigDict(extra="ignore")


_RowModel = TypeVar(
    "_RowModel",
    CategoryModel,
    CriterionModel,
    JudgeModel,
    ContestantModel,
    ScoreModel,
    LockModel,
)


def parse_rows(model: Type[_RowModel], rows: Iterable[Any]) -> List[Any]:
    """
    Validate raw store rows and convert them to engine records.

    Malformed rows are logged and skipped so one bad row cannot take the
    whole ranking down.
    """
    records: List[Any] = []
    for i, row in enumerate(rows or []):
        if not isinstance(row, dict):
            logger.warning(f"Skipping {model.__name__} row {i}: expected dict, got {type(row).__name__}")
            continue
        try:
            records.append(model(**row).to_record())
        except PydanticValidationError as e:
            logger.warning(f"Skipping invalid {model.__name__} row {i}: {e}")
    return records


class InputSanitizer:
    """Utility class for input sanitization"""

    @staticmethod
    def sanitize_string(value: str, max_length: int = 255) -> str:
        """Sanitize string input"""
        if not isinstance(value, str):
            return str(value)[:max_length]

        # Strip whitespace
        value = value.strip()

        # Limit length
        value = value[:max_length]

        # Remove null bytes
        value = value.replace("\0", "")

        return value

    @staticmethod
    def sanitize_identifier(value: str) -> str:
        """IDs are opaque tokens: no control chars, no surrounding whitespace"""
        value = InputSanitizer.sanitize_string(value, 64)
        return _CONTROL_CHARS.sub("", value)

    @staticmethod
    def sanitize_label(label: str) -> str:
        """Sanitize a display label (names, category labels) - keep Unicode letters and punctuation"""
        label = InputSanitizer.sanitize_string(label, 255)
        dangerous_chars = r'[<>{}\\`\x00-\x1f\x7f]'
        label = re.sub(dangerous_chars, "", label)
        return label.strip()

    @staticmethod
    def validate_submission(payload: dict | ScoreSubmission) -> ScoreSubmission:
        """
        Validate and sanitize a judge submission dictionary

        Returns:
            ScoreSubmission: Validated submission

        Raises:
            ValidationError: If validation fails
        """
        if isinstance(payload, ScoreSubmission):
            return payload
        try:
            return ScoreSubmission.model_validate(payload)
        except PydanticValidationError as e:
            logger.warning(f"Submission validation failed: {e}")
            raise ValidationError(f"Invalid submission: {str(e)}")


# ==================== EXPORT ====================

__all__ = [
    "ScoreSubmission",
    "CategoryModel",
    "CriterionModel",
    "JudgeModel",
    "ContestantModel",
    "ScoreModel",
    "LockModel",
    "parse_rows",
    "InputSanitizer",
]
