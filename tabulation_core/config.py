"""
Tabulation settings and the canonical pageant category configuration.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .types import Category, Criterion

logger = logging.getLogger(__name__)


class TabulationSettings(BaseModel):
    """Engine-wide settings. Immutable once loaded."""

    score_precision: int = Field(
        3, ge=0, le=6, description="Decimal digits kept on weighted scores and totals"
    )
    stat_precision: int = Field(
        3, ge=0, le=6, description="Decimal digits kept on insight statistics"
    )
    divisions: Tuple[str, ...] = Field(
        ("male", "female"), min_length=1, description="Disjoint contestant pools"
    )
    admin_role: str = Field("admin", min_length=1, max_length=50)
    placement_titles: Dict[int, str] = Field(
        default_factory=lambda: {
            1: "Winner",
            2: "1st Runner-Up",
            3: "2nd Runner-Up",
        }
    )

    @field_validator("divisions")
    @classmethod
    def validate_divisions(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        """Divisions must be unique, non-empty names"""
        cleaned = tuple(d.strip() for d in v)
        if any(not d for d in cleaned):
            raise ValueError("division names cannot be empty")
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("division names must be unique")
        return cleaned

    @field_validator("placement_titles")
    @classmethod
    def validate_titles(cls, v: Dict[int, str]) -> Dict[int, str]:
        for placement in v:
            if placement < 1:
                raise ValueError(f"placement title key must be >= 1, got {placement}")
        return v

    model_config = ConfigDict(frozen=True)


def load_settings(mapping: Optional[Mapping[str, Any]] = None) -> TabulationSettings:
    """
    Build settings from a plain mapping (e.g. parsed from a deployment file).

    Raises:
        ValueError: If the mapping does not validate
    """
    try:
        return TabulationSettings(**dict(mapping or {}))
    except (PydanticValidationError, TypeError) as e:
        logger.warning(f"Settings validation failed: {e}")
        raise ValueError(f"Invalid settings: {str(e)}")


# Canonical six-category configuration. Each category's criteria sum to 1.0,
# and a criterion's percentage * 100 is its maximum attainable points.
CATEGORY_CONFIG: List[dict] = [
    {
        "slug": "production",
        "label": "Production Number",
        "weight": 1,
        "criteria": [
            {"slug": "poise-bearing", "label": "Poise and Bearing", "percentage": 0.30},
            {"slug": "stage-deportment", "label": "Stage Deportment", "percentage": 0.35},
            {"slug": "mastery", "label": "Mastery of the Choreography", "percentage": 0.30},
            {"slug": "audience-impact", "label": "Audience Impact", "percentage": 0.05},
        ],
    },
    {
        "slug": "runway",
        "label": "Runway",
        "weight": 1,
        "criteria": [
            {"slug": "creativity", "label": "Creativity and Style", "percentage": 0.30},
            {"slug": "personality", "label": "Personality and Stage Presence", "percentage": 0.20},
            {"slug": "costume", "label": "Suitability of the Costume", "percentage": 0.30},
            {"slug": "projection", "label": "Poise, Bearing, and Projection", "percentage": 0.20},
        ],
    },
    {
        "slug": "streetwear",
        "label": "Street Wear",
        "weight": 1,
        "criteria": [
            {"slug": "beauty-physique", "label": "Beauty and Physique", "percentage": 0.30},
            {"slug": "stage-deportment", "label": "Stage Deportment", "percentage": 0.30},
            {"slug": "poise-bearing", "label": "Poise and Bearing", "percentage": 0.30},
            {"slug": "audience-impact", "label": "Audience Impact", "percentage": 0.10},
        ],
    },
    {
        "slug": "free-speech",
        "label": "Free Speech",
        "weight": 1,
        "criteria": [
            {"slug": "content", "label": "Content & Substance", "percentage": 0.40},
            {"slug": "delivery", "label": "Delivery & Presence", "percentage": 0.30},
            {"slug": "theme", "label": "Alignment to Theme", "percentage": 0.20},
            {"slug": "respect", "label": "Respectfulness & Positivity", "percentage": 0.10},
        ],
    },
    {
        "slug": "formal",
        "label": "Modern Barong & Long Gown",
        "weight": 1,
        "criteria": [
            {"slug": "fitness-style", "label": "Fitness and Style", "percentage": 0.20},
            {"slug": "beauty-elegance", "label": "Beauty and Elegance", "percentage": 0.30},
            {"slug": "stage-deportment", "label": "Stage Deportment", "percentage": 0.25},
            {"slug": "projection", "label": "Poise, Bearing, and Projection", "percentage": 0.25},
        ],
    },
    {
        "slug": "interview",
        "label": "Interview",
        "weight": 1,
        "criteria": [
            {"slug": "wit", "label": "Wit and Content", "percentage": 0.50},
            {"slug": "delivery", "label": "Delivery & Choice of Words", "percentage": 0.25},
            {"slug": "poise", "label": "Poise and Bearing", "percentage": 0.15},
            {"slug": "audience-impact", "label": "Audience Impact", "percentage": 0.10},
        ],
    },
]


def default_categories() -> List[Category]:
    """Categories from CATEGORY_CONFIG, keyed by slug."""
    return [
        Category(
            id=seed["slug"],
            slug=seed["slug"],
            label=seed["label"],
            weight=float(seed["weight"]),
            sort_order=idx + 1,
        )
        for idx, seed in enumerate(CATEGORY_CONFIG)
    ]


def default_criteria() -> List[Criterion]:
    """Criteria from CATEGORY_CONFIG; ids are "<category>-<criterion>"."""
    criteria: List[Criterion] = []
    for seed in CATEGORY_CONFIG:
        for c_idx, crit in enumerate(seed["criteria"]):
            criteria.append(
                Criterion(
                    id=f"{seed['slug']}-{crit['slug']}",
                    category_id=seed["slug"],
                    slug=crit["slug"],
                    label=crit["label"],
                    percentage=float(crit["percentage"]),
                    sort_order=c_idx + 1,
                )
            )
    return criteria


__all__ = [
    "TabulationSettings",
    "load_settings",
    "CATEGORY_CONFIG",
    "default_categories",
    "default_criteria",
]
