from .config import (
    CATEGORY_CONFIG,
    TabulationSettings,
    default_categories,
    default_criteria,
    load_settings,
)
from .errors import (
    AuthorizationError,
    IncompleteSubmission,
    LockConflict,
    TabulationError,
    TransientStoreError,
    ValidationError,
)
from .export import category_ranking_rows, overall_ranking_rows, score_export_rows
from .insights import (
    CategoryRankEntry,
    ContestantInsight,
    HeadToHead,
    contestant_insights,
    head_to_head,
    most_consistent,
    rank_dispersion,
)
from .locks import SubmissionLockManager, SubmissionOutcome
from .ranking import (
    CategoryPlacement,
    CategoryRanking,
    JudgeRank,
    OverallPlacement,
    OverallRanking,
    average_ranks,
    compute_category_ranking,
    compute_overall_ranking,
    judge_category_totals,
    placement_title,
    rank_judge_category,
)
from .store import InMemoryScoreStore, ScoreChange, ScoreStore
from .tabulation import (
    DivisionResults,
    JudgeProgress,
    ScoringProgress,
    ScoringSnapshot,
    Tabulator,
    compute_division_results,
    compute_progress,
    read_snapshot,
)
from .types import Category, Contestant, Criterion, Judge, LockKey, Score
from .validation import InputSanitizer, ScoreSubmission
from .weighted import (
    aggregate_category_score,
    build_score_rows,
    max_raw_score,
    weighted_score,
)

__all__ = [
    "CATEGORY_CONFIG",
    "TabulationSettings",
    "default_categories",
    "default_criteria",
    "load_settings",
    "AuthorizationError",
    "IncompleteSubmission",
    "LockConflict",
    "TabulationError",
    "TransientStoreError",
    "ValidationError",
    "category_ranking_rows",
    "overall_ranking_rows",
    "score_export_rows",
    "CategoryRankEntry",
    "ContestantInsight",
    "HeadToHead",
    "contestant_insights",
    "head_to_head",
    "most_consistent",
    "rank_dispersion",
    "SubmissionLockManager",
    "SubmissionOutcome",
    "CategoryPlacement",
    "CategoryRanking",
    "JudgeRank",
    "OverallPlacement",
    "OverallRanking",
    "average_ranks",
    "compute_category_ranking",
    "compute_overall_ranking",
    "judge_category_totals",
    "placement_title",
    "rank_judge_category",
    "InMemoryScoreStore",
    "ScoreChange",
    "ScoreStore",
    "DivisionResults",
    "JudgeProgress",
    "ScoringProgress",
    "ScoringSnapshot",
    "Tabulator",
    "compute_division_results",
    "compute_progress",
    "read_snapshot",
    "Category",
    "Contestant",
    "Criterion",
    "Judge",
    "LockKey",
    "Score",
    "InputSanitizer",
    "ScoreSubmission",
    "aggregate_category_score",
    "build_score_rows",
    "max_raw_score",
    "weighted_score",
]
