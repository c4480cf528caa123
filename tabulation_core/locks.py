"""Submission lock manager.

A judge's scores for one contestant in one category stay mutable until the
(judge, category, contestant) lock exists. The scoring action is:

- validate every raw score against its criterion bound (ValidationError)
- refuse if the tuple is already locked (LockConflict)
- upsert the score rows; the store re-checks the lock atomically
- create the lock (idempotent upsert on the natural key)
- re-read the stored rows; if a racing submit overwrote them first, LockConflict

If the lock step fails after the scores were written, the scores stay
visible but unlocked and IncompleteSubmission is raised; the caller retries
``retry_lock`` rather than re-submitting. Only administrators may unlock.

The manager never notifies anyone itself: SubmissionOutcome.rankings_stale
tells the caller when observers (cached rankings, live displays) need to be
invalidated.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from .config import TabulationSettings
from .errors import (
    AuthorizationError,
    IncompleteSubmission,
    LockConflict,
    TabulationError,
    TransientStoreError,
)
from .store import ScoreStore
from .types import Criterion, LockKey, Score
from .validation import InputSanitizer, ScoreSubmission
from .weighted import build_score_rows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of a scoring action or lock retry."""

    key: LockKey
    scores: tuple[Score, ...]
    locked: bool
    # True whenever persisted state changed and derived rankings must be recomputed.
    rankings_stale: bool


class SubmissionLockManager:
    def __init__(self, store: ScoreStore, settings: TabulationSettings | None = None):
        self.store = store
        self.settings = settings or TabulationSettings()

    def is_locked(self, judge_id: str, category_id: str, contestant_id: str) -> bool:
        rows = self.store.list_locks(judge_id=judge_id, category_id=category_id)
        return any(row.get("contestant_id") == contestant_id for row in rows)

    def lock(self, judge_id: str, category_id: str, contestant_id: str) -> LockKey:
        """Create the lock. Re-locking an already locked tuple is a no-op."""
        key = LockKey(judge_id=judge_id, category_id=category_id, contestant_id=contestant_id)
        if self.store.create_lock(judge_id, category_id, contestant_id):
            logger.info(f"Locked submission {key.describe()}")
        else:
            logger.debug(f"Submission {key.describe()} was already locked")
        return key

    def _stored_raw_scores(self, key: LockKey) -> dict[str, float]:
        rows = self.store.list_scores(judge_id=key.judge_id, category_id=key.category_id)
        return {
            row["criterion_id"]: row["raw_score"]
            for row in rows
            if row.get("contestant_id") == key.contestant_id
        }

    def unlock(
        self, judge_id: str, category_id: str, contestant_id: str, *, role: str
    ) -> bool:
        """
        Reopen a submission for scoring (administrators only).

        Returns:
            True if a lock was removed, False if the tuple was not locked

        Raises:
            AuthorizationError: If ``role`` is not the configured admin role
            TransientStoreError: If the store is unreachable
        """
        key = LockKey(judge_id=judge_id, category_id=category_id, contestant_id=contestant_id)
        if role != self.settings.admin_role:
            logger.warning(f"Unlock refused for role={role!r} on {key.describe()}")
            raise AuthorizationError(f"role {role!r} may not unlock submissions")
        removed = self.store.remove_lock(judge_id, category_id, contestant_id)
        if removed:
            logger.info(f"Unlocked submission {key.describe()}")
        else:
            logger.debug(f"Unlock on {key.describe()} found no lock")
        return removed

    def submit(
        self, submission: ScoreSubmission | dict, criteria: Sequence[Criterion]
    ) -> SubmissionOutcome:
        """
        Run the full judge scoring action and lock the submission.

        Raises:
            ValidationError: Raw scores missing or outside their criterion bounds
            LockConflict: The tuple is already locked ("already submitted"), or a
                concurrent submission for it was the one that got locked
            TransientStoreError: The store was unreachable before scores were written
            IncompleteSubmission: Scores were written but the lock was not created
        """
        submission = InputSanitizer.validate_submission(submission)
        key = submission.key
        rows = build_score_rows(submission, criteria, self.settings.score_precision)

        if self.is_locked(key.judge_id, key.category_id, key.contestant_id):
            logger.warning(f"Rejected re-submission for locked {key.describe()}")
            raise LockConflict(key)

        self.store.upsert_scores(rows)
        logger.info(f"Stored {len(rows)} scores for {key.describe()}")

        try:
            self.lock(key.judge_id, key.category_id, key.contestant_id)
            stored = self._stored_raw_scores(key)
        except TabulationError as e:
            logger.warning(f"Lock step failed for {key.describe()}: {e}")
            raise IncompleteSubmission(key) from e

        # A racing submit may have overwritten our rows before the lock landed.
        if any(stored.get(row.criterion_id) != row.raw_score for row in rows):
            logger.warning(f"Concurrent submission won the lock for {key.describe()}")
            raise LockConflict(key)

        return SubmissionOutcome(key=key, scores=tuple(rows), locked=True, rankings_stale=True)

    def retry_lock(self, key: LockKey) -> SubmissionOutcome:
        """
        Retry only the lock step of an IncompleteSubmission.

        Raises:
            TransientStoreError: If the store is still unreachable
        """
        try:
            self.lock(key.judge_id, key.category_id, key.contestant_id)
        except TransientStoreError:
            logger.warning(f"Lock retry failed for {key.describe()}")
            raise
        return SubmissionOutcome(key=key, scores=(), locked=True, rankings_stale=True)


__all__ = [
    "SubmissionOutcome",
    "SubmissionLockManager",
]
