import threading

import pytest

from tabulation_core import (
    AuthorizationError,
    IncompleteSubmission,
    InMemoryScoreStore,
    LockConflict,
    LockKey,
    SubmissionLockManager,
    TabulationSettings,
    TransientStoreError,
    ValidationError,
    read_snapshot,
)
from tabulation_core.weighted import build_score_rows


def _store():
    return InMemoryScoreStore(
        categories=[{"id": "X", "label": "Production", "sort_order": 1}],
        criteria=[
            {"id": "X-a", "category_id": "X", "label": "Poise", "percentage": 0.6, "sort_order": 1},
            {"id": "X-b", "category_id": "X", "label": "Impact", "percentage": 0.4, "sort_order": 2},
        ],
        judges=[{"id": "J1", "full_name": "Judge One", "division": "male"}],
        contestants=[{"id": "C1", "full_name": "Alex", "number": 1, "division": "male"}],
    )


def _criteria(store):
    return read_snapshot(store).criteria


def _submission(a=50, b=30, judge="J1", contestant="C1"):
    return {
        "judge_id": judge,
        "category_id": "X",
        "contestant_id": contestant,
        "raw_scores": {"X-a": a, "X-b": b},
    }


class _SlowLockStore(InMemoryScoreStore):
    """Holds every lock creation until two submits have both written their scores."""

    def __init__(self):
        base = _store()
        super().__init__(
            categories=base.list_categories(),
            criteria=base.list_criteria(),
            judges=base.list_judges(),
            contestants=base.list_contestants(),
        )
        self.barrier = threading.Barrier(2, timeout=5)

    def create_lock(self, judge_id, category_id, contestant_id):
        self.barrier.wait()
        return super().create_lock(judge_id, category_id, contestant_id)


class _FlakyLockStore(InMemoryScoreStore):
    """Fails the first ``failures`` lock creations after accepting the scores."""

    def __init__(self, failures=1):
        base = _store()
        super().__init__(
            categories=base.list_categories(),
            criteria=base.list_criteria(),
            judges=base.list_judges(),
            contestants=base.list_contestants(),
        )
        self.failures = failures

    def create_lock(self, judge_id, category_id, contestant_id):
        if self.failures > 0:
            self.failures -= 1
            raise TransientStoreError("lock table unreachable")
        return super().create_lock(judge_id, category_id, contestant_id)


def test_submit_stores_scores_and_locks():
    store = _store()
    manager = SubmissionLockManager(store)
    outcome = manager.submit(_submission(), _criteria(store))
    assert outcome.locked is True
    assert outcome.rankings_stale is True
    assert outcome.key == LockKey(judge_id="J1", category_id="X", contestant_id="C1")
    assert [s.weighted_score for s in outcome.scores] == [50.0, 30.0]
    assert manager.is_locked("J1", "X", "C1")
    assert len(store.list_scores(judge_id="J1", category_id="X")) == 2


def test_locked_submission_refuses_writes_until_admin_unlocks():
    store = _store()
    manager = SubmissionLockManager(store)
    criteria = _criteria(store)
    manager.submit(_submission(), criteria)

    with pytest.raises(LockConflict) as exc:
        manager.submit(_submission(a=10), criteria)
    assert exc.value.kind == "already_submitted"
    assert exc.value.status_code == 409
    assert exc.value.key.contestant_id == "C1"

    # The store itself refuses the write too (compare-and-set on the tuple).
    with pytest.raises(LockConflict):
        store.upsert_scores(build_score_rows(_submission(a=10), criteria))

    assert manager.unlock("J1", "X", "C1", role="admin") is True
    assert not manager.is_locked("J1", "X", "C1")

    outcome = manager.submit(_submission(a=10), criteria)
    assert outcome.locked is True
    raws = {row["criterion_id"]: row["raw_score"] for row in store.list_scores()}
    assert raws == {"X-a": 10, "X-b": 30}
    changes = [c.change_type for c in store.history()]
    assert changes == ["created", "created", "updated", "updated"]
    assert store.history()[2].old_raw_score == 50


def test_lock_is_idempotent():
    store = _store()
    manager = SubmissionLockManager(store)
    manager.lock("J1", "X", "C1")
    manager.lock("J1", "X", "C1")
    assert store.create_lock("J1", "X", "C1") is False
    assert store.list_locks() == [{"judge_id": "J1", "category_id": "X", "contestant_id": "C1"}]


def test_unlock_requires_admin_role():
    store = _store()
    manager = SubmissionLockManager(store)
    manager.lock("J1", "X", "C1")
    with pytest.raises(AuthorizationError):
        manager.unlock("J1", "X", "C1", role="judge")
    assert manager.is_locked("J1", "X", "C1")


def test_unlock_honours_configured_admin_role():
    store = _store()
    manager = SubmissionLockManager(store, TabulationSettings(admin_role="tabulator"))
    manager.lock("J1", "X", "C1")
    with pytest.raises(AuthorizationError):
        manager.unlock("J1", "X", "C1", role="admin")
    assert manager.unlock("J1", "X", "C1", role="tabulator") is True


def test_unlock_without_lock_reports_nothing_removed():
    manager = SubmissionLockManager(_store())
    assert manager.unlock("J1", "X", "C1", role="admin") is False


@pytest.mark.parametrize("raw", [True, "30", None])
def test_non_numeric_scores_are_rejected_on_submit(raw):
    store = _store()
    manager = SubmissionLockManager(store)
    with pytest.raises(ValidationError):
        manager.submit(_submission(a=raw), _criteria(store))
    assert store.list_scores() == []
    assert store.list_locks() == []


def test_invalid_scores_never_reach_the_store():
    store = _store()
    manager = SubmissionLockManager(store)
    with pytest.raises(ValidationError):
        manager.submit(_submission(a=61), _criteria(store))
    assert store.list_scores() == []
    assert store.list_locks() == []


def test_failed_lock_leaves_scores_unlocked_and_retry_completes():
    store = _FlakyLockStore(failures=1)
    manager = SubmissionLockManager(store)
    with pytest.raises(IncompleteSubmission) as exc:
        manager.submit(_submission(), _criteria(store))
    assert exc.value.retryable is True
    assert isinstance(exc.value.__cause__, TransientStoreError)
    assert len(store.list_scores()) == 2
    assert not manager.is_locked("J1", "X", "C1")

    outcome = manager.retry_lock(exc.value.key)
    assert outcome.locked is True
    assert manager.is_locked("J1", "X", "C1")


def test_lock_retry_propagates_store_outage():
    store = _FlakyLockStore(failures=2)
    manager = SubmissionLockManager(store)
    with pytest.raises(IncompleteSubmission) as exc:
        manager.submit(_submission(), _criteria(store))
    with pytest.raises(TransientStoreError):
        manager.retry_lock(exc.value.key)
    assert manager.retry_lock(exc.value.key).locked is True


def test_unreachable_store_is_reported_as_transient():
    store = _store()
    criteria = _criteria(store)
    manager = SubmissionLockManager(store)
    store.available = False
    with pytest.raises(TransientStoreError) as exc:
        manager.submit(_submission(), criteria)
    assert exc.value.retryable is True
    with pytest.raises(TransientStoreError):
        manager.unlock("J1", "X", "C1", role="admin")
    store.available = True
    assert store.list_scores() == []


def test_racing_submissions_leave_a_single_lock():
    store = _store()
    manager = SubmissionLockManager(store)
    criteria = _criteria(store)
    outcomes = []
    conflicts = []
    barrier = threading.Barrier(8)

    def _worker(value):
        barrier.wait()
        try:
            outcomes.append(manager.submit(_submission(a=value), criteria))
        except LockConflict as e:
            conflicts.append(e)

    threads = [threading.Thread(target=_worker, args=(40 + i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(outcomes) + len(conflicts) == 8
    assert len(outcomes) == 1
    assert len(store.list_locks()) == 1
    stored = {row["criterion_id"]: row["raw_score"] for row in store.list_scores()}
    assert stored == {s.criterion_id: s.raw_score for s in outcomes[0].scores}


def test_overwritten_submit_is_not_reported_as_locked():
    store = _SlowLockStore()
    manager = SubmissionLockManager(store)
    criteria = _criteria(store)
    outcomes = []
    conflicts = []

    def _worker(value):
        try:
            outcomes.append(manager.submit(_submission(a=value), criteria))
        except LockConflict as e:
            conflicts.append(e)

    threads = [threading.Thread(target=_worker, args=(value,)) for value in (10, 50)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(outcomes) == 1
    assert len(conflicts) == 1
    assert conflicts[0].key.contestant_id == "C1"
    stored = {row["criterion_id"]: row["raw_score"] for row in store.list_scores()}
    assert stored["X-a"] == outcomes[0].scores[0].raw_score
    assert len(store.list_locks()) == 1
