from __future__ import annotations

import asyncio
from dataclasses import dataclass

import pytest

from oresults_core import ChangeReconciler, DuplicateCompetitorError


@dataclass(frozen=True)
class _Row:
    id: str
    time: float | None


class _Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _reconciler(seconds: float = 10.0):
    clock = _Clock()
    return ChangeReconciler(seconds, clock=clock), clock


def test_first_snapshot_highlights_nothing():
    reconciler, _ = _reconciler()
    assert reconciler.reconcile([_Row("X", 100), _Row("Y", 200)]) == frozenset()
    assert reconciler.changed_ids == frozenset()


def test_changed_record_is_highlighted_and_unchanged_is_not():
    reconciler, _ = _reconciler()
    reconciler.reconcile([_Row("X", 100), _Row("Y", 200)])
    changed = reconciler.reconcile([_Row("X", 105), _Row("Y", 200)])
    assert changed == {"X"}
    assert reconciler.is_changed("X")
    assert not reconciler.is_changed("Y")


def test_highlight_expires_after_duration():
    reconciler, clock = _reconciler(10.0)
    reconciler.reconcile([_Row("X", 100)])
    reconciler.reconcile([_Row("X", 105)])
    clock.now = 9.9
    assert reconciler.changed_ids == {"X"}
    clock.now = 10.0
    assert reconciler.changed_ids == frozenset()


def test_newer_batch_replaces_previous_highlight():
    reconciler, clock = _reconciler(10.0)
    reconciler.reconcile([_Row("X", 100), _Row("Y", 200)])
    reconciler.reconcile([_Row("X", 105), _Row("Y", 200)])
    clock.now = 5.0
    reconciler.reconcile([_Row("X", 105), _Row("Y", 210)])
    assert reconciler.changed_ids == {"Y"}
    clock.now = 12.0
    assert reconciler.changed_ids == {"Y"}
    clock.now = 15.0
    assert reconciler.changed_ids == frozenset()


def test_unchanged_batch_clears_highlight_immediately():
    reconciler, _ = _reconciler()
    reconciler.reconcile([_Row("X", 100)])
    reconciler.reconcile([_Row("X", 105)])
    reconciler.reconcile([_Row("X", 105)])
    assert reconciler.changed_ids == frozenset()


def test_added_and_removed_ids_are_not_highlighted():
    reconciler, _ = _reconciler()
    reconciler.reconcile([_Row("X", 100), _Row("Y", 200)])
    assert reconciler.reconcile([_Row("X", 100), _Row("Z", 50)]) == frozenset()


def test_reset_forgets_previous_snapshot():
    reconciler, _ = _reconciler()
    reconciler.reconcile([_Row("X", 100)])
    reconciler.reconcile([_Row("X", 105)])
    reconciler.reset()
    assert reconciler.changed_ids == frozenset()
    assert reconciler.reconcile([_Row("X", 110)]) == frozenset()


def test_duplicate_ids_are_a_precondition_error():
    reconciler, _ = _reconciler()
    with pytest.raises(DuplicateCompetitorError):
        reconciler.reconcile([_Row("X", 100), _Row("X", 101)])


def test_closed_reconciler_rejects_snapshots():
    reconciler, _ = _reconciler()
    with reconciler:
        reconciler.reconcile([_Row("X", 100)])
    assert reconciler.closed
    with pytest.raises(RuntimeError):
        reconciler.reconcile([_Row("X", 100)])


def test_highlight_seconds_must_be_positive():
    with pytest.raises(ValueError):
        ChangeReconciler(0)


def test_loop_timer_clears_highlight_and_notifies():
    loop = asyncio.new_event_loop()
    events = []
    try:
        reconciler = ChangeReconciler(0.05, loop=loop, on_change=events.append)
        reconciler.reconcile([_Row("X", 100)])
        reconciler.reconcile([_Row("X", 105)])
        assert reconciler.has_pending_timer
        loop.run_until_complete(asyncio.sleep(0.2))
        assert events == [frozenset({"X"}), frozenset()]
        assert not reconciler.has_pending_timer
        assert reconciler.changed_ids == frozenset()
    finally:
        loop.close()


def test_superseded_timer_never_fires():
    loop = asyncio.new_event_loop()
    events = []
    try:
        reconciler = ChangeReconciler(0.05, loop=loop, on_change=events.append)
        reconciler.reconcile([_Row("X", 100), _Row("Y", 1)])
        reconciler.reconcile([_Row("X", 105), _Row("Y", 1)])
        reconciler.reconcile([_Row("X", 105), _Row("Y", 2)])
        loop.run_until_complete(asyncio.sleep(0.2))
        assert events == [frozenset({"X"}), frozenset({"Y"}), frozenset()]
    finally:
        loop.close()


def test_close_cancels_pending_timer():
    loop = asyncio.new_event_loop()
    events = []
    try:
        reconciler = ChangeReconciler(0.05, loop=loop, on_change=events.append)
        reconciler.reconcile([_Row("X", 100)])
        reconciler.reconcile([_Row("X", 105)])
        reconciler.close()
        assert not reconciler.has_pending_timer
        loop.run_until_complete(asyncio.sleep(0.2))
        assert events == [frozenset({"X"})]
    finally:
        loop.close()
