"""Transient "changed row" highlighting between consecutive snapshots.

Lifecycle of one reconciler (one per results view):
- created when the view opens, with an empty previous snapshot
- reconcile() diffs every new computed snapshot against the previous one;
  ids present in both whose records differ are highlighted
- the highlight expires after ``highlight_seconds`` or is replaced by the
  next batch, whichever comes first (one timer per batch)
- reset() when the view scope (class/club/event) changes
- close() when the view goes away; pending timers are cancelled

Expiry is enforced twice: a loop timer (``loop.call_later``) notifies
``on_change`` when the highlight ends, and ``changed_ids`` checks the batch
deadline itself so hosts without a running event loop get the same result.
"""
from __future__ import annotations

import asyncio
import logging
import time
from operator import attrgetter
from typing import Any, Callable, Hashable, Iterable

from .config import HIGHLIGHT_DURATION_SECONDS
from .validation import DuplicateCompetitorError

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[frozenset], None]


class ChangeReconciler:
    """Diffs computed snapshots by id and keeps a self-expiring changed set."""

    def __init__(
        self,
        highlight_seconds: float = HIGHLIGHT_DURATION_SECONDS,
        *,
        key: Callable[[Any], Hashable] = attrgetter("id"),
        loop: asyncio.AbstractEventLoop | None = None,
        clock: Callable[[], float] | None = None,
        on_change: ChangeCallback | None = None,
    ):
        if highlight_seconds <= 0:
            raise ValueError("highlight_seconds must be positive")
        self.highlight_seconds = float(highlight_seconds)
        self._key = key
        self._loop = loop
        self._clock = clock or (loop.time if loop is not None else time.monotonic)
        self._on_change = on_change

        self._previous: dict[Hashable, Any] = {}
        self._changed: frozenset = frozenset()
        self._deadline: float | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._batch = 0
        self._closed = False

    @property
    def changed_ids(self) -> frozenset:
        if self._changed and self._deadline is not None and self._clock() >= self._deadline:
            self._expire(self._batch)
        return self._changed

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    def is_changed(self, item_id: Hashable) -> bool:
        return item_id in self.changed_ids

    def reconcile(self, current: Iterable[Any]) -> frozenset:
        """
        Compare a freshly computed snapshot with the previous one.

        Returns:
            The ids highlighted for this batch (possibly empty).

        Raises:
            DuplicateCompetitorError: If two items of the snapshot share an id
            RuntimeError: If the reconciler was closed
        """
        if self._closed:
            raise RuntimeError("reconciler is closed")

        current_by_id: dict[Hashable, Any] = {}
        duplicates: set = set()
        for item in current:
            item_id = self._key(item)
            if item_id in current_by_id:
                duplicates.add(str(item_id))
            current_by_id[item_id] = item
        if duplicates:
            raise DuplicateCompetitorError(duplicates)

        previous = self._previous
        changed = frozenset(
            item_id
            for item_id, item in current_by_id.items()
            if item_id in previous and previous[item_id] != item
        )

        # Swap only once the new batch is fully computed.
        self._previous = current_by_id
        self._start_batch(changed)
        if changed:
            logger.debug(f"Highlighting {len(changed)} changed competitors")
        return changed

    def reset(self) -> None:
        """Forget the previous snapshot, e.g. when the view scope changes."""
        had_highlight = bool(self._changed)
        self._cancel_timer()
        self._batch += 1
        self._previous = {}
        self._changed = frozenset()
        self._deadline = None
        if had_highlight:
            self._notify()

    def close(self) -> None:
        if self._closed:
            return
        self._cancel_timer()
        self._batch += 1
        self._previous = {}
        self._changed = frozenset()
        self._deadline = None
        self._closed = True

    def __enter__(self) -> "ChangeReconciler":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _start_batch(self, changed: frozenset) -> None:
        had_highlight = bool(self._changed)
        self._cancel_timer()
        self._batch += 1
        self._changed = changed
        self._deadline = None
        if changed:
            self._deadline = self._clock() + self.highlight_seconds
            loop = self._resolve_loop()
            if loop is not None:
                self._timer = loop.call_later(self.highlight_seconds, self._expire, self._batch)
        if changed or had_highlight:
            self._notify()

    def _expire(self, batch: int) -> None:
        if batch != self._batch:
            # Superseded by a newer batch.
            return
        self._cancel_timer()
        self._deadline = None
        if self._changed:
            self._changed = frozenset()
            self._notify()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _resolve_loop(self) -> asyncio.AbstractEventLoop | None:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self._changed)


__all__ = ["ChangeReconciler", "ChangeCallback"]
