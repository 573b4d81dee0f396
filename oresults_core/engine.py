"""Results pipeline (pure) and per-view live session.

compute_results() turns one snapshot into every derived view-model:
- overall ranking (positions, loss to leader, status glyphs)
- split analysis (leg/control positions and losses, finish leg included)
- per-competitor loss statistics and leg severities
- split chart series for competitors visible in split views
- class and club aggregations

It holds no state: the same snapshot always yields an equal ResultsView.
LiveResultsSession adds the only stateful piece, change highlighting, for one
view scope at a time.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Literal

from .changes import ChangeCallback, ChangeReconciler
from .config import DEFAULT_SETTINGS, EngineSettings
from .deviation import LossStats, annotate_deviations, classify_legs, loss_stats_by_competitor
from .grouping import ClassResult, GroupedResult, group_by_class, group_by_organisation
from .ranking import RankedCompetitor, compute_ranking
from .sorting import DEFAULT_SORT, SortConfig, sort_competitors, toggle_sort
from .splits import ChartPoint, SplitAnalysis, analyze_splits, split_chart_series
from .types import Severity
from .validation import parse_snapshot

logger = logging.getLogger(__name__)

ScopeKind = Literal["class", "club", "event"]


@dataclass(frozen=True)
class ViewScope:
    kind: ScopeKind
    key: str


@dataclass(frozen=True)
class ResultsView:
    competitors: tuple[RankedCompetitor, ...]
    leader_time: float | None
    splits: SplitAnalysis
    loss_stats: dict[str, LossStats]
    severities: dict[tuple[str, int], Severity]
    split_competitors: tuple[RankedCompetitor, ...]
    chart: tuple[ChartPoint, ...]
    classes: tuple[ClassResult, ...]
    organisations: tuple[GroupedResult, ...]

    def by_id(self) -> dict[str, RankedCompetitor]:
        return {competitor.id: competitor for competitor in self.competitors}

    def severity(self, competitor_id: str, index: int) -> Severity:
        return self.severities.get((competitor_id, index), "none")

    def sorted(self, config: SortConfig = DEFAULT_SORT, *, split_view: bool = False) -> tuple[RankedCompetitor, ...]:
        source = self.split_competitors if split_view else self.competitors
        return sort_competitors(source, config, self.splits)


def compute_results(
    rows: Iterable[Any],
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> ResultsView:
    """
    Compute every derived view-model for one snapshot.

    Args:
      rows: competitor dicts (feed payload) or CompetitorRecord instances.
      settings: thresholds and split-view filtering.

    Raises:
      SnapshotValidationError: a row has no usable id.
      DuplicateCompetitorError: two rows share an id.
    """
    records = parse_snapshot(rows)
    ranking = compute_ranking(records)
    analysis = analyze_splits(records)
    loss_stats = loss_stats_by_competitor(analysis)
    severities = classify_legs(analysis, loss_stats, settings.thresholds)
    analysis = annotate_deviations(analysis, severities)

    hidden = settings.hidden_split_statuses
    split_competitors = tuple(c for c in ranking.competitors if c.status not in hidden)
    chart = split_chart_series([c.record for c in split_competitors])

    view = ResultsView(
        competitors=ranking.competitors,
        leader_time=ranking.leader_time,
        splits=analysis,
        loss_stats=loss_stats,
        severities=severities,
        split_competitors=split_competitors,
        chart=chart,
        classes=group_by_class(records),
        organisations=group_by_organisation(records),
    )
    logger.debug(
        f"Computed results for {len(records)} competitors "
        f"({len(view.classes)} classes, {len(view.organisations)} organisations)"
    )
    return view


class LiveResultsSession:
    """One open results view: latest computed snapshot, highlights and sort state."""

    def __init__(
        self,
        scope: ViewScope | None = None,
        settings: EngineSettings = DEFAULT_SETTINGS,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        clock: Callable[[], float] | None = None,
        on_highlight: ChangeCallback | None = None,
    ):
        self.scope = scope
        self.settings = settings
        self.sort = DEFAULT_SORT
        self._view: ResultsView | None = None
        self._reconciler = ChangeReconciler(
            settings.highlight_seconds,
            loop=loop,
            clock=clock,
            on_change=on_highlight,
        )

    @property
    def view(self) -> ResultsView | None:
        return self._view

    @property
    def changed_ids(self) -> frozenset:
        return self._reconciler.changed_ids

    @property
    def closed(self) -> bool:
        return self._reconciler.closed

    def update(self, rows: Iterable[Any]) -> ResultsView:
        """Replace the current snapshot with a new full snapshot of the scope."""
        view = compute_results(rows, self.settings)
        self._reconciler.reconcile(view.competitors)
        self._view = view
        return view

    def set_scope(self, scope: ViewScope) -> None:
        if scope == self.scope:
            return
        logger.debug(f"Results scope changed: {self.scope} -> {scope}")
        self.scope = scope
        self._view = None
        self._reconciler.reset()

    def toggle_sort(self, field: str) -> SortConfig:
        self.sort = toggle_sort(self.sort, field)
        return self.sort

    def reset_sort(self) -> SortConfig:
        self.sort = DEFAULT_SORT
        return self.sort

    def sorted_competitors(self, *, split_view: bool = False) -> tuple[RankedCompetitor, ...]:
        if self._view is None:
            return ()
        return self._view.sorted(self.sort, split_view=split_view)

    def close(self) -> None:
        self._reconciler.close()
        self._view = None

    def __enter__(self) -> "LiveResultsSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


__all__ = [
    "ScopeKind",
    "ViewScope",
    "ResultsView",
    "compute_results",
    "LiveResultsSession",
]
