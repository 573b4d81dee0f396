"""Overall ranking engine (competition "1224" ranking + loss to leader).

Single ranking rule shared by overall, per-leg, per-control and per-class views:
- Sort ascending by value, keeping input order among equal values.
- Equal values share a position; ties consume rank slots.
- Loss is measured against the best value of the same scope.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Hashable, Iterable, Sequence, Tuple, TypeVar

from .status import is_ranked_status, status_display, status_priority
from .validation import CompetitorRecord, SplitRecord, ensure_unique_ids

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)


@dataclass(frozen=True)
class RankedCompetitor:
    record: CompetitorRecord
    position: int | None
    loss: float | None
    status_priority: int
    position_glyph: str | None = None
    position_tooltip: str | None = None

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def name(self) -> str | None:
        return self.record.name

    @property
    def organisation(self) -> str | None:
        return self.record.organisation

    @property
    def status(self) -> str | None:
        return self.record.status

    @property
    def time(self) -> float | None:
        return self.record.time

    @property
    def start_time(self) -> datetime | None:
        return self.record.start_time

    @property
    def splits(self) -> Tuple[SplitRecord, ...]:
        return self.record.splits

    @property
    def class_name(self) -> str | None:
        return self.record.class_name

    @property
    def is_ranked(self) -> bool:
        return self.position is not None

    @property
    def position_display(self) -> str:
        # UI helper: numeric positions carry the trailing dot used on result boards.
        if self.position is not None:
            return f"{self.position}."
        return self.position_glyph or ""


@dataclass(frozen=True)
class RankingResult:
    competitors: tuple[RankedCompetitor, ...]
    leader_time: float | None

    def by_id(self) -> dict[str, RankedCompetitor]:
        return {competitor.id: competitor for competitor in self.competitors}

    @property
    def ranked(self) -> tuple[RankedCompetitor, ...]:
        return tuple(c for c in self.competitors if c.is_ranked)


def competition_ranks(entries: Iterable[tuple[K, float]]) -> dict[K, int]:
    """
    Assign standard competition ranks to (key, value) pairs.

    Lower values rank better. The returned dict iterates in rank order.

    Examples:
        - [("a", 100), ("b", 100), ("c", 150)] → {"a": 1, "b": 1, "c": 3}
        - [] → {}
    """
    ordered = sorted(entries, key=lambda entry: entry[1])
    ranks: dict[K, int] = {}
    position = 0
    previous: float | None = None
    for index, (key, value) in enumerate(ordered, start=1):
        if previous is None or value != previous:
            position = index
        ranks[key] = position
        previous = value
    return ranks


def losses_to_best(values: dict[K, float]) -> dict[K, float]:
    """Difference of each value to the smallest one (0 for the best)."""
    if not values:
        return {}
    best = min(values.values())
    return {key: value - best for key, value in values.items()}


def is_rankable(record: CompetitorRecord) -> bool:
    return is_ranked_status(record.status) and record.time is not None


def _start_sort_value(start_time: datetime | None) -> float:
    if start_time is None:
        return math.inf
    return start_time.timestamp()


def display_sort_key(competitor: RankedCompetitor) -> tuple[int, float, float]:
    """Ranked by position first, then unranked by status priority and start time."""
    if competitor.position is not None:
        return (0, float(competitor.position), 0.0)
    return (1, float(competitor.status_priority), _start_sort_value(competitor.start_time))


def rank_records(records: Sequence[CompetitorRecord]) -> tuple[RankedCompetitor, ...]:
    """Rank records and return them in input order."""
    times = {record.id: record.time for record in records if is_rankable(record)}
    positions = competition_ranks(times.items())
    losses = losses_to_best(times)

    ranked: list[RankedCompetitor] = []
    for record in records:
        priority = status_priority(record.status)
        if record.id in positions:
            ranked.append(
                RankedCompetitor(
                    record=record,
                    position=positions[record.id],
                    loss=losses[record.id],
                    status_priority=priority,
                )
            )
            continue
        glyph, tooltip = status_display(record.status)
        ranked.append(
            RankedCompetitor(
                record=record,
                position=None,
                loss=None,
                status_priority=priority,
                position_glyph=glyph,
                position_tooltip=tooltip,
            )
        )
    return tuple(ranked)


def compute_ranking(records: Sequence[CompetitorRecord]) -> RankingResult:
    """
    Compute overall positions and loss to leader for one ranking scope.

    Args:
      records: parsed competitors of one class (ids must be unique).

    Returns:
      RankingResult with competitors in display order.
    """
    ensure_unique_ids(records)
    ranked = rank_records(records)
    ordered = tuple(sorted(ranked, key=display_sort_key))
    leader_time = min(
        (c.time for c in ordered if c.is_ranked and c.time is not None),
        default=None,
    )
    logger.debug(
        f"Ranked {sum(1 for c in ordered if c.is_ranked)} of {len(ordered)} competitors"
    )
    return RankingResult(competitors=ordered, leader_time=leader_time)


__all__ = [
    "RankedCompetitor",
    "RankingResult",
    "competition_ranks",
    "losses_to_best",
    "is_rankable",
    "display_sort_key",
    "rank_records",
    "compute_ranking",
]
