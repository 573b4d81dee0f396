"""Split analysis: leg times, leg/control positions and losses.

Splits are cumulative from the start and positionally aligned across the
competitors of a class. Index ``i`` < len(control_codes) is the leg ending at
control ``i``; index len(control_codes) is the finish leg, whose cumulative
value is the competitor's result time.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Collection, Sequence

from .config import IN_PROGRESS_STATUSES
from .ranking import competition_ranks, losses_to_best
from .status import status_priority
from .types import Severity
from .validation import CompetitorRecord, ensure_unique_ids

logger = logging.getLogger(__name__)

FINISH_CONTROL_CODE = "F"


@dataclass(frozen=True)
class LegFigures:
    competitor_id: str
    index: int
    control_code: str
    leg_time: float | None
    leg_position: int | None
    leg_loss: float | None
    cumulative_time: float | None
    split_position: int | None
    deviation: Severity = "none"

    @property
    def is_best_leg(self) -> bool:
        return self.leg_position == 1

    @property
    def is_best_split(self) -> bool:
        return self.split_position == 1


@dataclass(frozen=True)
class SplitAnalysis:
    control_codes: tuple[str, ...]
    competitor_ids: tuple[str, ...]
    best_leg_times: tuple[float | None, ...]
    best_split_times: tuple[float | None, ...]
    figures: dict[tuple[str, int], LegFigures] = field(default_factory=dict)

    @property
    def final_index(self) -> int:
        return len(self.control_codes)

    def leg(self, competitor_id: str, index: int) -> LegFigures | None:
        return self.figures.get((competitor_id, index))

    def final_leg(self, competitor_id: str) -> LegFigures | None:
        return self.leg(competitor_id, self.final_index)

    def figures_for(self, competitor_id: str) -> tuple[LegFigures, ...]:
        return tuple(
            self.figures[(competitor_id, index)]
            for index in range(self.final_index + 1)
            if (competitor_id, index) in self.figures
        )

    def leg_losses(self, competitor_id: str, *, include_final: bool = False) -> tuple[float, ...]:
        """Defined leg losses of a competitor, in control order."""
        last = self.final_index + 1 if include_final else self.final_index
        losses: list[float] = []
        for index in range(last):
            figures = self.figures.get((competitor_id, index))
            if figures is not None and figures.leg_loss is not None:
                losses.append(figures.leg_loss)
        return tuple(losses)


@dataclass(frozen=True)
class ChartPoint:
    leg_index: int  # 1-based, as shown on the chart axis
    control_code: str
    losses: dict[str, float]
    positions: dict[str, int]


def _course_reference_key(record: CompetitorRecord) -> tuple[int, float]:
    time = record.time if record.time is not None else math.inf
    return (status_priority(record.status), time)


def control_codes_of(records: Sequence[CompetitorRecord]) -> tuple[str, ...]:
    """
    Control sequence of the class.

    Taken from the best placed competitor with splits (status priority, then
    result time). Equal candidates keep input order.
    """
    candidates = [record for record in records if record.splits]
    if not candidates:
        return ()
    reference = min(candidates, key=_course_reference_key)
    return tuple(split.control_code for split in reference.splits)


def cumulative_at(record: CompetitorRecord, index: int, control_count: int) -> float | None:
    if index == control_count:
        return record.time
    return record.cumulative_time_at(index)


def leg_time(record: CompetitorRecord, index: int, control_count: int | None = None) -> float | None:
    """
    Time spent on a single leg.

    Args:
        record: competitor with cumulative splits
        index: 0-based control index; ``control_count`` addresses the finish leg
        control_count: number of controls of the class (defaults to len(splits))

    Returns:
        Leg time in seconds, or None when either endpoint is missing
    """
    if control_count is None:
        control_count = len(record.splits)
    if index < 0 or index > control_count:
        return None
    current = cumulative_at(record, index, control_count)
    previous = 0.0 if index == 0 else cumulative_at(record, index - 1, control_count)
    if current is None or previous is None:
        return None
    return current - previous


def final_leg_time(record: CompetitorRecord, control_count: int | None = None) -> float | None:
    if control_count is None:
        control_count = len(record.splits)
    return leg_time(record, control_count, control_count)


def analyze_splits(records: Sequence[CompetitorRecord]) -> SplitAnalysis:
    """Compute LegFigures for every competitor and control, finish leg included."""
    ensure_unique_ids(records)
    control_codes = control_codes_of(records)
    control_count = len(control_codes)
    codes = control_codes + (FINISH_CONTROL_CODE,)

    figures: dict[tuple[str, int], LegFigures] = {}
    best_leg_times: list[float | None] = []
    best_split_times: list[float | None] = []

    for index, code in enumerate(codes):
        legs: dict[str, float] = {}
        cumulative: dict[str, float] = {}
        for record in records:
            value = leg_time(record, index, control_count)
            if value is not None:
                legs[record.id] = value
            total = cumulative_at(record, index, control_count)
            if total is not None:
                cumulative[record.id] = total

        leg_positions = competition_ranks(legs.items())
        leg_losses = losses_to_best(legs)
        split_positions = competition_ranks(cumulative.items())
        best_leg_times.append(min(legs.values(), default=None))
        best_split_times.append(min(cumulative.values(), default=None))

        for record in records:
            figures[(record.id, index)] = LegFigures(
                competitor_id=record.id,
                index=index,
                control_code=code,
                leg_time=legs.get(record.id),
                leg_position=leg_positions.get(record.id),
                leg_loss=leg_losses.get(record.id),
                cumulative_time=cumulative.get(record.id),
                split_position=split_positions.get(record.id),
            )

    logger.debug(f"Analyzed {len(records)} competitors over {control_count} controls")
    return SplitAnalysis(
        control_codes=control_codes,
        competitor_ids=tuple(record.id for record in records),
        best_leg_times=tuple(best_leg_times),
        best_split_times=tuple(best_split_times),
        figures=figures,
    )


def split_chart_series(records: Sequence[CompetitorRecord]) -> tuple[ChartPoint, ...]:
    """Cumulative loss to the leader at every control; controls nobody reached are skipped."""
    control_codes = control_codes_of(records)
    points: list[ChartPoint] = []
    for index, code in enumerate(control_codes):
        cumulative = {
            record.id: record.cumulative_time_at(index)
            for record in records
            if record.cumulative_time_at(index) is not None
        }
        if not cumulative:
            continue
        points.append(
            ChartPoint(
                leg_index=index + 1,
                control_code=code,
                losses=losses_to_best(cumulative),
                positions=competition_ranks(cumulative.items()),
            )
        )
    return tuple(points)


def visible_split_competitors(
    records: Sequence[CompetitorRecord],
    hidden_statuses: Collection[str] = IN_PROGRESS_STATUSES,
) -> tuple[CompetitorRecord, ...]:
    """Drop competitors still on course or waiting for readout."""
    return tuple(record for record in records if record.status not in hidden_statuses)


__all__ = [
    "FINISH_CONTROL_CODE",
    "LegFigures",
    "SplitAnalysis",
    "ChartPoint",
    "control_codes_of",
    "cumulative_at",
    "leg_time",
    "final_leg_time",
    "analyze_splits",
    "split_chart_series",
    "visible_split_competitors",
]
