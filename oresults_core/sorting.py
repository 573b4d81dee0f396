"""Column sorting for result and split tables.

Entries without a value for the chosen column (unranked positions, missing
leg times) always go last; the direction only reorders entries that have one.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

from .ranking import RankedCompetitor
from .splits import SplitAnalysis, final_leg_time, leg_time
from .types import SortDirection

FIXED_FIELDS = ("position", "time", "loss", "final-leg")
_INDEXED_FIELD = re.compile(r"^(leg|split)-(\d+)$")

_FIELD_LABELS = {
    "position": "Position",
    "time": "Finish Time",
    "loss": "Loss to Leader",
    "final-leg": "Final Leg Time",
}


@dataclass(frozen=True)
class SortConfig:
    field: str = "position"
    direction: SortDirection = "asc"


DEFAULT_SORT = SortConfig()


def parse_sort_field(field: str) -> tuple[str, int | None]:
    """Split a sort key into its kind and control index.

    Examples:
        - "loss" → ("loss", None)
        - "leg-3" → ("leg", 3)

    Raises:
        ValueError: for keys no column provides
    """
    if field in FIXED_FIELDS:
        return field, None
    match = _INDEXED_FIELD.match(field or "")
    if match is None:
        raise ValueError(f"unknown sort field: {field!r}")
    return match.group(1), int(match.group(2))


def sort_value(
    competitor: RankedCompetitor,
    field: str,
    analysis: SplitAnalysis | None = None,
) -> float | None:
    kind, index = parse_sort_field(field)
    if kind == "position":
        return None if competitor.position is None else float(competitor.position)
    if kind == "time":
        return competitor.time
    if kind == "loss":
        return competitor.loss
    if kind == "final-leg":
        if analysis is not None:
            figures = analysis.final_leg(competitor.id)
            return figures.leg_time if figures else None
        return final_leg_time(competitor.record)
    if kind == "split":
        return competitor.record.cumulative_time_at(index)

    # leg-N addresses control legs only; the finish leg has its own key.
    if analysis is not None:
        if index >= analysis.final_index:
            return None
        figures = analysis.leg(competitor.id, index)
        return figures.leg_time if figures else None
    if index >= len(competitor.splits):
        return None
    return leg_time(competitor.record, index)


def sort_competitors(
    competitors: Sequence[RankedCompetitor],
    config: SortConfig = DEFAULT_SORT,
    analysis: SplitAnalysis | None = None,
) -> tuple[RankedCompetitor, ...]:
    """Stable sort by one column; missing values last in both directions."""
    if config.direction not in ("asc", "desc"):
        raise ValueError(f"unknown sort direction: {config.direction!r}")
    parse_sort_field(config.field)

    present: list[tuple[float, RankedCompetitor]] = []
    missing: list[RankedCompetitor] = []
    for competitor in competitors:
        value = sort_value(competitor, config.field, analysis)
        if value is None:
            missing.append(competitor)
        else:
            present.append((value, competitor))

    present.sort(key=lambda item: item[0], reverse=config.direction == "desc")
    return tuple(c for _, c in present) + tuple(missing)


def toggle_sort(current: SortConfig, field: str) -> SortConfig:
    """Same column flips the direction; a new column starts ascending."""
    parse_sort_field(field)
    if current.field == field:
        return SortConfig(field=field, direction="desc" if current.direction == "asc" else "asc")
    return SortConfig(field=field, direction="asc")


def sort_label(config: SortConfig) -> str:
    """Header badge text, e.g. "Leg 3 (Desc)" for leg-2 descending."""
    kind, index = parse_sort_field(config.field)
    if index is None:
        name = _FIELD_LABELS[kind]
    else:
        name = f"{kind.capitalize()} {index + 1}"
    suffix = "(Asc)" if config.direction == "asc" else "(Desc)"
    return f"{name} {suffix}"


__all__ = [
    "FIXED_FIELDS",
    "SortConfig",
    "DEFAULT_SORT",
    "parse_sort_field",
    "sort_value",
    "sort_competitors",
    "toggle_sort",
    "sort_label",
]
