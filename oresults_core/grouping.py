"""Club and class aggregation of ranked competitors.

Club view positions are class-scoped: a competitor is ranked only against the
"OK" finishers of their own class, using the same competition ranking as the
overall view. Clubs are ordered by their best class position.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

from .ranking import (
    RankedCompetitor,
    RankingResult,
    compute_ranking,
    rank_records,
)
from .validation import CompetitorRecord, ensure_unique_ids

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassBlock:
    class_name: str | None
    competitors: tuple[RankedCompetitor, ...]
    class_id: str | None = None


@dataclass(frozen=True)
class GroupedResult:
    organisation: str | None
    blocks: tuple[ClassBlock, ...]

    @property
    def competitors(self) -> tuple[RankedCompetitor, ...]:
        return tuple(c for block in self.blocks for c in block.competitors)

    @property
    def best_position(self) -> int | None:
        return min(
            (c.position for c in self.competitors if c.position is not None),
            default=None,
        )


@dataclass(frozen=True)
class ClassResult:
    class_id: str | None
    class_name: str | None
    ranking: RankingResult


def class_key(record: CompetitorRecord) -> str | None:
    """Ranking scope of a record: class id when known, else class name."""
    if record.class_id is not None:
        return record.class_id
    return record.class_name


def _class_name_sort_key(class_name: str | None) -> tuple[int, str]:
    # Competitors without a class go after every named class.
    if class_name is None:
        return (1, "")
    return (0, class_name)


def class_display_name(record: CompetitorRecord) -> str | None:
    """Class name, falling back to the class id for feeds that send only ids."""
    if record.class_name is not None:
        return record.class_name
    return record.class_id


def _class_sort_key(record: CompetitorRecord) -> tuple:
    # Same-named classes with different ids stay apart.
    return (_class_name_sort_key(class_display_name(record)), class_key(record) or "")


def _partition_by_class(records: Sequence[CompetitorRecord]) -> dict[str | None, list[CompetitorRecord]]:
    partitions: dict[str | None, list[CompetitorRecord]] = {}
    for record in records:
        partitions.setdefault(class_key(record), []).append(record)
    return partitions


def group_by_class(records: Sequence[CompetitorRecord]) -> tuple[ClassResult, ...]:
    """Rank each class separately; classes ordered by name."""
    ensure_unique_ids(records)
    results: list[ClassResult] = []
    for members in _partition_by_class(records).values():
        first = members[0]
        results.append(
            ClassResult(
                class_id=first.class_id,
                class_name=class_display_name(first),
                ranking=compute_ranking(members),
            )
        )
    results.sort(key=lambda result: (_class_name_sort_key(result.class_name), result.class_id or ""))
    return tuple(results)


def class_scoped_ranking(records: Sequence[CompetitorRecord]) -> dict[str, RankedCompetitor]:
    """Rank every competitor against their own class only, keyed by id."""
    ranked: dict[str, RankedCompetitor] = {}
    for members in _partition_by_class(records).values():
        for competitor in rank_records(members):
            ranked[competitor.id] = competitor
    return ranked


def _club_member_sort_key(competitor: RankedCompetitor) -> tuple:
    if competitor.position is not None:
        within = (0, float(competitor.position))
    else:
        start = competitor.start_time.timestamp() if competitor.start_time else math.inf
        within = (1, start)
    return (
        _class_sort_key(competitor.record),
        competitor.status_priority,
        within,
    )


def _blocks(competitors: Sequence[RankedCompetitor]) -> tuple[ClassBlock, ...]:
    """Split an ordered member list at class transitions."""
    blocks: list[ClassBlock] = []
    current: list[RankedCompetitor] = []
    current_key: str | None = None
    for competitor in competitors:
        key = class_key(competitor.record)
        if current and key != current_key:
            blocks.append(_block(current))
            current = []
        current_key = key
        current.append(competitor)
    if current:
        blocks.append(_block(current))
    return tuple(blocks)


def _block(members: list[RankedCompetitor]) -> ClassBlock:
    first = members[0].record
    return ClassBlock(
        class_name=class_display_name(first),
        competitors=tuple(members),
        class_id=first.class_id,
    )


def group_by_organisation(records: Sequence[CompetitorRecord]) -> tuple[GroupedResult, ...]:
    """
    Build the club view.

    Args:
      records: competitors of the whole event (class peers are needed for
        class-scoped positions, even those of other clubs).

    Returns:
      GroupedResult per organisation; clubs with a better best position come
      first, clubs without ranked members last, ties in first-appearance order.
    """
    ensure_unique_ids(records)
    ranked = class_scoped_ranking(records)

    members_by_org: dict[str | None, list[RankedCompetitor]] = {}
    for record in records:
        members_by_org.setdefault(record.organisation, []).append(ranked[record.id])

    groups = [
        GroupedResult(
            organisation=organisation,
            blocks=_blocks(sorted(members, key=_club_member_sort_key)),
        )
        for organisation, members in members_by_org.items()
    ]

    def _best(group: GroupedResult) -> float:
        best = group.best_position
        return math.inf if best is None else float(best)

    groups.sort(key=_best)
    logger.debug(f"Grouped {len(records)} competitors into {len(groups)} organisations")
    return tuple(groups)


__all__ = [
    "ClassBlock",
    "GroupedResult",
    "ClassResult",
    "class_key",
    "class_display_name",
    "group_by_class",
    "class_scoped_ranking",
    "group_by_organisation",
]
