"""Type definitions for raw snapshot payloads delivered by the live feed."""
from __future__ import annotations

from typing import List, Literal, Optional, TypedDict, Union


class SplitPayload(TypedDict, total=False):
    """One punch of a competitor, cumulative from the start."""
    controlCode: Union[str, int]
    time: Optional[float]  # Seconds from start; None when the punch is missing


class CompetitorPayload(TypedDict, total=False):
    """
    A competitor as it arrives in a snapshot.

    All fields are optional (total=False); only ``id`` is required by the
    parser. Timestamps may be ISO strings or datetimes.
    """
    id: Union[str, int]
    firstname: str
    lastname: str
    name: str
    organisation: Optional[str]
    status: Optional[str]
    startTime: Optional[str]
    finishTime: Optional[str]
    time: Optional[float]  # Seconds elapsed, only for terminal statuses
    splits: List[SplitPayload]
    classId: Union[str, int, None]
    className: Optional[str]
    # Club queries nest the class as {"id", "name"} under the reserved key "class".


SortDirection = Literal["asc", "desc"]
Severity = Literal["none", "significant", "major", "critical"]
