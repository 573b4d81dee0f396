"""Competitor status ordering and display glyphs.

Status handling is a closed lookup table: every known result status maps to a
sort priority and the glyph/tooltip shown in place of a numeric position.
Unknown tokens never raise; they get the lowest priority and a generic glyph.
"""
from __future__ import annotations

from dataclasses import dataclass

from .config import RANKED_STATUS


@dataclass(frozen=True)
class StatusInfo:
    status: str | None
    priority: int
    glyph: str
    tooltip: str
    label: str


UNKNOWN_PRIORITY = 10
UNKNOWN_GLYPH = "\u2753"  # question mark
UNKNOWN_TOOLTIP = "Unknown status"

STATUS_TABLE: dict[str, StatusInfo] = {
    info.status: info
    for info in (
        StatusInfo("OK", 0, "", "", "OK"),
        StatusInfo("Active", 1, "\U0001F3C3", "Currently running", "Active"),
        StatusInfo("Finished", 2, "\U0001F3C1", "Waiting for readout", "Finished"),
        StatusInfo("Inactive", 3, "\U0001F6CF\uFE0F", "Waiting for start time", "Inactive"),
        StatusInfo("NotCompeting", 4, "\U0001F984", "Not competing", "NC"),
        StatusInfo("OverTime", 5, "\u231B", "Over Time", "OT"),
        StatusInfo("Disqualified", 6, "\U0001F7E5", "Disqualified", "DSQ"),
        StatusInfo("MissingPunch", 7, "\U0001F648", "Missing Punch", "MP"),
        StatusInfo("DidNotFinish", 8, "\U0001F3F3\uFE0F", "Did Not Finish", "DNF"),
        StatusInfo("DidNotStart", 9, "\U0001F6B7", "Did not start", "DNS"),
    )
}

# A ranked status without a measured time cannot be placed.
MISSING_TIME_TOOLTIP = "Result time not available"


def classify_status(status: str | None) -> StatusInfo:
    """Look up a status token; unknown tokens get the fallback entry."""
    info = STATUS_TABLE.get(status) if status is not None else None
    if info is None:
        return StatusInfo(status, UNKNOWN_PRIORITY, UNKNOWN_GLYPH, UNKNOWN_TOOLTIP, status or "?")
    return info


def status_priority(status: str | None) -> int:
    return classify_status(status).priority


def is_ranked_status(status: str | None) -> bool:
    return status == RANKED_STATUS


def status_display(status: str | None) -> tuple[str, str]:
    """Glyph and tooltip shown instead of a position for unranked competitors."""
    if is_ranked_status(status):
        return UNKNOWN_GLYPH, MISSING_TIME_TOOLTIP
    info = classify_status(status)
    return info.glyph, info.tooltip


def status_label(status: str | None) -> str:
    return classify_status(status).label


__all__ = [
    "StatusInfo",
    "STATUS_TABLE",
    "UNKNOWN_PRIORITY",
    "UNKNOWN_GLYPH",
    "UNKNOWN_TOOLTIP",
    "MISSING_TIME_TOOLTIP",
    "classify_status",
    "status_priority",
    "is_ranked_status",
    "status_display",
    "status_label",
]
