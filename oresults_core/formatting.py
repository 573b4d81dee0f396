"""Result time formatting helpers."""
from __future__ import annotations

import math


def format_seconds_to_time(seconds: float | None) -> str:
    """Render seconds as M:SS, or HH:MM:SS from three hours up.

    Examples:
        - 75 → "1:15"
        - 3725 → "62:05"
        - 11000 → "03:03:20"
        - None or negative → ""
    """
    if seconds is None or not math.isfinite(seconds) or seconds < 0:
        return ""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if hours >= 3:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    total_minutes = int(seconds // 60)
    return f"{total_minutes}:{secs:02d}"


def format_loss(loss: float | None) -> str:
    """Loss column text: "+M:SS" for positive losses, empty for the leader."""
    if loss is None or loss <= 0:
        return ""
    return f"+{format_seconds_to_time(loss)}"


__all__ = ["format_seconds_to_time", "format_loss"]
