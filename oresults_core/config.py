"""Engine settings and shared constants."""
from __future__ import annotations

from typing import FrozenSet, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Only competitors with this status and a measured time receive a position.
RANKED_STATUS = "OK"

# Highlight rows changed by the latest snapshot for this long.
HIGHLIGHT_DURATION_SECONDS = 10.0

# Statuses of competitors still out on the course (or not read out yet).
IN_PROGRESS_STATUSES: FrozenSet[str] = frozenset({"Active", "Inactive", "Finished"})


class DeviationThresholds(BaseModel):
    """Deviation bounds (in standard deviations), all inclusive."""

    significant: float = Field(1.5, gt=0, description="Significant loss (sigma)")
    major: float = Field(2.5, gt=0, description="Major loss (sigma)")
    critical: float = Field(4.0, gt=0, description="Critical loss (sigma)")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_order(self) -> Self:
        if not self.significant <= self.major <= self.critical:
            raise ValueError("thresholds must satisfy significant <= major <= critical")
        return self


class EngineSettings(BaseModel):
    """Tunable knobs of the results pipeline."""

    highlight_seconds: float = Field(
        HIGHLIGHT_DURATION_SECONDS,
        gt=0,
        le=3600,
        description="How long changed rows stay highlighted",
    )
    thresholds: DeviationThresholds = Field(default_factory=DeviationThresholds)
    hidden_split_statuses: FrozenSet[str] = Field(
        IN_PROGRESS_STATUSES,
        description="Statuses left out of split tables and charts",
    )

    model_config = ConfigDict(frozen=True)


DEFAULT_SETTINGS = EngineSettings()

__all__ = [
    "RANKED_STATUS",
    "HIGHLIGHT_DURATION_SECONDS",
    "IN_PROGRESS_STATUSES",
    "DeviationThresholds",
    "EngineSettings",
    "DEFAULT_SETTINGS",
]
