"""
Snapshot input models using Pydantic v2
Coerces live-feed competitor rows into immutable records
"""

import logging
import math
import re
from collections import Counter
from datetime import datetime
from typing import Any, Iterable, Optional, Tuple

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .types import CompetitorPayload

logger = logging.getLogger(__name__)


class SnapshotValidationError(ValueError):
    """A snapshot row could not be turned into a competitor record."""


class DuplicateCompetitorError(ValueError):
    """Two records of the same snapshot share an id."""

    def __init__(self, duplicate_ids: Iterable[str]):
        self.duplicate_ids = tuple(sorted(duplicate_ids))
        super().__init__(
            f"snapshot contains duplicate competitor ids: {', '.join(self.duplicate_ids)}"
        )


# ==================== COERCION HELPERS ====================


def coerce_optional_seconds(value: Any) -> float | None:
    """Return a finite, non-negative number of seconds or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            parsed = float(stripped)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(parsed) or parsed < 0:
        return None
    return parsed


def coerce_optional_timestamp(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            return datetime.fromisoformat(stripped)
        except ValueError:
            logger.debug(f"Ignoring unparseable timestamp: {stripped!r}")
            return None
    return None


def _coerce_identifier(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return value


class InputSanitizer:
    """Utility class for input sanitization"""

    @staticmethod
    def sanitize_string(value: Any, max_length: int = 255) -> str:
        """Sanitize string input"""
        if not isinstance(value, str):
            value = str(value)

        value = value.strip()[:max_length]
        return value.replace("\0", "")

    @staticmethod
    def sanitize_name(value: Any) -> str | None:
        """Sanitize a person or club name, keeping diacritics; blank becomes None"""
        if value is None:
            return None
        name = InputSanitizer.sanitize_string(value, 255)
        name = re.sub(r"[\x00-\x1f\x7f]", "", name)
        return name.strip() or None


# ==================== MODELS ====================


class SplitRecord(BaseModel):
    """One control of a competitor's split list (cumulative time from start)."""

    control_code: str = Field(
        "", validation_alias=AliasChoices("controlCode", "control_code")
    )
    cumulative_time: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("cumulativeTime", "time", "cumulative_time"),
        description="Seconds from start, None when the punch is missing",
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    @field_validator("control_code", mode="before")
    @classmethod
    def validate_control_code(cls, v: Any) -> str:
        if v is None:
            return ""
        return InputSanitizer.sanitize_string(v, 50)

    @field_validator("cumulative_time", mode="before")
    @classmethod
    def validate_cumulative_time(cls, v: Any) -> Optional[float]:
        return coerce_optional_seconds(v)


_EMPTY_SPLIT = {"controlCode": "", "time": None}


class CompetitorRecord(BaseModel):
    """A single competitor of a snapshot, as consumed by the ranking engine."""

    id: str = Field(..., min_length=1, max_length=64, description="Stable competitor id")
    name: Optional[str] = Field(None, max_length=255)
    firstname: Optional[str] = Field(None, max_length=255)
    lastname: Optional[str] = Field(None, max_length=255)
    organisation: Optional[str] = Field(None, max_length=255)
    status: Optional[str] = Field(None, max_length=50)
    start_time: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("startTime", "start_time")
    )
    finish_time: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("finishTime", "finish_time")
    )
    time: Optional[float] = Field(None, description="Elapsed seconds (terminal statuses)")
    splits: Tuple[SplitRecord, ...] = ()
    class_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("classId", "class_id")
    )
    class_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("className", "class_name")
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def flatten_payload(cls, data: Any) -> Any:
        """Lift the nested ``class`` object and compose ``name`` when absent"""
        if not isinstance(data, dict):
            return data
        data = dict(data)

        nested = data.get("class")
        if isinstance(nested, dict):
            if data.get("classId") is None and data.get("class_id") is None:
                data["classId"] = nested.get("id")
            if data.get("className") is None and data.get("class_name") is None:
                data["className"] = nested.get("name")

        if not data.get("name"):
            parts = [
                str(data[key]).strip()
                for key in ("firstname", "lastname")
                if data.get(key) not in (None, "")
            ]
            if parts:
                data["name"] = " ".join(parts)
        return data

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v: Any) -> Any:
        return _coerce_identifier(v)

    @field_validator("class_id", mode="before")
    @classmethod
    def validate_optional_identifier(cls, v: Any) -> Any:
        v = _coerce_identifier(v)
        if v == "":
            return None
        return v

    @field_validator("name", "firstname", "lastname", "organisation", "class_name", mode="before")
    @classmethod
    def validate_names(cls, v: Any) -> Optional[str]:
        return InputSanitizer.sanitize_name(v)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        v = InputSanitizer.sanitize_string(v, 50)
        return v or None

    @field_validator("start_time", "finish_time", mode="before")
    @classmethod
    def validate_timestamps(cls, v: Any) -> Optional[datetime]:
        return coerce_optional_timestamp(v)

    @field_validator("time", mode="before")
    @classmethod
    def validate_time(cls, v: Any) -> Optional[float]:
        return coerce_optional_seconds(v)

    @field_validator("splits", mode="before")
    @classmethod
    def validate_splits(cls, v: Any) -> Any:
        """Keep positional alignment: unusable entries become empty splits"""
        if v is None:
            return ()
        if not isinstance(v, (list, tuple)):
            return ()
        return tuple(
            item if isinstance(item, (dict, SplitRecord)) else _EMPTY_SPLIT
            for item in v
        )

    def cumulative_time_at(self, index: int) -> float | None:
        """Cumulative time at a control index, None when out of range or missing"""
        if index < 0 or index >= len(self.splits):
            return None
        return self.splits[index].cumulative_time


# ==================== SNAPSHOT PARSING ====================


def ensure_unique_ids(records: Iterable[CompetitorRecord]) -> None:
    """Raise DuplicateCompetitorError if any id occurs twice"""
    counts = Counter(record.id for record in records)
    duplicates = [competitor_id for competitor_id, n in counts.items() if n > 1]
    if duplicates:
        raise DuplicateCompetitorError(duplicates)


def parse_competitor(row: Any) -> CompetitorRecord:
    if isinstance(row, CompetitorRecord):
        return row
    return CompetitorRecord.model_validate(row)


def parse_snapshot(
    rows: Iterable[CompetitorPayload | CompetitorRecord] | None,
) -> Tuple[CompetitorRecord, ...]:
    """
    Validate a full snapshot

    Returns:
        Tuple of CompetitorRecord in delivery order

    Raises:
        SnapshotValidationError: If a row has no usable id
        DuplicateCompetitorError: If two rows share an id
    """
    records: list[CompetitorRecord] = []
    for index, row in enumerate(rows or ()):
        try:
            records.append(parse_competitor(row))
        except ValidationError as e:
            logger.warning(f"Snapshot row {index} rejected: {e}")
            raise SnapshotValidationError(f"Invalid competitor at index {index}: {e}") from e
    ensure_unique_ids(records)
    return tuple(records)


# ==================== EXPORT ====================

__all__ = [
    "CompetitorRecord",
    "SplitRecord",
    "InputSanitizer",
    "SnapshotValidationError",
    "DuplicateCompetitorError",
    "coerce_optional_seconds",
    "coerce_optional_timestamp",
    "ensure_unique_ids",
    "parse_competitor",
    "parse_snapshot",
]
