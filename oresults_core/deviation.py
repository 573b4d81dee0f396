"""Per-competitor loss statistics and leg anomaly classification.

A leg is flagged relative to the competitor's own pattern: the mean and the
population standard deviation of their strictly positive leg losses.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Iterable

from .config import DeviationThresholds
from .formatting import format_seconds_to_time
from .splits import SplitAnalysis
from .types import Severity

DEFAULT_THRESHOLDS = DeviationThresholds()


@dataclass(frozen=True)
class LossStats:
    average_loss: float
    standard_deviation: float
    losses: tuple[float, ...]


EMPTY_STATS = LossStats(average_loss=0.0, standard_deviation=0.0, losses=())


def compute_loss_stats(losses: Iterable[float | None]) -> LossStats:
    positive = tuple(loss for loss in losses if loss is not None and loss > 0)
    if not positive:
        return EMPTY_STATS
    average = sum(positive) / len(positive)
    variance = sum((loss - average) ** 2 for loss in positive) / len(positive)
    return LossStats(
        average_loss=average,
        standard_deviation=math.sqrt(variance),
        losses=positive,
    )


def loss_stats_by_competitor(analysis: SplitAnalysis) -> dict[str, LossStats]:
    """Stats over the control legs of every competitor (finish leg excluded)."""
    return {
        competitor_id: compute_loss_stats(analysis.leg_losses(competitor_id))
        for competitor_id in analysis.competitor_ids
    }


def deviation_sigma(loss: float, stats: LossStats) -> float | None:
    if stats.standard_deviation == 0:
        return None
    return (loss - stats.average_loss) / stats.standard_deviation


def classify_loss(
    loss: float | None,
    stats: LossStats,
    thresholds: DeviationThresholds = DEFAULT_THRESHOLDS,
) -> Severity:
    if loss is None:
        return "none"
    deviation = deviation_sigma(loss, stats)
    if deviation is None:
        return "none"
    if deviation >= thresholds.critical:
        return "critical"
    if deviation >= thresholds.major:
        return "major"
    if deviation >= thresholds.significant:
        return "significant"
    return "none"


def classify_legs(
    analysis: SplitAnalysis,
    stats: dict[str, LossStats],
    thresholds: DeviationThresholds = DEFAULT_THRESHOLDS,
) -> dict[tuple[str, int], Severity]:
    """Severity of every control leg, keyed like SplitAnalysis.figures."""
    severities: dict[tuple[str, int], Severity] = {}
    for (competitor_id, index), figures in analysis.figures.items():
        if index == analysis.final_index:
            continue
        severities[(competitor_id, index)] = classify_loss(
            figures.leg_loss, stats.get(competitor_id, EMPTY_STATS), thresholds
        )
    return severities


def annotate_deviations(
    analysis: SplitAnalysis,
    severities: dict[tuple[str, int], Severity],
) -> SplitAnalysis:
    """Copy of the analysis whose LegFigures carry their classified severity."""
    figures = {
        key: replace(figures, deviation=severities.get(key, "none"))
        for key, figures in analysis.figures.items()
    }
    return replace(analysis, figures=figures)


_SEVERITY_TEXT = {
    "significant": "Significantly above average",
    "major": "Major deviation",
    "critical": "Critical deviation",
    "none": "Time loss",
}


def describe_loss(
    loss: float,
    stats: LossStats,
    severity: Severity,
    best_time: float | None = None,
    leg: float | None = None,
) -> str:
    """Tooltip text for a leg loss cell."""
    loss_to_best = ""
    if best_time is not None and leg is not None:
        loss_to_best = f"Loss to best: +{format_seconds_to_time(leg - best_time)}"

    deviation = deviation_sigma(loss, stats)
    if deviation is None:
        return loss_to_best or f"Time loss: +{format_seconds_to_time(loss)}"

    message = f"{_SEVERITY_TEXT[severity]}: +{format_seconds_to_time(loss)} ({deviation:.1f}σ)"
    return f"{message}\n{loss_to_best}" if loss_to_best else message


__all__ = [
    "LossStats",
    "EMPTY_STATS",
    "DEFAULT_THRESHOLDS",
    "compute_loss_stats",
    "loss_stats_by_competitor",
    "deviation_sigma",
    "classify_loss",
    "classify_legs",
    "annotate_deviations",
    "describe_loss",
]
