from .changes import ChangeReconciler
from .config import (
    DEFAULT_SETTINGS,
    HIGHLIGHT_DURATION_SECONDS,
    RANKED_STATUS,
    DeviationThresholds,
    EngineSettings,
)
from .deviation import (
    LossStats,
    annotate_deviations,
    classify_legs,
    classify_loss,
    compute_loss_stats,
    describe_loss,
    loss_stats_by_competitor,
)
from .engine import LiveResultsSession, ResultsView, ViewScope, compute_results
from .formatting import format_loss, format_seconds_to_time
from .grouping import (
    ClassBlock,
    ClassResult,
    GroupedResult,
    group_by_class,
    group_by_organisation,
)
from .ranking import (
    RankedCompetitor,
    RankingResult,
    competition_ranks,
    compute_ranking,
)
from .sorting import DEFAULT_SORT, SortConfig, sort_competitors, sort_label, toggle_sort
from .splits import (
    ChartPoint,
    LegFigures,
    SplitAnalysis,
    analyze_splits,
    leg_time,
    split_chart_series,
    visible_split_competitors,
)
from .status import StatusInfo, classify_status, status_display, status_priority
from .types import CompetitorPayload, SplitPayload
from .validation import (
    CompetitorRecord,
    DuplicateCompetitorError,
    SnapshotValidationError,
    SplitRecord,
    parse_snapshot,
)

__all__ = [
    "ChangeReconciler",
    "DEFAULT_SETTINGS",
    "HIGHLIGHT_DURATION_SECONDS",
    "RANKED_STATUS",
    "DeviationThresholds",
    "EngineSettings",
    "LossStats",
    "annotate_deviations",
    "classify_legs",
    "classify_loss",
    "compute_loss_stats",
    "describe_loss",
    "loss_stats_by_competitor",
    "LiveResultsSession",
    "ResultsView",
    "ViewScope",
    "compute_results",
    "format_loss",
    "format_seconds_to_time",
    "ClassBlock",
    "ClassResult",
    "GroupedResult",
    "group_by_class",
    "group_by_organisation",
    "RankedCompetitor",
    "RankingResult",
    "competition_ranks",
    "compute_ranking",
    "DEFAULT_SORT",
    "SortConfig",
    "sort_competitors",
    "sort_label",
    "toggle_sort",
    "ChartPoint",
    "LegFigures",
    "SplitAnalysis",
    "analyze_splits",
    "leg_time",
    "split_chart_series",
    "visible_split_competitors",
    "StatusInfo",
    "classify_status",
    "status_display",
    "status_priority",
    "CompetitorPayload",
    "SplitPayload",
    "CompetitorRecord",
    "DuplicateCompetitorError",
    "SnapshotValidationError",
    "SplitRecord",
    "parse_snapshot",
]
