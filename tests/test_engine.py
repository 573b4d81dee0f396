from __future__ import annotations

from datetime import datetime

import pytest
from pydantic import ValidationError

from oresults_core import (
    CompetitorRecord,
    DeviationThresholds,
    DuplicateCompetitorError,
    EngineSettings,
    LiveResultsSession,
    SnapshotValidationError,
    SortConfig,
    ViewScope,
    compute_results,
    format_loss,
    format_seconds_to_time,
    parse_snapshot,
)


def _snapshot(b_time=110):
    return [
        {
            "id": 1,
            "firstname": "Jana",
            "lastname": "Nováková",
            "organisation": "OK Praha",
            "status": "OK",
            "time": 100,
            "startTime": "2026-05-01T10:00:00",
            "splits": [{"controlCode": 31, "time": 30}, {"controlCode": 32, "time": 70}],
            "class": {"id": 7, "name": "D21"},
        },
        {
            "id": 2,
            "firstname": "Petra",
            "lastname": "Malá",
            "organisation": "SK Brno",
            "status": "OK",
            "time": b_time,
            "splits": [{"controlCode": 31, "time": 25}, {"controlCode": 32, "time": 80}],
            "class": {"id": 7, "name": "D21"},
        },
        {
            "id": 3,
            "firstname": "Eva",
            "lastname": "Horká",
            "organisation": "OK Praha",
            "status": "Active",
            "startTime": "2026-05-01T10:30:00",
            "splits": [{"controlCode": 31, "time": 40}],
            "class": {"id": 7, "name": "D21"},
        },
    ]


class _Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_compute_results_builds_every_view():
    view = compute_results(_snapshot())
    assert [c.id for c in view.competitors] == ["1", "2", "3"]
    assert [c.position for c in view.competitors] == [1, 2, None]
    assert view.leader_time == 100
    assert view.by_id()["2"].loss == 10

    assert view.splits.control_codes == ("31", "32")
    assert view.splits.leg("2", 0).leg_position == 1
    assert view.splits.final_leg("1").leg_time == 30
    assert view.severity("1", 0) == "none"

    assert [c.id for c in view.split_competitors] == ["1", "2"]
    assert [p.leg_index for p in view.chart] == [1, 2]
    assert [c.class_name for c in view.classes] == ["D21"]
    assert [g.organisation for g in view.organisations] == ["OK Praha", "SK Brno"]


def test_compute_results_is_idempotent():
    rows = _snapshot()
    assert compute_results(rows) == compute_results(rows)


def test_view_sorting_uses_split_analysis():
    view = compute_results(_snapshot())
    by_leg = view.sorted(SortConfig("leg-0", "desc"), split_view=True)
    assert [c.id for c in by_leg] == ["1", "2"]


def test_session_highlights_changed_competitors_until_expiry():
    clock = _Clock()
    session = LiveResultsSession(ViewScope("class", "7"), clock=clock)
    session.update(_snapshot())
    assert session.changed_ids == frozenset()

    session.update(_snapshot(b_time=95))
    assert "2" in session.changed_ids
    # Losing the lead changes competitor 1's computed record too.
    assert "1" in session.changed_ids
    assert "3" not in session.changed_ids

    clock.now = 10.0
    assert session.changed_ids == frozenset()


def test_session_scope_change_resets_highlights():
    clock = _Clock()
    session = LiveResultsSession(ViewScope("class", "7"), clock=clock)
    session.update(_snapshot())
    session.update(_snapshot(b_time=95))
    session.set_scope(ViewScope("club", "OK Praha"))
    assert session.changed_ids == frozenset()
    assert session.view is None
    session.update(_snapshot(b_time=120))
    assert session.changed_ids == frozenset()


def test_session_sort_state_and_close():
    clock = _Clock()
    with LiveResultsSession(clock=clock) as session:
        assert session.sorted_competitors() == ()
        session.update(_snapshot())
        session.toggle_sort("position")
        assert [c.id for c in session.sorted_competitors()] == ["2", "1", "3"]
        session.reset_sort()
        assert [c.id for c in session.sorted_competitors()] == ["1", "2", "3"]
    assert session.closed
    assert session.view is None


def test_parse_snapshot_coerces_feed_payload():
    (record,) = parse_snapshot(
        [
            {
                "id": 42,
                "firstname": " Jan ",
                "lastname": "Novák",
                "status": "",
                "time": "abc",
                "startTime": "not a date",
                "finishTime": "2026-05-01T11:02:03",
                "splits": [{"controlCode": 31, "time": 30}, None, {"controlCode": "33", "time": -5}],
                "classId": 9,
                "className": "H21",
                "bibNumber": 17,
            }
        ]
    )
    assert record.id == "42"
    assert record.name == "Jan Novák"
    assert record.status is None
    assert record.time is None
    assert record.start_time is None
    assert record.finish_time == datetime(2026, 5, 1, 11, 2, 3)
    assert [s.control_code for s in record.splits] == ["31", "", "33"]
    assert [s.cumulative_time for s in record.splits] == [30, None, None]
    assert record.class_id == "9"
    assert record.class_name == "H21"
    assert "bibNumber" not in record.model_dump()
    assert "bib_number" not in record.model_dump()


def test_parse_snapshot_accepts_records_and_snake_case():
    record = CompetitorRecord(id="A", class_name="H21")
    rows = parse_snapshot([record, {"id": "B", "start_time": "2026-05-01T10:00:00"}])
    assert rows[0] is record
    assert rows[1].start_time == datetime(2026, 5, 1, 10, 0)


def test_parse_snapshot_rejects_rows_without_id():
    with pytest.raises(SnapshotValidationError):
        parse_snapshot([{"name": "No id"}])


def test_parse_snapshot_rejects_duplicate_ids():
    with pytest.raises(DuplicateCompetitorError):
        parse_snapshot([{"id": 1}, {"id": "1"}])


def test_settings_are_validated():
    with pytest.raises(ValidationError):
        EngineSettings(highlight_seconds=0)
    with pytest.raises(ValidationError):
        DeviationThresholds(significant=3, major=2)
    assert EngineSettings().thresholds.critical == 4.0


def test_custom_thresholds_flow_into_severities():
    rows = [
        {"id": "R", "status": "OK", "time": 200,
         "splits": [{"controlCode": c, "time": t} for c, t in zip("abc", (60, 120, 180))]},
        {"id": "S", "status": "OK", "time": 260,
         "splits": [{"controlCode": c, "time": t} for c, t in zip("abc", (70, 140, 240))]},
    ]
    # S loses 10, 10 and 40 seconds: mean 20, deviation 14.14, last leg at 1.41 sigma.
    strict = EngineSettings(thresholds=DeviationThresholds(significant=1.4, major=2.0, critical=3.0))
    assert compute_results(rows).severity("S", 2) == "none"
    assert compute_results(rows, strict).severity("S", 2) == "significant"
    assert compute_results(rows, strict).splits.leg("S", 2).deviation == "significant"


def test_time_formatting():
    assert format_seconds_to_time(75) == "1:15"
    assert format_seconds_to_time(3725) == "62:05"
    assert format_seconds_to_time(11000) == "03:03:20"
    assert format_seconds_to_time(None) == ""
    assert format_seconds_to_time(-1) == ""
    assert format_loss(0) == ""
    assert format_loss(50) == "+0:50"
