"""Tests for calendar-day parsing, type aliases and callout grouping."""

from __future__ import annotations

import copy
import time
from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from tierwatch.core.exceptions import InvalidDateError
from tierwatch.engine.normalizer import (
    billable_callouts,
    canonical_type,
    group_consecutive_callouts,
    normalize_violations,
    parse_calendar_date,
)
from tierwatch.models.violation import Violation, ViolationType


@pytest.fixture(params=["UTC", "America/Los_Angeles", "Pacific/Kiritimati", "Asia/Kolkata"])
def local_timezone(request, monkeypatch):
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is unavailable on this platform")
    monkeypatch.setenv("TZ", request.param)
    time.tzset()
    yield request.param
    monkeypatch.undo()
    time.tzset()


class TestParseCalendarDate:
    def test_date_only_and_utc_midnight_agree(self, local_timezone):
        assert parse_calendar_date("2023-12-07") == date(2023, 12, 7)
        assert parse_calendar_date("2023-12-07T00:00:00.000Z") == date(2023, 12, 7)

    def test_offset_suffix_does_not_move_the_day(self):
        assert parse_calendar_date("2023-12-07T23:30:00-08:00") == date(2023, 12, 7)
        assert parse_calendar_date("2023-12-07T00:15:00+14:00") == date(2023, 12, 7)

    def test_datetime_keeps_its_wall_clock_date(self):
        value = datetime(2023, 12, 7, 23, 59, tzinfo=timezone.utc)
        assert parse_calendar_date(value) == date(2023, 12, 7)

    def test_date_passes_through(self):
        assert parse_calendar_date(date(2024, 2, 29)) == date(2024, 2, 29)

    @pytest.mark.parametrize("value", ["12/07/2023", "12-07-2023", "2023/12/07", " 2023-12-07 "])
    def test_fallback_formats(self, value):
        assert parse_calendar_date(value) == date(2023, 12, 7)

    @pytest.mark.parametrize("value", ["not a date", "", "   ", "2023-02-30", None, 20231207])
    def test_unparseable_raises(self, value):
        with pytest.raises(InvalidDateError) as excinfo:
            parse_calendar_date(value)
        assert excinfo.value.value == value


@pytest.mark.parametrize(
    "tag, expected",
    [
        ("Call Out", ViolationType.CALLOUT),
        ("Callout", ViolationType.CALLOUT),
        ("  call   out ", ViolationType.CALLOUT),
        ("NCNS", ViolationType.NO_SHOW),
        ("No Show", ViolationType.NO_SHOW),
        ("Tardy (1-5 min)", ViolationType.TARDY_1_5),
        ("tardy (30+ min)", ViolationType.TARDY_30_PLUS),
        ("Shift Pick-Up", ViolationType.SHIFT_PICKUP),
        ("Overtime Refusal", ViolationType.UNKNOWN),
        (None, ViolationType.UNKNOWN),
        (ViolationType.EARLY_ARRIVAL, ViolationType.EARLY_ARRIVAL),
    ],
)
def test_canonical_type(tag, expected):
    assert canonical_type(tag) is expected


class TestGroupConsecutiveCallouts:
    def test_run_keeps_only_first_day_billable(self, make_violation):
        start = date(2024, 3, 4)
        run = [make_violation(start + timedelta(days=i), index=i) for i in range(3)]
        grouped = group_consecutive_callouts(run)
        assert [v.consecutive for v in grouped] == [False, True, True]

    def test_two_day_gap_is_not_consecutive(self, make_violation):
        grouped = group_consecutive_callouts(
            [make_violation(date(2024, 3, 4)), make_violation(date(2024, 3, 6), index=1)]
        )
        assert [v.consecutive for v in grouped] == [False, False]

    def test_exempt_callout_neither_anchors_nor_is_flagged(self, make_violation):
        grouped = group_consecutive_callouts(
            [
                make_violation(date(2024, 3, 4), index=0),
                make_violation(date(2024, 3, 5), index=1, exempt=True, exempt_reason="Shift Covered"),
                make_violation(date(2024, 3, 6), index=2),
            ]
        )
        assert [v.consecutive for v in grouped] == [False, False, False]

    def test_other_types_pass_through_in_order(self, make_violation):
        grouped = group_consecutive_callouts(
            [
                make_violation(date(2024, 3, 5), index=2),
                make_violation(date(2024, 3, 5), ViolationType.TARDY_1_5, index=1),
                make_violation(date(2024, 3, 4), index=0),
            ]
        )
        assert [v.source_index for v in grouped] == [0, 1, 2]
        assert [v.consecutive for v in grouped] == [False, False, True]

    def test_billable_callouts(self, make_violation):
        days = [date(2024, 3, 1), date(2024, 3, 2), date(2024, 3, 3), date(2024, 3, 5)]
        callouts = [make_violation(d, index=i) for i, d in enumerate(days)]
        assert [v.day for v in billable_callouts(callouts)] == [date(2024, 3, 1), date(2024, 3, 5)]


class TestNormalizeViolations:
    def test_does_not_mutate_input(self):
        raw = [
            {"date": "2024-03-05", "type": "Call Out"},
            {"date": "2024-03-04", "type": "Callout"},
        ]
        snapshot = copy.deepcopy(raw)
        normalized, skipped = normalize_violations(raw)
        assert raw == snapshot
        assert skipped == []
        assert [v.day for v in normalized] == [date(2024, 3, 4), date(2024, 3, 5)]
        assert normalized[1].consecutive is True

    def test_same_day_entries_keep_input_order(self):
        normalized, _ = normalize_violations(
            [
                {"date": "2024-03-04", "type": "Tardy (1-5 min)"},
                {"date": "2024-03-04T17:00:00Z", "type": "Early Arrival"},
            ]
        )
        assert [v.source_index for v in normalized] == [0, 1]

    def test_unparseable_date_is_skipped_with_signal(self, caplog):
        normalized, skipped = normalize_violations(
            [
                {"date": "yesterday", "type": "Call Out", "employeeId": "E7"},
                {"date": "2024-03-04", "type": "Call Out"},
            ]
        )
        assert len(normalized) == 1
        assert len(skipped) == 1
        assert skipped[0].source_index == 0
        assert skipped[0].raw_date == "yesterday"
        assert skipped[0].employee_id == "E7"
        assert "Skipping violation #0" in caplog.text

    def test_malformed_entry_is_skipped(self):
        normalized, skipped = normalize_violations([{"date": "2024-03-04"}])
        assert normalized == []
        assert skipped[0].raw_date == "2024-03-04"

    @pytest.mark.parametrize("value", [20240105, 1704412800.0])
    def test_numeric_date_is_skipped_not_read_as_timestamp(self, value):
        normalized, skipped = normalize_violations(
            [{"date": value, "type": "No Call No Show"}, {"date": "2024-03-04", "type": "Call Out"}]
        )
        assert [v.day for v in normalized] == [date(2024, 3, 4)]
        assert [s.source_index for s in skipped] == [0]
        assert skipped[0].raw_date == str(value)
        assert "got" in skipped[0].reason

    def test_numeric_date_rejected_by_model(self):
        with pytest.raises(ValidationError):
            Violation(date=20240105, type="Call Out")

    def test_strict_mode_raises(self):
        with pytest.raises(InvalidDateError):
            normalize_violations([{"date": "yesterday", "type": "Call Out"}], strict=True)

    def test_reset_effective_date_truncates_history(self):
        normalized, _ = normalize_violations(
            [
                {"date": "2024-01-15", "type": "Call Out"},
                {"date": "2024-02-01", "type": "Call Out"},
            ],
            reset_effective_date=date(2024, 2, 1),
        )
        assert [v.day for v in normalized] == [date(2024, 2, 1)]
        assert normalized[0].source_index == 1

    def test_exemptions(self):
        normalized, _ = normalize_violations(
            [
                {"date": "2024-03-04", "type": "Call Out", "shiftCovered": True},
                {
                    "date": "2024-03-10",
                    "type": "Call Out",
                    "protectedAbsence": True,
                    "protectedAbsenceReason": "FMLA",
                },
                Violation(date="2024-03-20", type="Call Out", protected_absence=True),
            ]
        )
        assert [(v.exempt, v.exempt_reason) for v in normalized] == [
            (True, "Shift Covered"),
            (True, "Protected Abs: FMLA"),
            (True, "Protected Abs"),
        ]

    def test_alternate_type_keys(self):
        normalized, _ = normalize_violations(
            [{"date": "2024-03-04", "violationType": "NCNS"}]
        )
        assert normalized[0].kind is ViolationType.NO_SHOW
        assert normalized[0].raw_type == "NCNS"
