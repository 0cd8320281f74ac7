"""Tests for core data models."""

from datetime import date, datetime, time, timezone

import pytest
from pydantic import ValidationError

from shift_recon.models import (
    DetectorConfig,
    DraftInput,
    PunctualityThresholds,
    ReportingConfig,
    Schedule,
    ScheduleStatus,
    TimeSpan,
    Timesheet,
    ValidationResult,
)


def _complete_input(**overrides) -> DraftInput:
    fields = dict(
        worker_id="w1",
        agency_id="a1",
        date=date(2024, 3, 4),
        start=time(9, 0),
        end=time(17, 0),
    )
    fields.update(overrides)
    return DraftInput(**fields)


class TestTimeSpan:
    def test_malformed_span_is_representable(self):
        span = TimeSpan(date=date(2024, 3, 4), start=time(17, 0), end=time(9, 0))
        assert span.start == time(17, 0)
        assert span.end == time(9, 0)

    def test_span_is_immutable(self):
        span = TimeSpan(date=date(2024, 3, 4), start=time(9, 0), end=time(17, 0))
        with pytest.raises(ValidationError):
            span.start = time(10, 0)

    def test_single_break_bound_is_no_break(self):
        span = TimeSpan(
            date=date(2024, 3, 4),
            start=time(9, 0),
            end=time(17, 0),
            break_start=time(12, 0),
        )
        assert span.has_break is False

    def test_parses_time_strings(self):
        span = TimeSpan.model_validate({
            "date": "2024-03-04",
            "start": "09:00",
            "end": "17:30",
        })
        assert span.end == time(17, 30)

    def test_seconds_are_rejected(self):
        with pytest.raises(ValidationError):
            TimeSpan(date=date(2024, 3, 4), start=time(9, 0), end=time(9, 0, 30))

    def test_draft_input_seconds_are_rejected(self):
        with pytest.raises(ValidationError):
            DraftInput(worker_id="w1", start=time(9, 0, 30))


class TestSchedule:
    def test_default_status_is_active(self):
        now = datetime(2024, 3, 1, 8, 0)
        schedule = Schedule(
            id="s1",
            worker_id="w1",
            agency_id="a1",
            span=TimeSpan(date=date(2024, 3, 4), start=time(9, 0), end=time(17, 0)),
            created_by="admin",
            created_at=now,
            updated_at=now,
        )
        assert schedule.status == ScheduleStatus.ACTIVE
        assert schedule.is_active is True

    def test_cancelled_is_not_active(self):
        now = datetime(2024, 3, 1, 8, 0)
        schedule = Schedule(
            id="s1",
            worker_id="w1",
            agency_id="a1",
            span=TimeSpan(date=date(2024, 3, 4), start=time(9, 0), end=time(17, 0)),
            status="cancelled",
            created_by="admin",
            created_at=now,
            updated_at=now,
        )
        assert schedule.is_active is False


class TestDraftInput:
    def test_incomplete_without_end(self):
        assert DraftInput(worker_id="w1", agency_id="a1", date=date(2024, 3, 4),
                          start=time(9, 0)).is_complete() is False

    def test_empty_worker_is_incomplete(self):
        assert _complete_input(worker_id="").is_complete() is False

    def test_complete(self):
        assert _complete_input().is_complete() is True

    def test_to_draft(self):
        draft = _complete_input(break_start=time(12, 0), break_end=time(13, 0)).to_draft()
        assert draft.worker_id == "w1"
        assert draft.span.has_break is True

    def test_to_draft_rejects_incomplete(self):
        with pytest.raises(ValueError):
            DraftInput(worker_id="w1").to_draft()

    def test_fingerprint_is_deterministic(self):
        assert _complete_input().fingerprint() == _complete_input().fingerprint()

    def test_fingerprint_ignores_notes(self):
        assert (
            _complete_input(notes="first").fingerprint()
            == _complete_input(notes="second").fingerprint()
        )

    def test_fingerprint_changes_with_validated_fields(self):
        base = _complete_input().fingerprint()
        assert _complete_input(end=time(17, 30)).fingerprint() != base
        assert _complete_input(exclude_id="s9").fingerprint() != base


class TestConfiguration:
    def test_thresholds_are_required(self):
        with pytest.raises(ValidationError):
            PunctualityThresholds()

    def test_absent_must_not_precede_late(self):
        with pytest.raises(ValidationError):
            PunctualityThresholds(late_grace_minutes=30, absent_after_minutes=10)

    def test_early_grace_defaults_to_late_grace(self):
        thresholds = PunctualityThresholds(late_grace_minutes=10, absent_after_minutes=60)
        assert thresholds.early_grace == 10
        explicit = PunctualityThresholds(
            late_grace_minutes=10, absent_after_minutes=60, early_leave_grace_minutes=5
        )
        assert explicit.early_grace == 5

    def test_reporting_config_rejects_bad_cron(self):
        with pytest.raises(ValidationError):
            ReportingConfig(period_schedule="every monday")

    def test_weekly_limit_must_not_precede_warning(self):
        with pytest.raises(ValidationError):
            DetectorConfig(weekly_warning_minutes=50 * 60, weekly_limit_minutes=40 * 60)

    def test_neutral_result(self):
        result = ValidationResult.neutral()
        assert result.is_valid is True
        assert result.conflicts == []


class TestTimesheet:
    def test_break_minutes(self):
        timesheet = Timesheet(
            id="t1",
            worker_id="w1",
            agency_id="a1",
            date=date(2024, 3, 4),
            break_start=datetime(2024, 3, 4, 12, 0),
            break_end=datetime(2024, 3, 4, 12, 45),
        )
        assert timesheet.break_minutes == 45

    def test_no_break(self):
        timesheet = Timesheet(id="t1", worker_id="w1", agency_id="a1", date=date(2024, 3, 4))
        assert timesheet.break_minutes == 0

    def test_clock_values_with_utc_offset_are_rejected(self):
        with pytest.raises(ValidationError):
            Timesheet(
                id="t1",
                worker_id="w1",
                agency_id="a1",
                date=date(2024, 3, 4),
                clock_in=datetime(2024, 3, 4, 9, 20, tzinfo=timezone.utc),
            )
