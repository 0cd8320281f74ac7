"""Tests for the Conflict Detector."""

from datetime import date, datetime, time, timedelta

from shift_recon.conflicts.detector import ConflictDetector, is_valid
from shift_recon.models.config import DetectorConfig
from shift_recon.models.conflict import AdvisoryKind, ConflictKind, ScanFindingKind, Severity
from shift_recon.models.interval import TimeSpan
from shift_recon.models.schedule import Schedule, ScheduleDraft, ScheduleStatus

MONDAY = date(2024, 3, 4)
SATURDAY = date(2024, 3, 9)


def _span(start, end, break_start=None, break_end=None, day=MONDAY) -> TimeSpan:
    return TimeSpan(
        date=day,
        start=time.fromisoformat(start),
        end=time.fromisoformat(end),
        break_start=time.fromisoformat(break_start) if break_start else None,
        break_end=time.fromisoformat(break_end) if break_end else None,
    )


def _schedule(
    schedule_id: str,
    span: TimeSpan,
    worker_id: str = "w1",
    status: ScheduleStatus = ScheduleStatus.ACTIVE,
) -> Schedule:
    stamp = datetime(2024, 3, 1, 8, 0)
    return Schedule(
        id=schedule_id,
        worker_id=worker_id,
        agency_id="a1",
        span=span,
        status=status,
        created_by="admin",
        created_at=stamp,
        updated_at=stamp,
    )


def _draft(span: TimeSpan, worker_id: str = "w1") -> ScheduleDraft:
    return ScheduleDraft(worker_id=worker_id, agency_id="a1", span=span)


class TestConflictDetection:
    def setup_method(self):
        self.detector = ConflictDetector()

    def test_no_conflict_when_disjoint(self):
        existing = [_schedule("s1", _span("06:00", "08:00"))]
        assert self.detector.detect(_draft(_span("09:00", "17:00")), existing) == []

    def test_back_to_back_shifts_do_not_conflict(self):
        existing = [
            _schedule("s1", _span("06:00", "09:00")),
            _schedule("s2", _span("17:00", "21:00")),
        ]
        assert self.detector.detect(_draft(_span("09:00", "17:00")), existing) == []

    def test_end_before_start_is_single_invalid_time(self):
        existing = [_schedule("s1", _span("09:00", "17:00"))]
        conflicts = self.detector.detect(_draft(_span("17:00", "09:00")), existing)
        assert len(conflicts) == 1
        assert conflicts[0].kind == ConflictKind.INVALID_TIME
        assert conflicts[0].severity == Severity.ERROR

    def test_zero_length_span_is_invalid(self):
        conflicts = self.detector.detect(_draft(_span("09:00", "09:00")), [])
        assert [c.kind for c in conflicts] == [ConflictKind.INVALID_TIME]

    def test_break_outside_hours_is_invalid(self):
        conflicts = self.detector.detect(
            _draft(_span("09:00", "17:00", "16:30", "17:30")), []
        )
        assert [c.kind for c in conflicts] == [ConflictKind.INVALID_TIME]

    def test_identical_slot_is_duplicate(self):
        span = _span("09:00", "17:00", "12:00", "13:00")
        conflicts = self.detector.detect(_draft(span), [_schedule("s1", span)])
        assert len(conflicts) == 1
        assert conflicts[0].kind == ConflictKind.DUPLICATE
        assert conflicts[0].severity == Severity.ERROR
        assert conflicts[0].related_schedule_id == "s1"

    def test_same_hours_different_break_is_overlap(self):
        existing = [_schedule("s1", _span("09:00", "17:00", "12:00", "13:00"))]
        conflicts = self.detector.detect(_draft(_span("09:00", "17:00")), existing)
        assert conflicts[0].kind == ConflictKind.OVERLAP
        assert conflicts[0].severity == Severity.ERROR

    def test_long_overlap_is_error(self):
        existing = [_schedule("s1", _span("09:00", "17:00"))]
        conflicts = self.detector.detect(_draft(_span("16:00", "20:00")), existing)
        assert conflicts[0].kind == ConflictKind.OVERLAP
        assert conflicts[0].severity == Severity.ERROR
        assert conflicts[0].overlap_minutes == 60

    def test_short_overlap_is_warning(self):
        existing = [_schedule("s1", _span("09:00", "17:00"))]
        conflicts = self.detector.detect(_draft(_span("16:45", "20:00")), existing)
        assert conflicts[0].severity == Severity.WARNING
        assert conflicts[0].overlap_minutes == 15

    def test_overlap_just_above_tolerance_is_error(self):
        existing = [_schedule("s1", _span("09:00", "17:00"))]
        conflicts = self.detector.detect(_draft(_span("16:44", "20:00")), existing)
        assert conflicts[0].severity == Severity.ERROR

    def test_overlap_inside_break_is_warning(self):
        existing = [_schedule("s1", _span("09:00", "17:00", "12:00", "13:00"))]
        conflicts = self.detector.detect(_draft(_span("12:00", "13:00")), existing)
        assert conflicts[0].kind == ConflictKind.OVERLAP
        assert conflicts[0].severity == Severity.WARNING

    def test_tolerance_is_configurable(self):
        detector = ConflictDetector(DetectorConfig(overlap_warning_minutes=60))
        existing = [_schedule("s1", _span("09:00", "17:00"))]
        conflicts = detector.detect(_draft(_span("16:00", "20:00")), existing)
        assert conflicts[0].severity == Severity.WARNING

    def test_ignores_other_workers_dates_and_inactive(self):
        span = _span("09:00", "17:00")
        existing = [
            _schedule("s1", span, worker_id="w2"),
            _schedule("s2", _span("09:00", "17:00", day=date(2024, 3, 5))),
            _schedule("s3", span, status=ScheduleStatus.CANCELLED),
            _schedule("s4", span, status=ScheduleStatus.COMPLETED),
        ]
        assert self.detector.detect(_draft(span), existing) == []

    def test_excluded_schedule_is_ignored(self):
        span = _span("09:00", "17:00")
        existing = [_schedule("s1", span)]
        assert self.detector.detect(_draft(span), existing, exclude_id="s1") == []

    def test_all_race_duplicates_are_reported(self):
        span = _span("09:00", "17:00")
        existing = [_schedule("s1", span), _schedule("s2", span)]
        conflicts = self.detector.detect(_draft(span), existing)
        assert [c.related_schedule_id for c in conflicts] == ["s1", "s2"]

    def test_errors_first_then_by_start_time(self):
        existing = [
            _schedule("late_warn", _span("17:50", "19:00")),
            _schedule("mid_error", _span("12:00", "14:00")),
            _schedule("early_warn", _span("07:00", "09:05")),
            _schedule("early_error", _span("08:00", "10:00")),
        ]
        conflicts = self.detector.detect(_draft(_span("09:00", "18:00")), existing)
        assert [c.related_schedule_id for c in conflicts] == [
            "early_error", "mid_error", "early_warn", "late_warn",
        ]
        assert [c.severity for c in conflicts] == [
            Severity.ERROR, Severity.ERROR, Severity.WARNING, Severity.WARNING,
        ]

    def test_detect_is_idempotent(self):
        existing = [
            _schedule("s1", _span("08:00", "10:00")),
            _schedule("s2", _span("17:50", "19:00")),
        ]
        draft = _draft(_span("09:00", "18:00"))
        assert self.detector.detect(draft, existing) == self.detector.detect(draft, existing)

    def test_warnings_do_not_block(self):
        existing = [_schedule("s1", _span("09:00", "17:00"))]
        conflicts = self.detector.detect(_draft(_span("16:50", "20:00")), existing)
        assert conflicts
        assert is_valid(conflicts) is True


class TestAdvisories:
    def setup_method(self):
        self.detector = ConflictDetector()

    def test_regular_weekday_has_no_advisories(self):
        draft = _draft(_span("09:00", "17:00", "12:00", "13:00"))
        assert self.detector.advisories(draft) == []

    def test_long_day_without_break(self):
        kinds = {a.kind for a in self.detector.advisories(_draft(_span("07:00", "19:00")))}
        assert kinds == {AdvisoryKind.LONG_WORKING_DAY, AdvisoryKind.NO_BREAK_LONG_DAY}

    def test_weekend(self):
        draft = _draft(_span("09:00", "12:00", day=SATURDAY))
        kinds = [a.kind for a in self.detector.advisories(draft)]
        assert kinds == [AdvisoryKind.WEEKEND_WORK]

    def test_unusual_hours(self):
        kinds = [a.kind for a in self.detector.advisories(_draft(_span("05:00", "10:00")))]
        assert AdvisoryKind.UNUSUAL_HOURS in kinds

    def test_malformed_span_has_no_advisories(self):
        assert self.detector.advisories(_draft(_span("19:00", "07:00"))) == []


class TestValidate:
    def setup_method(self):
        self.detector = ConflictDetector()

    def test_clean_draft(self):
        result = self.detector.validate(_draft(_span("09:00", "17:00", "12:00", "13:00")), [])
        assert result.is_valid is True
        assert result.conflicts == []
        assert result.working_minutes == 420

    def test_missing_break_suggests_a_break(self):
        result = self.detector.validate(_draft(_span("09:00", "17:00")), [])
        actions = [s.action for s in result.suggestions]
        assert actions == ["suggest_break_time"]
        assert "12:30-13:30" in result.suggestions[0].message

    def test_overlap_suggests_adjusting(self):
        existing = [_schedule("s1", _span("09:00", "17:00", "12:00", "13:00"))]
        result = self.detector.validate(
            _draft(_span("09:00", "17:00", "12:00", "13:00")), existing
        )
        assert result.is_valid is False
        assert result.suggestions[0].action == "adjust_time"

    def test_malformed_draft(self):
        result = self.detector.validate(_draft(_span("17:00", "09:00")), [])
        assert result.is_valid is False
        assert result.working_minutes is None
        assert result.warnings == []


class TestRangeScan:
    def setup_method(self):
        self.detector = ConflictDetector()

    def _week(self, start, end, days=5, first=MONDAY, worker_id="w1"):
        return [
            _schedule(
                f"{worker_id}_d{offset}",
                _span(start, end, day=first + timedelta(days=offset)),
                worker_id=worker_id,
            )
            for offset in range(days)
        ]

    def test_double_booking(self):
        schedules = [
            _schedule("late", _span("16:00", "20:00")),
            _schedule("early", _span("09:00", "17:00")),
        ]
        findings = self.detector.scan(schedules, MONDAY, MONDAY)
        assert len(findings) == 1
        finding = findings[0]
        assert finding.kind == ScanFindingKind.DOUBLE_BOOKING
        assert finding.severity == Severity.ERROR
        assert finding.schedule_ids == ["early", "late"]
        assert finding.day == MONDAY
        assert finding.minutes == 60

    def test_back_to_back_and_other_workers_are_not_double_booked(self):
        schedules = [
            _schedule("s1", _span("06:00", "09:00")),
            _schedule("s2", _span("09:00", "13:00")),
            _schedule("s3", _span("10:00", "12:00"), worker_id="w2"),
        ]
        assert self.detector.scan(schedules, MONDAY, MONDAY) == []

    def test_inactive_and_out_of_range_are_ignored(self):
        schedules = [
            _schedule("s1", _span("09:00", "17:00")),
            _schedule("s2", _span("09:00", "17:00"), status=ScheduleStatus.CANCELLED),
            _schedule("s3", _span("09:00", "17:00", day=date(2024, 3, 5))),
        ]
        assert self.detector.scan(schedules, MONDAY, MONDAY) == []

    def test_weekly_overwork_warning(self):
        findings = self.detector.scan(self._week("09:00", "17:00"), MONDAY, SATURDAY)
        assert [f.kind for f in findings] == [ScanFindingKind.WEEKLY_OVERWORK]
        assert findings[0].severity == Severity.WARNING
        assert findings[0].minutes == 2400
        assert findings[0].week_start == MONDAY
        assert len(findings[0].schedule_ids) == 5

    def test_weekly_overwork_above_limit_is_error(self):
        findings = self.detector.scan(self._week("07:00", "16:00", days=6), MONDAY, SATURDAY)
        assert findings[0].severity == Severity.ERROR
        assert findings[0].minutes == 3240

    def test_weeks_are_counted_separately(self):
        schedules = self._week("08:00", "18:00", days=4, first=SATURDAY)
        findings = self.detector.scan(schedules, MONDAY, date(2024, 3, 17))
        assert findings == []

    def test_weekly_thresholds_are_configurable(self):
        detector = ConflictDetector(DetectorConfig(weekly_warning_minutes=40 * 60))
        assert detector.scan(self._week("09:00", "17:00"), MONDAY, SATURDAY) == []

    def test_short_break_on_long_day(self):
        schedules = [
            _schedule("long", _span("09:00", "17:00", "12:00", "12:15")),
            _schedule("short_day", _span("09:00", "13:00", "11:00", "11:10"), worker_id="w2"),
        ]
        findings = self.detector.scan(schedules, MONDAY, MONDAY)
        assert [f.kind for f in findings] == [ScanFindingKind.BREAK_TOO_SHORT]
        assert findings[0].severity == Severity.WARNING
        assert findings[0].schedule_ids == ["long"]
        assert findings[0].minutes == 15

    def test_malformed_schedules_are_skipped(self):
        schedules = [
            _schedule("broken", _span("17:00", "09:00")),
            _schedule("ok", _span("09:00", "12:00")),
        ]
        assert self.detector.scan(schedules, MONDAY, MONDAY) == []

    def test_errors_come_first(self):
        schedules = [
            _schedule("brk", _span("09:00", "17:00", "12:00", "12:10"), worker_id="w0"),
            _schedule("a", _span("09:00", "12:00", day=date(2024, 3, 6))),
            _schedule("b", _span("11:00", "14:00", day=date(2024, 3, 6))),
        ]
        findings = self.detector.scan(schedules, MONDAY, SATURDAY)
        assert [f.kind for f in findings] == [
            ScanFindingKind.DOUBLE_BOOKING,
            ScanFindingKind.BREAK_TOO_SHORT,
        ]
