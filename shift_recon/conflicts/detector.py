"""
Conflict Detector: checks a schedule draft against existing schedules.

Behavioral Contract:
- Accepts a ScheduleDraft and a read snapshot of existing Schedules
- A malformed span yields exactly one invalid_time error and nothing else
- Only active schedules of the same worker on the same date are considered,
  minus the schedule being edited
- Identical slots are duplicates (error); other overlaps are errors unless
  short or confined to a break window (warning)
- Output is ordered: errors first, then by conflicting schedule start
- Pure: no I/O, no state, same inputs give the same list
- scan() is the batch counterpart: it checks persisted schedules over a
  date range for double bookings, weekly overwork and short breaks
"""

import logging
from datetime import date, time, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from shift_recon.intervals.arithmetic import (
    break_minutes,
    duration_minutes,
    minutes_of,
    overlap_minutes,
    overlap_window,
    same_slot,
    span_violation,
    window_within_break,
    working_minutes,
)
from shift_recon.models.config import DetectorConfig
from shift_recon.models.conflict import (
    Advisory,
    AdvisoryKind,
    AdvisoryLevel,
    Conflict,
    ConflictKind,
    ScanFinding,
    ScanFindingKind,
    Severity,
    Suggestion,
    ValidationResult,
)
from shift_recon.models.schedule import Schedule, ScheduleDraft

logger = logging.getLogger(__name__)

_SEVERITY_RANK = {Severity.ERROR: 0, Severity.WARNING: 1}


def is_valid(conflicts: Iterable[Conflict]) -> bool:
    """Warnings never block submission; any error does."""
    return all(c.severity != Severity.ERROR for c in conflicts)


def _fmt(value: time) -> str:
    return value.strftime("%H:%M")


def _fmt_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


class ConflictDetector:
    """
    Stateless detector. Safe to share between concurrent callers; the caller
    is responsible for passing a consistent snapshot of existing schedules.
    """

    def __init__(self, config: Optional[DetectorConfig] = None):
        self.config = config or DetectorConfig()
        self._advisory_rules: List[Callable[[ScheduleDraft], Optional[Advisory]]] = [
            self._check_long_day,
            self._check_weekend,
            self._check_missing_break,
            self._check_unusual_hours,
        ]

    def detect(
        self,
        draft: ScheduleDraft,
        existing: Iterable[Schedule],
        exclude_id: Optional[str] = None,
    ) -> List[Conflict]:
        """Classify every conflict between the draft and existing schedules."""
        violation = span_violation(draft.span)
        if violation:
            return [Conflict(
                kind=ConflictKind.INVALID_TIME,
                severity=Severity.ERROR,
                message=violation,
            )]

        candidates = [
            s for s in existing
            if s.worker_id == draft.worker_id
            and s.span.date == draft.span.date
            and s.is_active
            and s.id != exclude_id
        ]

        found = []
        for schedule in candidates:
            conflict = self._classify(draft, schedule)
            if conflict:
                found.append((conflict, schedule))

        found.sort(key=lambda pair: (
            _SEVERITY_RANK[pair[0].severity],
            minutes_of(pair[1].span.start),
            pair[1].id,
        ))
        return [conflict for conflict, _ in found]

    def _classify(self, draft: ScheduleDraft, schedule: Schedule) -> Optional[Conflict]:
        window = overlap_window(draft.span, schedule.span)
        if window is None:
            return None

        existing_span = schedule.span
        label = f"{_fmt(existing_span.start)} - {_fmt(existing_span.end)}"

        if same_slot(draft.span, existing_span):
            return Conflict(
                kind=ConflictKind.DUPLICATE,
                severity=Severity.ERROR,
                message=f"Identical schedule already exists ({label})",
                related_schedule_id=schedule.id,
                overlap_minutes=window[1] - window[0],
            )

        minutes = overlap_minutes(draft.span, existing_span)
        tolerated = (
            minutes <= self.config.overlap_warning_minutes
            or window_within_break(window, draft.span)
            or window_within_break(window, existing_span)
        )
        return Conflict(
            kind=ConflictKind.OVERLAP,
            severity=Severity.WARNING if tolerated else Severity.ERROR,
            message=(
                f"Overlaps existing schedule ({label}) by {minutes} minutes "
                f"({_fmt_minutes(window[0])} - {_fmt_minutes(window[1])})"
            ),
            related_schedule_id=schedule.id,
            overlap_minutes=minutes,
        )

    # --- Advisories (non-blocking) ---

    def advisories(self, draft: ScheduleDraft) -> List[Advisory]:
        """Remarks about the draft itself. Only meaningful for well-formed spans."""
        if span_violation(draft.span):
            return []
        advisories = []
        for rule in self._advisory_rules:
            advisory = rule(draft)
            if advisory:
                advisories.append(advisory)
        return advisories

    def _check_long_day(self, draft: ScheduleDraft) -> Optional[Advisory]:
        minutes = working_minutes(draft.span)
        if minutes <= self.config.long_day_minutes:
            return None
        return Advisory(
            kind=AdvisoryKind.LONG_WORKING_DAY,
            severity=AdvisoryLevel.WARNING,
            message=f"Long working day ({minutes / 60:.1f}h). Check working-time regulations.",
        )

    def _check_weekend(self, draft: ScheduleDraft) -> Optional[Advisory]:
        if draft.span.date.weekday() < 5:
            return None
        return Advisory(
            kind=AdvisoryKind.WEEKEND_WORK,
            severity=AdvisoryLevel.INFO,
            message="Schedule falls on a weekend",
        )

    def _check_missing_break(self, draft: ScheduleDraft) -> Optional[Advisory]:
        if draft.span.has_break:
            return None
        if working_minutes(draft.span) < self.config.break_required_after_minutes:
            return None
        hours = self.config.break_required_after_minutes / 60
        return Advisory(
            kind=AdvisoryKind.NO_BREAK_LONG_DAY,
            severity=AdvisoryLevel.WARNING,
            message=f"No break planned for a day of {hours:g}h or more",
        )

    def _check_unusual_hours(self, draft: ScheduleDraft) -> Optional[Advisory]:
        start_hour = draft.span.start.hour
        end_minutes = minutes_of(draft.span.end)
        if (
            start_hour >= self.config.usual_start_hour
            and end_minutes <= self.config.usual_end_hour * 60
        ):
            return None
        return Advisory(
            kind=AdvisoryKind.UNUSUAL_HOURS,
            severity=AdvisoryLevel.INFO,
            message=(
                f"Hours outside the usual window "
                f"({self.config.usual_start_hour}h-{self.config.usual_end_hour}h)"
            ),
        )

    # --- Suggestions ---

    def suggestions(
        self,
        draft: ScheduleDraft,
        conflicts: List[Conflict],
        advisories: List[Advisory],
    ) -> List[Suggestion]:
        suggestions = []
        kinds = {a.kind for a in advisories}

        if any(c.kind in (ConflictKind.OVERLAP, ConflictKind.DUPLICATE) for c in conflicts):
            suggestions.append(Suggestion(
                kind="resolve_conflict",
                message="Adjust the hours to avoid overlapping an existing schedule",
                action="adjust_time",
            ))

        if AdvisoryKind.LONG_WORKING_DAY in kinds:
            suggestions.append(Suggestion(
                kind="reduce_hours",
                message="Consider shortening the day or adding another break",
                action="add_break",
            ))

        if AdvisoryKind.NO_BREAK_LONG_DAY in kinds:
            start, end = self._proposed_break(draft)
            suggestions.append(Suggestion(
                kind="add_break",
                message=f"Add a break (e.g. {_fmt_minutes(start)}-{_fmt_minutes(end)})",
                action="suggest_break_time",
            ))

        return suggestions

    def _proposed_break(self, draft: ScheduleDraft):
        """A break of the configured length centred in the working day."""
        length = min(self.config.suggested_break_minutes, duration_minutes(draft.span))
        midpoint = (minutes_of(draft.span.start) + minutes_of(draft.span.end)) // 2
        start = midpoint - length // 2
        return start, start + length

    # --- Full validation ---

    def validate(
        self,
        draft: ScheduleDraft,
        existing: Iterable[Schedule],
        exclude_id: Optional[str] = None,
    ) -> ValidationResult:
        """Conflicts plus advisories, suggestions and the scheduled working time."""
        conflicts = self.detect(draft, existing, exclude_id=exclude_id)
        advisories = self.advisories(draft)
        malformed = span_violation(draft.span) is not None

        if conflicts:
            logger.debug(
                "Draft for worker %s on %s has %d conflict(s)",
                draft.worker_id, draft.span.date, len(conflicts),
            )

        return ValidationResult(
            conflicts=conflicts,
            warnings=advisories,
            suggestions=self.suggestions(draft, conflicts, advisories),
            is_valid=is_valid(conflicts),
            working_minutes=None if malformed else working_minutes(draft.span),
        )

    # --- Range scan over persisted schedules ---

    def scan(
        self,
        schedules: Iterable[Schedule],
        date_from: date,
        date_to: date,
    ) -> List[ScanFinding]:
        """
        Find problems among existing active schedules in [date_from, date_to]:
        double bookings, weekly overwork and breaks too short for the day.

        Weekly totals only count schedules inside the range. Malformed spans
        are skipped; they are reported when the schedule is next validated.
        """
        candidates = []
        for schedule in schedules:
            if not schedule.is_active or not date_from <= schedule.span.date <= date_to:
                continue
            if span_violation(schedule.span):
                logger.warning("Skipping malformed schedule %s in range scan", schedule.id)
                continue
            candidates.append(schedule)
        candidates.sort(key=lambda s: (s.span.date, minutes_of(s.span.start), s.id))

        findings = (
            self._double_bookings(candidates)
            + self._weekly_overwork(candidates)
            + self._short_breaks(candidates)
        )
        findings.sort(key=lambda f: (
            _SEVERITY_RANK[f.severity],
            f.day or f.week_start,
            f.worker_id,
            f.kind.value,
            f.schedule_ids,
        ))
        return findings

    def _double_bookings(self, schedules: List[Schedule]) -> List[ScanFinding]:
        by_day: Dict[Tuple[str, date], List[Schedule]] = {}
        for schedule in schedules:
            by_day.setdefault((schedule.worker_id, schedule.span.date), []).append(schedule)

        findings = []
        for (worker_id, day), same_day in by_day.items():
            for index, first in enumerate(same_day):
                for second in same_day[index + 1:]:
                    window = overlap_window(first.span, second.span)
                    if window is None:
                        continue
                    minutes = window[1] - window[0]
                    findings.append(ScanFinding(
                        kind=ScanFindingKind.DOUBLE_BOOKING,
                        severity=Severity.ERROR,
                        message=(
                            f"Schedules {_fmt(first.span.start)} - {_fmt(first.span.end)} and "
                            f"{_fmt(second.span.start)} - {_fmt(second.span.end)} "
                            f"overlap by {minutes} minutes"
                        ),
                        worker_id=worker_id,
                        schedule_ids=[first.id, second.id],
                        day=day,
                        minutes=minutes,
                    ))
        return findings

    def _weekly_overwork(self, schedules: List[Schedule]) -> List[ScanFinding]:
        by_week: Dict[Tuple[str, date], List[Schedule]] = {}
        for schedule in schedules:
            day = schedule.span.date
            monday = day - timedelta(days=day.weekday())
            by_week.setdefault((schedule.worker_id, monday), []).append(schedule)

        findings = []
        for (worker_id, monday), week in by_week.items():
            total = sum(working_minutes(s.span) for s in week)
            if total <= self.config.weekly_warning_minutes:
                continue
            over_limit = total > self.config.weekly_limit_minutes
            findings.append(ScanFinding(
                kind=ScanFindingKind.WEEKLY_OVERWORK,
                severity=Severity.ERROR if over_limit else Severity.WARNING,
                message=(
                    f"{total / 60:.1f}h scheduled in the week of {monday.isoformat()} "
                    f"(more than {self.config.weekly_warning_minutes / 60:g}h)"
                ),
                worker_id=worker_id,
                schedule_ids=[s.id for s in week],
                week_start=monday,
                minutes=total,
            ))
        return findings

    def _short_breaks(self, schedules: List[Schedule]) -> List[ScanFinding]:
        findings = []
        for schedule in schedules:
            span = schedule.span
            if not span.has_break:
                continue
            pause = break_minutes(span)
            if (
                working_minutes(span) <= self.config.short_break_after_minutes
                or pause >= self.config.min_break_minutes
            ):
                continue
            findings.append(ScanFinding(
                kind=ScanFindingKind.BREAK_TOO_SHORT,
                severity=Severity.WARNING,
                message=(
                    f"Break of {pause} minutes is shorter than "
                    f"{self.config.min_break_minutes} minutes for this day"
                ),
                worker_id=schedule.worker_id,
                schedule_ids=[schedule.id],
                day=span.date,
                minutes=pause,
            ))
        return findings
