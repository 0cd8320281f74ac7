"""
Planned-vs-Actual Matcher: reconciles schedules with timesheets.

Behavioral Contract:
- Works on read snapshots; never fetches, never mutates its inputs
- Pairs records by worker x agency x date within the requested range
- Several active schedules (or timesheets) for one key is a data-quality
  condition: the most recently updated wins, the rest are reported on the
  record as superseded
- Emits nothing for a key with neither side, and nothing for a schedule
  that is not yet assessable (today or later, no timesheet)
- Never raises for well-formed input; ReconciliationError means a bug
"""

import logging
from datetime import date, datetime, time
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from shift_recon.intervals.arithmetic import break_minutes
from shift_recon.models.comparison import (
    ComparisonRecord,
    MatchStatus,
    MissingTimesheet,
    Urgency,
)
from shift_recon.models.config import PunctualityThresholds
from shift_recon.models.schedule import Schedule
from shift_recon.models.timesheet import Timesheet

logger = logging.getLogger(__name__)

Key = Tuple[str, str, date]  # (worker_id, agency_id, date)


class ReconciliationError(Exception):
    """Raised when the matcher reaches an internally inconsistent state."""
    pass


def _minutes_between(earlier: datetime, later: datetime) -> int:
    """Whole minutes from earlier to later, floored; negative if later is before."""
    return int((later - earlier).total_seconds() // 60)


def _pick_latest(items: List, stamp: Callable) -> Tuple[Optional[object], List[str]]:
    """The most recently updated item and the ids of the ones it supersedes."""
    if not items:
        return None, []
    ordered = sorted(items, key=stamp, reverse=True)
    return ordered[0], [item.id for item in ordered[1:]]


def _schedule_stamp(schedule: Schedule):
    return (schedule.updated_at, schedule.id)


def _timesheet_stamp(timesheet: Timesheet):
    return (timesheet.updated_at or datetime.min, timesheet.id)


def _record_order(record: ComparisonRecord):
    if record.schedule is not None:
        start = record.schedule.span.start
    elif record.timesheet is not None and record.timesheet.clock_in is not None:
        start = record.timesheet.clock_in.time()
    else:
        start = time.min
    return (record.date, start, record.worker_id, record.agency_id)


class PlannedActualMatcher:
    """Stateless apart from its thresholds. Safe to run on parallel shards."""

    def __init__(self, thresholds: PunctualityThresholds):
        self.thresholds = thresholds

    def compare(
        self,
        schedules: Iterable[Schedule],
        timesheets: Iterable[Timesheet],
        date_from: date,
        date_to: date,
        worker_ids: Optional[Iterable[str]] = None,
        agency_ids: Optional[Iterable[str]] = None,
        today: Optional[date] = None,
    ) -> List[ComparisonRecord]:
        """
        Reconcile every worker x agency x date in [date_from, date_to].

        ``None`` for worker_ids / agency_ids means every worker / agency
        present in the snapshots.
        """
        if today is None:
            today = date.today()
        workers = set(worker_ids) if worker_ids is not None else None
        agencies = set(agency_ids) if agency_ids is not None else None

        def wanted(worker_id: str, agency_id: str, day: date) -> bool:
            return (
                date_from <= day <= date_to
                and (workers is None or worker_id in workers)
                and (agencies is None or agency_id in agencies)
            )

        groups: Dict[Key, Tuple[List[Schedule], List[Timesheet]]] = {}
        for schedule in schedules:
            if not schedule.is_active:
                continue
            key = (schedule.worker_id, schedule.agency_id, schedule.span.date)
            if wanted(*key):
                groups.setdefault(key, ([], []))[0].append(schedule)
        for timesheet in timesheets:
            key = (timesheet.worker_id, timesheet.agency_id, timesheet.date)
            if wanted(*key):
                groups.setdefault(key, ([], []))[1].append(timesheet)

        records = []
        for key, (planned, actual) in groups.items():
            schedule, superseded_schedules = _pick_latest(planned, _schedule_stamp)
            timesheet, superseded_timesheets = _pick_latest(actual, _timesheet_stamp)
            if superseded_schedules or superseded_timesheets:
                logger.warning(
                    "Duplicate records for worker %s, agency %s on %s; "
                    "kept the most recently updated",
                    *key,
                )

            record = self.classify(key, schedule, timesheet, today)
            if record is None:
                continue
            record.superseded_schedule_ids = superseded_schedules
            record.superseded_timesheet_ids = superseded_timesheets
            records.append(record)

        records.sort(key=_record_order)
        return records

    def classify(
        self,
        key: Key,
        schedule: Optional[Schedule],
        timesheet: Optional[Timesheet],
        today: date,
    ) -> Optional[ComparisonRecord]:
        """Outcome for one key, or None when there is nothing to assess yet."""
        worker_id, agency_id, day = key
        base = dict(
            worker_id=worker_id,
            agency_id=agency_id,
            date=day,
            schedule=schedule,
            timesheet=timesheet,
        )

        if schedule is None and timesheet is None:
            raise ReconciliationError(f"Empty reconciliation group {key}")

        if schedule is None:
            return ComparisonRecord(**base, match_status=MatchStatus.MISSING_SCHEDULE)

        if timesheet is None:
            if day < today:
                return ComparisonRecord(**base, match_status=MatchStatus.MISSING_TIMESHEET)
            return None

        if timesheet.clock_in is None:
            status = MatchStatus.ABSENT if day < today else MatchStatus.UNRESOLVED
            return ComparisonRecord(**base, match_status=status)

        span = schedule.span
        start_delay = _minutes_between(datetime.combine(day, span.start), timesheet.clock_in)
        end_delay = None
        if timesheet.clock_out is not None:
            end_delay = _minutes_between(datetime.combine(day, span.end), timesheet.clock_out)
        break_deviation = abs(timesheet.break_minutes - break_minutes(span))

        return ComparisonRecord(
            **base,
            match_status=self._status(start_delay, end_delay),
            start_delay_minutes=start_delay,
            end_delay_minutes=end_delay,
            break_deviation_minutes=break_deviation,
        )

    def _status(self, start_delay: int, end_delay: Optional[int]) -> MatchStatus:
        thresholds = self.thresholds
        if start_delay > thresholds.absent_after_minutes:
            return MatchStatus.ABSENT
        if start_delay > thresholds.late_grace_minutes:
            return MatchStatus.LATE
        if end_delay is None:
            # Still clocked in, or the clock-out was never recorded
            return MatchStatus.UNRESOLVED
        if end_delay < -thresholds.early_grace:
            return MatchStatus.EARLY_LEAVE
        return MatchStatus.ON_TIME


def missing_timesheets(
    records: Iterable[ComparisonRecord], today: Optional[date] = None
) -> List[MissingTimesheet]:
    """Past schedules without attendance, with an urgency based on age."""
    if today is None:
        today = date.today()
    missing = []
    for record in records:
        if record.match_status != MatchStatus.MISSING_TIMESHEET:
            continue
        days = (today - record.date).days
        if days > 7:
            urgency = Urgency.HIGH
        elif days > 3:
            urgency = Urgency.MEDIUM
        else:
            urgency = Urgency.LOW
        missing.append(MissingTimesheet(record=record, days_overdue=days, urgency=urgency))
    return missing
