"""
Schedule and Timesheet read repositories.

The engine only reads from these. They stand in for the scheduling and
attendance subsystems that own the data; a deployment would back them with
its own persistence layer.
"""

from datetime import date
from typing import Dict, Iterable, List, Optional

from shift_recon.models.schedule import Schedule, ScheduleStatus
from shift_recon.models.timesheet import Timesheet


class RepositoryUnavailableError(Exception):
    """Raised when a data source cannot be reached. Transient; never retried here."""
    pass


def _in_range(value: date, date_from: Optional[date], date_to: Optional[date]) -> bool:
    if date_from is not None and value < date_from:
        return False
    if date_to is not None and value > date_to:
        return False
    return True


class ScheduleRepository:
    """
    In-memory schedule store.
    Production would query the scheduling database.
    """

    def __init__(self, schedules: Optional[Iterable[Schedule]] = None):
        self._schedules: Dict[str, Schedule] = {}
        for schedule in schedules or []:
            self.upsert(schedule)

    def upsert(self, schedule: Schedule) -> None:
        """Insert or replace a schedule by id."""
        self._schedules[schedule.id] = schedule

    def get(self, schedule_id: str) -> Optional[Schedule]:
        return self._schedules.get(schedule_id)

    def count(self) -> int:
        return len(self._schedules)

    def find(
        self,
        worker_ids: Optional[Iterable[str]] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        statuses: Optional[Iterable[ScheduleStatus]] = (ScheduleStatus.ACTIVE,),
        agency_ids: Optional[Iterable[str]] = None,
    ) -> List[Schedule]:
        """Schedules matching every given filter. ``None`` disables a filter."""
        workers = set(worker_ids) if worker_ids is not None else None
        agencies = set(agency_ids) if agency_ids is not None else None
        wanted = set(statuses) if statuses is not None else None
        return [
            s for s in self._schedules.values()
            if (workers is None or s.worker_id in workers)
            and (agencies is None or s.agency_id in agencies)
            and (wanted is None or s.status in wanted)
            and _in_range(s.span.date, date_from, date_to)
        ]

    def for_worker_on(self, worker_id: str, day: date) -> List[Schedule]:
        """Active schedules of one worker on one day."""
        return self.find(worker_ids=[worker_id], date_from=day, date_to=day)


class TimesheetRepository:
    """
    In-memory timesheet store.
    Production would query the attendance database.
    """

    def __init__(self, timesheets: Optional[Iterable[Timesheet]] = None):
        self._timesheets: Dict[str, Timesheet] = {}
        for timesheet in timesheets or []:
            self.upsert(timesheet)

    def upsert(self, timesheet: Timesheet) -> None:
        self._timesheets[timesheet.id] = timesheet

    def get(self, timesheet_id: str) -> Optional[Timesheet]:
        return self._timesheets.get(timesheet_id)

    def count(self) -> int:
        return len(self._timesheets)

    def find(
        self,
        worker_ids: Optional[Iterable[str]] = None,
        agency_ids: Optional[Iterable[str]] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[Timesheet]:
        workers = set(worker_ids) if worker_ids is not None else None
        agencies = set(agency_ids) if agency_ids is not None else None
        return [
            t for t in self._timesheets.values()
            if (workers is None or t.worker_id in workers)
            and (agencies is None or t.agency_id in agencies)
            and _in_range(t.date, date_from, date_to)
        ]
