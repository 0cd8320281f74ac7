"""Timesheet: actual recorded attendance for one worker on one day."""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, NaiveDatetime


class TimesheetStatus(str, Enum):
    NOT_STARTED = "not_started"
    WORKING = "working"
    ON_BREAK = "on_break"
    FINISHED = "finished"


class Timesheet(BaseModel):
    """
    Created by clock-in, mutated by clock-out and break events. Read-only here.

    Clock values are naive local datetimes; values carrying a UTC offset are
    rejected, since schedules are planned in local wall-clock time.
    """

    id: str
    worker_id: str
    agency_id: str
    date: date
    clock_in: Optional[NaiveDatetime] = None
    clock_out: Optional[NaiveDatetime] = None
    break_start: Optional[NaiveDatetime] = None
    break_end: Optional[NaiveDatetime] = None
    current_status: TimesheetStatus = TimesheetStatus.NOT_STARTED
    updated_at: Optional[NaiveDatetime] = None

    @property
    def break_minutes(self) -> int:
        if self.break_start is None or self.break_end is None:
            return 0
        return max(0, int((self.break_end - self.break_start).total_seconds() // 60))
