"""Comparison Record: one planned-vs-actual outcome for a worker, agency and day."""

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from shift_recon.models.schedule import Schedule
from shift_recon.models.timesheet import Timesheet


class MatchStatus(str, Enum):
    ON_TIME = "on_time"
    LATE = "late"
    EARLY_LEAVE = "early_leave"
    ABSENT = "absent"
    MISSING_SCHEDULE = "missing_schedule"     # Worked without a plan
    MISSING_TIMESHEET = "missing_timesheet"   # Planned, past, nothing recorded
    UNRESOLVED = "unresolved"                 # Still clocked in / no clock-out


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ComparisonRecord(BaseModel):
    """
    Reconciliation outcome for one worker x agency x date.

    At least one of ``schedule`` / ``timesheet`` is always set. Delays are in
    whole minutes, negative meaning early, and are ``None`` where they cannot
    be computed (one side missing, no clock-out yet).
    """

    worker_id: str
    agency_id: str
    date: date
    schedule: Optional[Schedule] = None
    timesheet: Optional[Timesheet] = None
    match_status: MatchStatus
    start_delay_minutes: Optional[int] = None
    end_delay_minutes: Optional[int] = None
    break_deviation_minutes: Optional[int] = None

    # DATA QUALITY: records that lost the most-recently-updated tie-break
    superseded_schedule_ids: List[str] = []
    superseded_timesheet_ids: List[str] = []

    @property
    def data_quality_issues(self) -> int:
        return len(self.superseded_schedule_ids) + len(self.superseded_timesheet_ids)


class MissingTimesheet(BaseModel):
    """A past schedule with no recorded attendance, ranked by how overdue it is."""

    record: ComparisonRecord
    days_overdue: int
    urgency: Urgency
