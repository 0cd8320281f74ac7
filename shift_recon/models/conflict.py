"""Conflicts, advisories and suggestions: the output of schedule validation."""

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class ConflictKind(str, Enum):
    OVERLAP = "overlap"
    DUPLICATE = "duplicate"
    INVALID_TIME = "invalid_time"
    VALIDATION_ERROR = "validation_error"   # Validation itself could not run


class Severity(str, Enum):
    WARNING = "warning"   # Shown, does not block submission
    ERROR = "error"       # Blocks submission


class Conflict(BaseModel):
    """A clash between a draft and the existing schedules. Never persisted."""

    kind: ConflictKind
    severity: Severity
    message: str
    related_schedule_id: Optional[str] = None
    overlap_minutes: Optional[int] = None


class AdvisoryKind(str, Enum):
    LONG_WORKING_DAY = "long_working_day"
    WEEKEND_WORK = "weekend_work"
    NO_BREAK_LONG_DAY = "no_break_long_day"
    UNUSUAL_HOURS = "unusual_hours"


class AdvisoryLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"


class Advisory(BaseModel):
    """A non-blocking remark about the draft itself (not about other schedules)."""

    kind: AdvisoryKind
    severity: AdvisoryLevel
    message: str


class Suggestion(BaseModel):
    """A remediation hint for the person editing the schedule."""

    kind: str                               # e.g., "resolve_conflict", "add_break"
    message: str
    action: str                             # e.g., "adjust_time", "suggest_break_time"


class ValidationResult(BaseModel):
    """Outcome of validating one draft."""

    conflicts: List[Conflict] = []
    warnings: List[Advisory] = []
    suggestions: List[Suggestion] = []
    is_valid: bool = True
    working_minutes: Optional[int] = None
    fingerprint: Optional[str] = None

    @classmethod
    def neutral(cls) -> "ValidationResult":
        """Nothing to validate yet: valid, no conflicts."""
        return cls()


class ScanFindingKind(str, Enum):
    DOUBLE_BOOKING = "double_booking"
    WEEKLY_OVERWORK = "weekly_overwork"
    BREAK_TOO_SHORT = "break_too_short"


class ScanFinding(BaseModel):
    """
    A problem found among already-persisted schedules over a date range.

    ``day`` is set for findings about one date; ``week_start`` (a Monday) for
    weekly totals. ``minutes`` is the overlap, the weekly working time or the
    break length, depending on ``kind``.
    """

    kind: ScanFindingKind
    severity: Severity
    message: str
    worker_id: str
    schedule_ids: List[str]
    day: Optional[date] = None
    week_start: Optional[date] = None
    minutes: Optional[int] = None
