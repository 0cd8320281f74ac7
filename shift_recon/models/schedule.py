"""Schedules: persisted planned work periods and the drafts validated against them."""

import datetime as dt
import hashlib
import json
from enum import Enum
from typing import Optional

from pydantic import BaseModel, NaiveDatetime

from shift_recon.models.interval import MinuteTime, TimeSpan


class ScheduleStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class ScheduleDraft(BaseModel):
    """A candidate schedule under validation. Never persisted."""

    worker_id: str
    agency_id: str
    span: TimeSpan
    notes: Optional[str] = None


class Schedule(BaseModel):
    """A planned work period. Soft-deleted through ``status``, never removed."""

    id: str
    worker_id: str
    agency_id: str
    span: TimeSpan
    status: ScheduleStatus = ScheduleStatus.ACTIVE
    created_by: str
    created_at: NaiveDatetime
    updated_at: NaiveDatetime
    notes: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == ScheduleStatus.ACTIVE


# Fields that take part in validation, in fingerprint order
_FINGERPRINT_FIELDS = (
    "worker_id",
    "agency_id",
    "date",
    "start",
    "end",
    "break_start",
    "break_end",
    "exclude_id",
)


class DraftInput(BaseModel):
    """
    Partial form state as a user fills in a schedule.

    Every field is optional; the draft becomes validatable once worker,
    agency, date, start and end are all present.
    """

    worker_id: Optional[str] = None
    agency_id: Optional[str] = None
    date: Optional[dt.date] = None
    start: Optional[MinuteTime] = None
    end: Optional[MinuteTime] = None
    break_start: Optional[MinuteTime] = None
    break_end: Optional[MinuteTime] = None
    notes: Optional[str] = None
    exclude_id: Optional[str] = None        # Schedule being edited, if any

    def is_complete(self) -> bool:
        return all(
            getattr(self, name) not in (None, "")
            for name in ("worker_id", "agency_id", "date", "start", "end")
        )

    def to_draft(self) -> ScheduleDraft:
        """Build the complete draft. Call only when ``is_complete()``."""
        if not self.is_complete():
            raise ValueError("Draft is missing required fields")
        return ScheduleDraft(
            worker_id=self.worker_id,
            agency_id=self.agency_id,
            span=TimeSpan(
                date=self.date,
                start=self.start,
                end=self.end,
                break_start=self.break_start,
                break_end=self.break_end,
            ),
            notes=self.notes,
        )

    def fingerprint(self) -> str:
        """Deterministic digest of the validation-relevant fields. Notes are ignored."""
        payload = {
            name: (
                getattr(self, name).isoformat()
                if hasattr(getattr(self, name), "isoformat")
                else getattr(self, name)
            )
            for name in _FINGERPRINT_FIELDS
        }
        encoded = json.dumps(payload, sort_keys=True).encode()
        return hashlib.sha256(encoded).hexdigest()
