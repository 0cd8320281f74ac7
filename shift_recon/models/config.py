"""Engine configuration: injected per deployment, never read from globals."""

from typing import Optional

from croniter import croniter
from pydantic import BaseModel, Field, field_validator, model_validator


class PunctualityThresholds(BaseModel):
    """
    Grace periods separating on-time from late, and late from absent.

    Every deployment supplies its own; there are no defaults.
    """

    late_grace_minutes: int = Field(ge=0)
    absent_after_minutes: int = Field(ge=0)
    early_leave_grace_minutes: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_ordering(self) -> "PunctualityThresholds":
        if self.absent_after_minutes < self.late_grace_minutes:
            raise ValueError("absent_after_minutes must be >= late_grace_minutes")
        return self

    @property
    def early_grace(self) -> int:
        if self.early_leave_grace_minutes is None:
            return self.late_grace_minutes
        return self.early_leave_grace_minutes


class DetectorConfig(BaseModel):
    """Configuration for the Conflict Detector and its advisories."""

    overlap_warning_minutes: int = Field(default=15, ge=0)
    long_day_minutes: int = 600             # Working minutes above which a day is "long"
    break_required_after_minutes: int = 360
    usual_start_hour: int = Field(default=6, ge=0, le=23)
    usual_end_hour: int = Field(default=22, ge=0, le=24)
    suggested_break_minutes: int = 60

    # Range scans over persisted schedules
    weekly_warning_minutes: int = 35 * 60
    weekly_limit_minutes: int = 48 * 60     # Above this, weekly overwork is an error
    min_break_minutes: int = 30
    short_break_after_minutes: int = 360    # Working time above which a break must be >= min_break_minutes

    @model_validator(mode="after")
    def _check_weekly_limits(self) -> "DetectorConfig":
        if self.weekly_limit_minutes < self.weekly_warning_minutes:
            raise ValueError("weekly_limit_minutes must be >= weekly_warning_minutes")
        return self


class CoordinatorConfig(BaseModel):
    """Configuration for the Validation Coordinator."""

    debounce_seconds: float = Field(default=0.5, ge=0)


class ReportingConfig(BaseModel):
    """How comparison reports are cut into periods and rated."""

    period_schedule: str = "0 0 * * 1"      # Cron expression: a new period starts each Monday
    excellent_rate: float = 95.0
    good_rate: float = 85.0
    average_rate: float = 70.0

    @field_validator("period_schedule")
    @classmethod
    def _valid_cron(cls, value: str) -> str:
        if not croniter.is_valid(value):
            raise ValueError(f"Invalid cron expression: {value}")
        return value
