"""Shift reconciliation data models."""

from shift_recon.models.analytics import (
    ComparisonReport,
    PeriodStats,
    PunctualityStats,
    PunctualityTrend,
    Rating,
)
from shift_recon.models.comparison import (
    ComparisonRecord,
    MatchStatus,
    MissingTimesheet,
    Urgency,
)
from shift_recon.models.config import (
    CoordinatorConfig,
    DetectorConfig,
    PunctualityThresholds,
    ReportingConfig,
)
from shift_recon.models.conflict import (
    Advisory,
    AdvisoryKind,
    AdvisoryLevel,
    Conflict,
    ConflictKind,
    Severity,
    ScanFinding,
    ScanFindingKind,
    Suggestion,
    ValidationResult,
)
from shift_recon.models.interval import MinuteTime, TimeSpan
from shift_recon.models.schedule import (
    DraftInput,
    Schedule,
    ScheduleDraft,
    ScheduleStatus,
)
from shift_recon.models.timesheet import Timesheet, TimesheetStatus

__all__ = [
    "Advisory",
    "AdvisoryKind",
    "AdvisoryLevel",
    "ComparisonRecord",
    "ComparisonReport",
    "Conflict",
    "ConflictKind",
    "CoordinatorConfig",
    "DetectorConfig",
    "DraftInput",
    "MatchStatus",
    "MinuteTime",
    "MissingTimesheet",
    "PeriodStats",
    "PunctualityStats",
    "PunctualityThresholds",
    "PunctualityTrend",
    "Rating",
    "ReportingConfig",
    "ScanFinding",
    "ScanFindingKind",
    "Schedule",
    "ScheduleDraft",
    "ScheduleStatus",
    "Severity",
    "Suggestion",
    "TimeSpan",
    "Timesheet",
    "TimesheetStatus",
    "Urgency",
    "ValidationResult",
]
