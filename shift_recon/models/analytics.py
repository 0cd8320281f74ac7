"""Punctuality analytics: mergeable statistics and the reports built from them."""

from datetime import date
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, computed_field

from shift_recon.models.comparison import ComparisonRecord, MatchStatus


class Rating(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    POOR = "poor"


class PunctualityStats(BaseModel):
    """
    Counters over a set of comparison records.

    Only sums are stored, so merging two stats is associative and
    order-independent; every ratio is derived from the merged counters.
    """

    on_time: int = 0
    late: int = 0
    early_leave: int = 0
    absent: int = 0
    missing_schedule: int = 0
    missing_timesheet: int = 0
    unresolved: int = 0
    total_start_delay_minutes: int = 0      # Sum over positive start delays only
    delayed_count: int = 0
    data_quality_issues: int = 0

    @classmethod
    def from_record(cls, record: ComparisonRecord) -> "PunctualityStats":
        stats = cls(data_quality_issues=record.data_quality_issues)
        setattr(stats, record.match_status.value, 1)
        delay = record.start_delay_minutes
        if delay is not None and delay > 0:
            stats.total_start_delay_minutes = delay
            stats.delayed_count = 1
        return stats

    def merge(self, other: "PunctualityStats") -> "PunctualityStats":
        return PunctualityStats(**{
            name: getattr(self, name) + getattr(other, name)
            for name in PunctualityStats.model_fields
        })

    def __add__(self, other: "PunctualityStats") -> "PunctualityStats":
        return self.merge(other)

    @computed_field
    @property
    def total(self) -> int:
        return sum(getattr(self, status.value) for status in MatchStatus)

    @computed_field
    @property
    def absent_equivalent(self) -> int:
        return self.absent + self.missing_timesheet

    @computed_field
    @property
    def punctuality_rate(self) -> Optional[float]:
        """on_time / (on_time + late + early_leave); missing and unresolved excluded."""
        assessed = self.on_time + self.late + self.early_leave
        if assessed == 0:
            return None
        return self.on_time / assessed

    @computed_field
    @property
    def average_delay_minutes(self) -> Optional[float]:
        if self.delayed_count == 0:
            return None
        return self.total_start_delay_minutes / self.delayed_count


class PunctualityTrend(BaseModel):
    """Current period versus the prior period of equal length."""

    current: PunctualityStats
    previous: PunctualityStats
    previous_from: date
    previous_to: date
    rate_delta: Optional[float] = None
    on_time_delta: int = 0
    late_delta: int = 0


class PeriodStats(BaseModel):
    period_start: date
    period_end: date
    stats: PunctualityStats
    trend: Optional[PunctualityTrend] = None


class ComparisonReport(BaseModel):
    """Everything the comparison endpoint returns."""

    date_from: date
    date_to: date
    records: List[ComparisonRecord]
    summary: PunctualityStats
    rating: Optional[Rating] = None
    by_agency: Dict[str, PunctualityStats] = {}
    agency_ratings: Dict[str, Optional[Rating]] = {}
    agency_trends: Dict[str, PunctualityTrend] = {}
    by_worker: Dict[str, PunctualityStats] = {}
    by_weekday: Dict[str, PunctualityStats] = {}
    periods: List[PeriodStats] = []
    trend: Optional[PunctualityTrend] = None
