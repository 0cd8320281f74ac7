"""
Punctuality Classifier & Aggregator.

Turns comparison records into PunctualityStats and rolls them up per agency,
per weekday and per reporting period. Every roll-up is a fold over
``PunctualityStats.merge``, which is associative and commutative, so stats
computed on separate shards can be merged in any order.
"""

from datetime import date, datetime, time, timedelta
from functools import reduce
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Tuple

from croniter import croniter

from shift_recon.models.analytics import (
    PeriodStats,
    PunctualityStats,
    PunctualityTrend,
    Rating,
)
from shift_recon.models.comparison import ComparisonRecord
from shift_recon.models.config import ReportingConfig

WEEKDAY_NAMES = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)


def merge_all(stats: Iterable[PunctualityStats]) -> PunctualityStats:
    return reduce(PunctualityStats.merge, stats, PunctualityStats())


def previous_range(date_from: date, date_to: date) -> Tuple[date, date]:
    """The period of equal length ending the day before date_from."""
    length = (date_to - date_from).days + 1
    return date_from - timedelta(days=length), date_from - timedelta(days=1)


def period_ranges(date_from: date, date_to: date, schedule: str) -> List[Tuple[date, date]]:
    """
    Cut [date_from, date_to] into consecutive periods.

    A new period starts on each date the cron expression fires; the first
    period always starts at date_from. Several firings on one day count once.
    """
    starts = [date_from]
    itr = croniter(schedule, datetime.combine(date_from, time.min))
    fire = itr.get_next(datetime)
    while fire.date() <= date_to:
        if fire.date() > starts[-1]:
            starts.append(fire.date())
        fire = itr.get_next(datetime)

    ranges = []
    for index, start in enumerate(starts):
        if index + 1 < len(starts):
            end = starts[index + 1] - timedelta(days=1)
        else:
            end = date_to
        ranges.append((start, end))
    return ranges


class PunctualityAggregator:
    """Pure reductions over comparison records."""

    def __init__(self, config: Optional[ReportingConfig] = None):
        self.config = config or ReportingConfig()

    def summarize(self, records: Iterable[ComparisonRecord]) -> PunctualityStats:
        return merge_all(PunctualityStats.from_record(r) for r in records)

    def group(
        self,
        records: Iterable[ComparisonRecord],
        key: Callable[[ComparisonRecord], Hashable],
    ) -> Dict[Hashable, PunctualityStats]:
        groups: Dict[Hashable, PunctualityStats] = {}
        for record in records:
            k = key(record)
            groups[k] = groups.get(k, PunctualityStats()).merge(
                PunctualityStats.from_record(record)
            )
        return groups

    def by_agency(self, records: Iterable[ComparisonRecord]) -> Dict[str, PunctualityStats]:
        return self.group(records, lambda r: r.agency_id)

    def by_weekday(self, records: Iterable[ComparisonRecord]) -> Dict[str, PunctualityStats]:
        return self.group(records, lambda r: WEEKDAY_NAMES[r.date.weekday()])

    def by_worker(self, records: Iterable[ComparisonRecord]) -> Dict[str, PunctualityStats]:
        return self.group(records, lambda r: r.worker_id)

    def by_period(
        self,
        records: Iterable[ComparisonRecord],
        date_from: date,
        date_to: date,
        schedule: Optional[str] = None,
        history: Optional[Iterable[ComparisonRecord]] = None,
    ) -> List[PeriodStats]:
        """
        Stats per reporting period, including empty periods.

        When ``history`` (records before date_from) is given, each period also
        carries a trend against the equal-length range just before it, which
        may reach back into the history.
        """
        ranges = period_ranges(date_from, date_to, schedule or self.config.period_schedule)
        records = list(records)
        earlier = list(history) + records if history is not None else None

        periods = []
        for start, end in ranges:
            stats = self.summarize(r for r in records if start <= r.date <= end)
            trend = None
            if earlier is not None:
                prev_from, prev_to = previous_range(start, end)
                previous = self.summarize(
                    r for r in earlier if prev_from <= r.date <= prev_to
                )
                trend = self.trend(stats, previous, prev_from, prev_to)
            periods.append(PeriodStats(
                period_start=start, period_end=end, stats=stats, trend=trend,
            ))
        return periods

    def agency_trends(
        self,
        records: Iterable[ComparisonRecord],
        previous_records: Iterable[ComparisonRecord],
        previous_from: date,
        previous_to: date,
    ) -> Dict[str, PunctualityTrend]:
        """Trend per agency seen in either period; an absent side counts as empty."""
        current = self.by_agency(records)
        previous = self.by_agency(previous_records)
        return {
            agency_id: self.trend(
                current.get(agency_id, PunctualityStats()),
                previous.get(agency_id, PunctualityStats()),
                previous_from,
                previous_to,
            )
            for agency_id in sorted(set(current) | set(previous))
        }

    def trend(
        self,
        current: PunctualityStats,
        previous: PunctualityStats,
        previous_from: date,
        previous_to: date,
    ) -> PunctualityTrend:
        rate_delta = None
        if current.punctuality_rate is not None and previous.punctuality_rate is not None:
            rate_delta = current.punctuality_rate - previous.punctuality_rate
        return PunctualityTrend(
            current=current,
            previous=previous,
            previous_from=previous_from,
            previous_to=previous_to,
            rate_delta=rate_delta,
            on_time_delta=current.on_time - previous.on_time,
            late_delta=current.late - previous.late,
        )

    def rate(self, stats: PunctualityStats) -> Optional[Rating]:
        """Band a punctuality rate; None when nothing was assessable."""
        if stats.punctuality_rate is None:
            return None
        percent = stats.punctuality_rate * 100
        if percent >= self.config.excellent_rate:
            return Rating.EXCELLENT
        if percent >= self.config.good_rate:
            return Rating.GOOD
        if percent >= self.config.average_rate:
            return Rating.AVERAGE
        return Rating.POOR
