"""
Comparison Service: fetches snapshots, reconciles them and builds reports.

Updated by: nothing (read-only)
Queried by: the comparison and missing-timesheet endpoints
"""

import logging
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional

from shift_recon.analytics.punctuality import PunctualityAggregator, previous_range
from shift_recon.models.analytics import ComparisonReport
from shift_recon.models.comparison import ComparisonRecord, MatchStatus, MissingTimesheet
from shift_recon.reconciliation.matcher import PlannedActualMatcher, missing_timesheets
from shift_recon.repositories.store import ScheduleRepository, TimesheetRepository

logger = logging.getLogger(__name__)


class ComparisonService:
    """
    Each call takes one snapshot per repository and works only on that.
    RepositoryUnavailableError from either repository propagates to the caller.
    """

    def __init__(
        self,
        schedule_repository: ScheduleRepository,
        timesheet_repository: TimesheetRepository,
        matcher: PlannedActualMatcher,
        aggregator: Optional[PunctualityAggregator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.schedule_repository = schedule_repository
        self.timesheet_repository = timesheet_repository
        self.matcher = matcher
        self.aggregator = aggregator or PunctualityAggregator()
        self._clock = clock or datetime.now

    def today(self) -> date:
        return self._clock().date()

    def compare(
        self,
        date_from: date,
        date_to: date,
        worker_ids: Optional[Iterable[str]] = None,
        agency_ids: Optional[Iterable[str]] = None,
    ) -> List[ComparisonRecord]:
        worker_ids = list(worker_ids) if worker_ids is not None else None
        agency_ids = list(agency_ids) if agency_ids is not None else None

        schedules = self.schedule_repository.find(
            worker_ids=worker_ids,
            agency_ids=agency_ids,
            date_from=date_from,
            date_to=date_to,
        )
        timesheets = self.timesheet_repository.find(
            worker_ids=worker_ids,
            agency_ids=agency_ids,
            date_from=date_from,
            date_to=date_to,
        )
        return self.matcher.compare(
            schedules,
            timesheets,
            date_from,
            date_to,
            worker_ids=worker_ids,
            agency_ids=agency_ids,
            today=self.today(),
        )

    def report(
        self,
        date_from: date,
        date_to: date,
        worker_ids: Optional[Iterable[str]] = None,
        agency_ids: Optional[Iterable[str]] = None,
        period_schedule: Optional[str] = None,
        anomalies_only: bool = False,
        include_trend: bool = True,
    ) -> ComparisonReport:
        """
        Full comparison report. Aggregates always cover every record;
        ``anomalies_only`` only trims the returned record list.
        """
        records = self.compare(date_from, date_to, worker_ids, agency_ids)
        agg = self.aggregator

        summary = agg.summarize(records)
        by_agency = agg.by_agency(records)

        trend = None
        agency_trends = {}
        previous = None
        if include_trend:
            prev_from, prev_to = previous_range(date_from, date_to)
            previous = self.compare(prev_from, prev_to, worker_ids, agency_ids)
            trend = agg.trend(summary, agg.summarize(previous), prev_from, prev_to)
            agency_trends = agg.agency_trends(records, previous, prev_from, prev_to)

        if summary.data_quality_issues:
            logger.warning(
                "%d duplicate record(s) ignored between %s and %s",
                summary.data_quality_issues, date_from, date_to,
            )

        shown = records
        if anomalies_only:
            shown = [r for r in records if r.match_status != MatchStatus.ON_TIME]

        return ComparisonReport(
            date_from=date_from,
            date_to=date_to,
            records=shown,
            summary=summary,
            rating=agg.rate(summary),
            by_agency=by_agency,
            agency_ratings={k: agg.rate(v) for k, v in by_agency.items()},
            agency_trends=agency_trends,
            by_worker=agg.by_worker(records),
            by_weekday=agg.by_weekday(records),
            periods=agg.by_period(
                records, date_from, date_to, period_schedule, history=previous
            ),
            trend=trend,
        )

    def missing(
        self,
        date_from: date,
        date_to: date,
        agency_ids: Optional[Iterable[str]] = None,
        worker_ids: Optional[Iterable[str]] = None,
    ) -> List[MissingTimesheet]:
        records = self.compare(date_from, date_to, worker_ids, agency_ids)
        return missing_timesheets(records, today=self.today())
