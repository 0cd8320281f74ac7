"""
Shift Reconciliation API: FastAPI endpoints.

Exposes the engine for:
- Live and pre-submit schedule validation
- Conflict scans over existing schedules
- Planned-vs-actual comparison with punctuality summary
- Missing timesheet detection
- Threshold configuration
"""

import logging
from datetime import date, datetime
from typing import Callable, List, Optional
from uuid import uuid4

from croniter import croniter
from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, NaiveDatetime

from shift_recon.analytics.punctuality import PunctualityAggregator
from shift_recon.conflicts.detector import ConflictDetector
from shift_recon.models.config import DetectorConfig, PunctualityThresholds, ReportingConfig
from shift_recon.models.interval import MinuteTime, TimeSpan
from shift_recon.models.schedule import Schedule, ScheduleDraft, ScheduleStatus
from shift_recon.models.timesheet import Timesheet, TimesheetStatus
from shift_recon.reconciliation.matcher import PlannedActualMatcher
from shift_recon.reconciliation.service import ComparisonService
from shift_recon.repositories.store import (
    RepositoryUnavailableError,
    ScheduleRepository,
    TimesheetRepository,
)
from shift_recon.validation.coordinator import failure_result
from shift_recon.validation.service import ScheduleValidationService

logger = logging.getLogger(__name__)


# --- Request/Response Models ---

class ValidateRequest(BaseModel):
    worker_id: str
    agency_id: str
    date: date
    start: MinuteTime
    end: MinuteTime
    break_start: Optional[MinuteTime] = None
    break_end: Optional[MinuteTime] = None
    notes: Optional[str] = None
    exclude_id: Optional[str] = None


class ScheduleCreateRequest(BaseModel):
    worker_id: str
    agency_id: str
    date: date
    start: MinuteTime
    end: MinuteTime
    break_start: Optional[MinuteTime] = None
    break_end: Optional[MinuteTime] = None
    status: ScheduleStatus = ScheduleStatus.ACTIVE
    notes: Optional[str] = None
    created_by: str = "api_user"


class TimesheetIngestRequest(BaseModel):
    worker_id: str
    agency_id: str
    date: date
    clock_in: Optional[NaiveDatetime] = None
    clock_out: Optional[NaiveDatetime] = None
    break_start: Optional[NaiveDatetime] = None
    break_end: Optional[NaiveDatetime] = None
    current_status: TimesheetStatus = TimesheetStatus.NOT_STARTED


def _span_of(req) -> TimeSpan:
    return TimeSpan(
        date=req.date,
        start=req.start,
        end=req.end,
        break_start=req.break_start,
        break_end=req.break_end,
    )


def _check_range(date_from: date, date_to: date) -> None:
    if date_from > date_to:
        raise HTTPException(400, "'from' must not be after 'to'")


# --- Application Factory ---

def create_app(
    thresholds: PunctualityThresholds,
    schedule_repository: Optional[ScheduleRepository] = None,
    timesheet_repository: Optional[TimesheetRepository] = None,
    detector_config: Optional[DetectorConfig] = None,
    reporting_config: Optional[ReportingConfig] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    ``clock`` must return naive local time, like ``datetime.now``.
    """

    app = FastAPI(
        title="Shift Reconciliation API",
        description="Schedule conflict validation and planned-vs-actual reconciliation",
        version="0.1.0",
    )

    # Initialize components
    schedules = schedule_repository if schedule_repository is not None else ScheduleRepository()
    timesheets = timesheet_repository if timesheet_repository is not None else TimesheetRepository()
    detector = ConflictDetector(detector_config)
    validation = ScheduleValidationService(schedules, detector)
    matcher = PlannedActualMatcher(thresholds)
    comparison = ComparisonService(
        schedule_repository=schedules,
        timesheet_repository=timesheets,
        matcher=matcher,
        aggregator=PunctualityAggregator(reporting_config),
        clock=clock,
    )
    now = clock or datetime.now

    # Store components on app state for access in endpoints
    app.state.schedule_repository = schedules
    app.state.timesheet_repository = timesheets
    app.state.validation_service = validation
    app.state.comparison_service = comparison

    # === SCHEDULES ===

    @app.post("/schedules/validate")
    def validate_schedule(req: ValidateRequest):
        """Validate a draft against existing schedules (live or pre-submit)."""
        draft = ScheduleDraft(
            worker_id=req.worker_id,
            agency_id=req.agency_id,
            span=_span_of(req),
            notes=req.notes,
        )
        try:
            result = validation.validate(draft, exclude_id=req.exclude_id)
        except RepositoryUnavailableError:
            logger.warning("Schedule repository unavailable during validation", exc_info=True)
            result = failure_result(fingerprint=None)
        return result.model_dump(mode="json", exclude={"fingerprint"})

    @app.get("/schedules/conflicts")
    def scan_schedules(
        date_from: date = Query(alias="from"),
        date_to: date = Query(alias="to"),
        agency_id: Optional[List[str]] = Query(default=None, alias="agencyId"),
        worker_id: Optional[List[str]] = Query(default=None, alias="workerId"),
    ):
        """Double bookings, weekly overwork and short breaks among existing schedules."""
        _check_range(date_from, date_to)
        try:
            existing = schedules.find(
                worker_ids=worker_id,
                agency_ids=agency_id,
                date_from=date_from,
                date_to=date_to,
            )
        except RepositoryUnavailableError:
            logger.warning("Schedule repository unavailable during range scan", exc_info=True)
            raise HTTPException(503, "Data source temporarily unavailable")
        findings = detector.scan(existing, date_from, date_to)
        return {
            "findings": [f.model_dump(mode="json") for f in findings],
            "count": len(findings),
        }

    @app.post("/schedules")
    def create_schedule(req: ScheduleCreateRequest):
        """Manual schedule ingestion (for testing)."""
        stamp = now()
        schedule = Schedule(
            id=f"sch_{uuid4().hex[:12]}",
            worker_id=req.worker_id,
            agency_id=req.agency_id,
            span=_span_of(req),
            status=req.status,
            created_by=req.created_by,
            created_at=stamp,
            updated_at=stamp,
            notes=req.notes,
        )
        schedules.upsert(schedule)
        return {"status": "created", "id": schedule.id}

    # === TIMESHEETS ===

    @app.post("/timesheets")
    def ingest_timesheet(req: TimesheetIngestRequest):
        """Manual timesheet ingestion (for testing)."""
        timesheet = Timesheet(
            id=f"ts_{uuid4().hex[:12]}",
            updated_at=now(),
            **req.model_dump(),
        )
        timesheets.upsert(timesheet)
        return {"status": "ingested", "id": timesheet.id}

    @app.get("/timesheets/comparison")
    def get_comparison(
        date_from: date = Query(alias="from"),
        date_to: date = Query(alias="to"),
        agency_id: Optional[List[str]] = Query(default=None, alias="agencyId"),
        worker_id: Optional[List[str]] = Query(default=None, alias="workerId"),
        period: Optional[str] = None,
        anomalies_only: bool = Query(default=False, alias="anomaliesOnly"),
    ):
        """Planned vs actual records plus the punctuality summary."""
        _check_range(date_from, date_to)
        if period is not None and not croniter.is_valid(period):
            raise HTTPException(400, f"Invalid period expression: {period}")

        try:
            report = comparison.report(
                date_from,
                date_to,
                worker_ids=worker_id,
                agency_ids=agency_id,
                period_schedule=period,
                anomalies_only=anomalies_only,
            )
        except RepositoryUnavailableError:
            logger.warning("Repository unavailable during comparison", exc_info=True)
            raise HTTPException(503, "Data source temporarily unavailable")
        return report.model_dump(mode="json")

    @app.get("/timesheets/missing")
    def get_missing_timesheets(
        date_from: date = Query(alias="from"),
        date_to: date = Query(alias="to"),
        agency_id: Optional[List[str]] = Query(default=None, alias="agencyId"),
    ):
        """Past schedules with no timesheet."""
        _check_range(date_from, date_to)
        try:
            missing = comparison.missing(date_from, date_to, agency_ids=agency_id)
        except RepositoryUnavailableError:
            logger.warning("Repository unavailable during missing lookup", exc_info=True)
            raise HTTPException(503, "Data source temporarily unavailable")
        return {
            "missing_timesheets": [m.model_dump(mode="json") for m in missing],
            "count": len(missing),
        }

    # === SETTINGS ===

    @app.get("/settings/thresholds")
    def get_thresholds():
        """Current punctuality thresholds."""
        return matcher.thresholds.model_dump()

    @app.put("/settings/thresholds")
    def update_thresholds(new_thresholds: PunctualityThresholds):
        """Replace the punctuality thresholds."""
        matcher.thresholds = new_thresholds
        return new_thresholds.model_dump()

    return app
