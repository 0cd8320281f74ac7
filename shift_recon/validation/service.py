"""Schedule Validation Service: snapshots existing schedules and runs the detector."""

from typing import Optional

from shift_recon.conflicts.detector import ConflictDetector
from shift_recon.models.conflict import ValidationResult
from shift_recon.models.schedule import DraftInput, ScheduleDraft
from shift_recon.repositories.store import ScheduleRepository


class ScheduleValidationService:
    """Binds the pure detector to a schedule read-repository."""

    def __init__(
        self,
        schedule_repository: ScheduleRepository,
        detector: Optional[ConflictDetector] = None,
    ):
        self.schedule_repository = schedule_repository
        self.detector = detector or ConflictDetector()

    def validate(
        self, draft: ScheduleDraft, exclude_id: Optional[str] = None
    ) -> ValidationResult:
        """
        Validate a complete draft. Raises RepositoryUnavailableError if the
        existing schedules cannot be fetched.
        """
        existing = self.schedule_repository.for_worker_on(
            draft.worker_id, draft.span.date
        )
        return self.detector.validate(draft, existing, exclude_id=exclude_id)

    async def avalidate(self, draft_input: DraftInput) -> ValidationResult:
        """Coroutine form consumed by the ValidationCoordinator."""
        return self.validate(draft_input.to_draft(), exclude_id=draft_input.exclude_id)
