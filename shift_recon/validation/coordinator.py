"""
Validation Coordinator: turns a stream of form edits into as few
validations as possible.

One coordinator per schedule form being edited; instances are never shared.

Rules:
  - Incomplete drafts cancel outstanding work and emit a neutral result
  - Complete drafts are fingerprinted; a repeat of the latest accepted
    fingerprint is suppressed
  - submit() is debounced: only a draft left unchanged for the quiet period
    is validated, earlier ones are dropped, not queued
  - A newer fingerprint cancels whatever is pending or in flight, and a
    result that still arrives for an older generation is discarded
  - validate_now() skips the debounce but keeps de-duplication
  - A failing validation surfaces once as a validation_error warning and is
    not retried; the next edit retries naturally
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from shift_recon.models.config import CoordinatorConfig
from shift_recon.models.conflict import (
    Conflict,
    ConflictKind,
    Severity,
    ValidationResult,
)
from shift_recon.models.schedule import DraftInput

logger = logging.getLogger(__name__)

ValidateFn = Callable[[DraftInput], Awaitable[ValidationResult]]


def failure_result(fingerprint: Optional[str]) -> ValidationResult:
    return ValidationResult(
        conflicts=[Conflict(
            kind=ConflictKind.VALIDATION_ERROR,
            severity=Severity.WARNING,
            message="Validation could not be completed",
        )],
        is_valid=False,
        fingerprint=fingerprint,
    )


class ValidationCoordinator:
    """
    Single-writer state machine around a validation coroutine.

    State is mutated only from the event loop that drives it. Suspension
    happens only on the debounce sleep and while awaiting ``validate_fn``.
    """

    def __init__(
        self,
        validate_fn: ValidateFn,
        config: Optional[CoordinatorConfig] = None,
        on_result: Optional[Callable[[ValidationResult], None]] = None,
    ):
        self._validate_fn = validate_fn
        self.config = config or CoordinatorConfig()
        self._on_result = on_result

        self._fingerprint: Optional[str] = None     # Latest accepted complete draft
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._debouncing = False
        self._latest: Optional[ValidationResult] = None
        self.calls = 0                               # validate_fn invocations

    @property
    def latest(self) -> Optional[ValidationResult]:
        """The last result emitted, if any."""
        return self._latest

    @property
    def pending(self) -> bool:
        """True while a validation is scheduled or in flight."""
        return self._task is not None and not self._task.done()

    def submit(self, draft_input: DraftInput) -> None:
        """Record a form edit. Must be called from within a running event loop."""
        if not draft_input.is_complete():
            self._reset()
            self._emit(ValidationResult.neutral())
            return

        fingerprint = draft_input.fingerprint()
        if fingerprint == self._fingerprint:
            logger.debug("Suppressed repeat validation %s", fingerprint[:12])
            return

        self._schedule(draft_input, fingerprint, self.config.debounce_seconds)

    async def validate_now(self, draft_input: DraftInput) -> Optional[ValidationResult]:
        """
        Validate immediately, e.g. on an explicit submit.

        Returns the result, or None if a newer edit superseded this call
        before it completed.
        """
        if not draft_input.is_complete():
            self._reset()
            result = ValidationResult.neutral()
            self._emit(result)
            return result

        fingerprint = draft_input.fingerprint()
        if fingerprint == self._fingerprint:
            if self.pending and not self._debouncing:
                return await self._await_task(self._task)
            if not self.pending and self._latest is not None:
                if self._latest.fingerprint == fingerprint:
                    return self._latest

        task = self._schedule(draft_input, fingerprint, 0)
        return await self._await_task(task)

    async def flush(self) -> None:
        """Wait until no validation is scheduled or in flight."""
        while self.pending:
            await asyncio.wait({self._task})

    def close(self) -> None:
        """Cancel outstanding work; call when the form is torn down."""
        self._reset()

    # --- internals ---

    def _schedule(
        self, draft_input: DraftInput, fingerprint: str, delay: float
    ) -> asyncio.Task:
        self._cancel_task()
        self._generation += 1
        self._fingerprint = fingerprint
        self._debouncing = delay > 0
        self._task = asyncio.get_running_loop().create_task(
            self._run(draft_input, fingerprint, self._generation, delay)
        )
        return self._task

    async def _run(
        self,
        draft_input: DraftInput,
        fingerprint: str,
        generation: int,
        delay: float,
    ) -> Optional[ValidationResult]:
        if delay > 0:
            await asyncio.sleep(delay)
            if generation != self._generation:
                return None
            self._debouncing = False

        self.calls += 1
        try:
            result = await self._validate_fn(draft_input)
        except Exception:
            if generation != self._generation:
                return None
            logger.warning(
                "Validation failed for draft %s", fingerprint[:12], exc_info=True
            )
            # Forget the fingerprint so the same draft can be retried
            self._fingerprint = None
            result = failure_result(fingerprint)
            self._emit(result)
            return result

        if generation != self._generation:
            logger.debug("Dropped stale validation result %s", fingerprint[:12])
            return None

        result = result.model_copy(update={"fingerprint": fingerprint})
        self._emit(result)
        return result

    async def _await_task(self, task: asyncio.Task) -> Optional[ValidationResult]:
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                return None     # Superseded by a newer edit
            raise

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._debouncing = False

    def _reset(self) -> None:
        self._cancel_task()
        self._generation += 1
        self._fingerprint = None

    def _emit(self, result: ValidationResult) -> None:
        self._latest = result
        if self._on_result is not None:
            self._on_result(result)
