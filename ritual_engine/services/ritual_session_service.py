"""
Ritual session orchestration service.

Main entry point for the UI. Composes the phase state machine, the single
active session entry, the voice validation scorer and the metrics ledger
behind one surface:

    start -> complete_phase (xN) -> record_vow -> complete
                                  \\-> abandon (from any phase)

Only one session can be active at a time. Finalized entries are handed to
the metrics ledger by value and the engine returns to idle.
"""

from typing import List, Optional

import structlog

from ritual_engine.core.clock import AsyncioScheduler, Clock, Scheduler, SystemClock
from ritual_engine.core.config import RitualConfig
from ritual_engine.core.exceptions import (
    InvalidPhaseForOperationError,
    NoActiveSessionError,
    PhaseMismatchError,
    SessionAlreadyActiveError,
    ValidationError,
)
from ritual_engine.core.logging import bind_context, clear_context
from ritual_engine.domain.models.content import Script
from ritual_engine.domain.models.ledger import RecordResult
from ritual_engine.domain.models.ritual import (
    LAST_PHASE,
    Approach,
    BondType,
    RitualPhase,
    SessionStatus,
)
from ritual_engine.domain.models.session import (
    INTENSITY_MAX,
    INTENSITY_MIN,
    BehavioralVow,
    SessionEntry,
    VoiceValidation,
)
from ritual_engine.services.content_catalog import ContentCatalog
from ritual_engine.services.metrics_service import MetricsLedgerService
from ritual_engine.services.phase_machine import PhaseStateMachine
from ritual_engine.services.voice_validation_service import VoiceValidationScorer

log = structlog.get_logger(__name__)


class RitualSessionService:
    """Orchestrates a guided ritual session.

    The service is the sole mutator of the active session slot. All public
    operations run to completion on the caller's thread; the only deferred
    work is the phase timer, which runs on the same thread via the
    scheduler.
    """

    def __init__(
        self,
        metrics: MetricsLedgerService,
        catalog: ContentCatalog,
        config: Optional[RitualConfig] = None,
        scorer: Optional[VoiceValidationScorer] = None,
        clock: Optional[Clock] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        """
        Initialize the ritual engine.

        Args:
            metrics: Ledger that receives finalized sessions
            catalog: Script lookup for the current phase
            config: Ritual configuration (defaults if None)
            scorer: Voice scorer (built from config.voice if None)
            clock: Time source (system clock if None)
            scheduler: Timer scheduler (running asyncio loop if None)
        """
        self.metrics = metrics
        self.catalog = catalog
        self.config = config or RitualConfig()
        self.scorer = scorer or VoiceValidationScorer(self.config.voice)
        self.clock = clock or SystemClock()

        self.machine = PhaseStateMachine(
            scheduler=scheduler or AsyncioScheduler(),
            phases_config=self.config.phases,
            clock=self.clock,
        )
        self.machine.add_listener(self._on_phase_changed)

        self._active: Optional[SessionEntry] = None
        self.last_result: Optional[RecordResult] = None

    # ------------------------------------------------------------------
    # Read-only state for the UI
    # ------------------------------------------------------------------

    @property
    def active_session(self) -> Optional[SessionEntry]:
        """Copy of the active entry, None when idle."""
        return self._active.model_copy(deep=True) if self._active else None

    @property
    def has_active_session(self) -> bool:
        return self._active is not None

    @property
    def current_phase(self) -> RitualPhase:
        return self.machine.phase

    @property
    def progress(self) -> float:
        return self.machine.progress

    @property
    def is_paused(self) -> bool:
        return self.machine.is_paused

    def session_duration(self) -> float:
        """Seconds since the active session started (0 when idle)."""
        if self._active is None:
            return 0.0
        return (self.clock.now() - self._active.created_at).total_seconds()

    def current_script(self) -> Script:
        """Script for the active session's current phase."""
        entry = self._require_active()
        return self.catalog.get_script(entry.bond_type, entry.approach, self.machine.phase)

    def suggested_vows(self) -> List[BehavioralVow]:
        entry = self._require_active()
        return self.catalog.suggested_vows(entry.bond_type, entry.approach)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(
        self,
        bond_type: BondType,
        approach: Approach,
        label: str,
        intensity_before: int,
        skip_preparation: Optional[bool] = None,
    ) -> str:
        """
        Start a new ritual session.

        Args:
            bond_type: Bond or emotion category
            approach: Content variant
            label: Free-text label chosen by the user
            intensity_before: Intensity rating before the ritual (1-10)
            skip_preparation: Start in breathing instead of preparation
                (defaults to config.session.skip_preparation)

        Returns:
            The new session id

        Raises:
            SessionAlreadyActiveError: Another session is in progress
            ValidationError: Intensity out of range
        """
        if self._active is not None:
            log.warning("ritual_start_rejected", active_session_id=self._active.id)
            raise SessionAlreadyActiveError(
                f"Session {self._active.id} is still in progress; "
                "complete or abandon it first"
            )
        self._check_intensity(intensity_before, "intensity_before")

        entry = SessionEntry(
            created_at=self.clock.now(),
            bond_type=bond_type,
            approach=approach,
            label=label,
            intensity_before=intensity_before,
        )
        self._active = entry
        bind_context(session_id=entry.id)

        self.machine.reset()
        self.machine.advance()
        if skip_preparation is None:
            skip_preparation = self.config.session.skip_preparation
        if skip_preparation:
            self.machine.advance()

        log.info(
            "ritual_started",
            bond_type=bond_type.value,
            approach=approach.value,
            intensity_before=intensity_before,
            phase=self.machine.phase.value,
        )
        return entry.id

    def complete_phase(
        self, phase: RitualPhase, validation: Optional[VoiceValidation] = None
    ) -> RitualPhase:
        """
        Record the outcome of a phase and advance to the next one.

        Args:
            phase: Phase the UI believes it just finished
            validation: Voice validation for reading phases

        Returns:
            The new current phase

        Raises:
            NoActiveSessionError: No session is active
            PhaseMismatchError: phase differs from the current phase (no state change)
            InvalidPhaseForOperationError: phase is the last one; use complete()
        """
        entry = self._require_active()
        current = self.machine.phase

        if phase != current:
            log.warning("phase_mismatch", expected=current.value, actual=phase.value)
            raise PhaseMismatchError(
                f"Phase '{phase.value}' is not the current phase '{current.value}'",
                expected=current.value,
                actual=phase.value,
            )
        if phase == LAST_PHASE:
            raise InvalidPhaseForOperationError(
                f"'{phase.value}' is the last phase; finish the ritual with complete()"
            )

        if validation is not None:
            if validation.phase != phase:
                validation = validation.model_copy(update={"phase": phase})
            entry.voice_validations.append(validation)
            log.info(
                "voice_validation_recorded",
                phase=phase.value,
                passed=validation.passed,
                matched=len(validation.matched_phrases),
                expected=len(validation.expected_phrases),
            )

        return self.machine.advance()

    def validate_reading(self, transcript: str) -> VoiceValidation:
        """Score a transcript against the current phase's voice anchors.

        The result is not stored; pass it to complete_phase() to record it.
        """
        entry = self._require_active()
        phase = self.machine.phase
        expected = self.catalog.required_phrases(entry.bond_type, entry.approach, phase)
        return self.scorer.score(phase, expected, transcript, validated_at=self.clock.now())

    def record_vow(self, vow: BehavioralVow) -> BehavioralVow:
        """
        Attach a behavioural vow to the active session.

        Raises:
            NoActiveSessionError: No session is active
            InvalidPhaseForOperationError: Current phase is not renewal
        """
        entry = self._require_active()
        if self.machine.phase != RitualPhase.RENEWAL:
            raise InvalidPhaseForOperationError(
                f"Vows can only be recorded during renewal, not '{self.machine.phase.value}'"
            )

        if vow.created_at is None:
            vow = vow.model_copy(update={"created_at": self.clock.now()})
        entry.vow = vow
        log.info("vow_recorded", category=vow.category.value, duration=vow.duration.value)
        return vow

    def pause(self) -> None:
        self._require_active()
        self.machine.pause()

    def resume(self) -> None:
        self._require_active()
        self.machine.resume()

    async def complete(
        self,
        intensity_after: int,
        notes: Optional[str] = None,
        vow_honored: Optional[bool] = None,
    ) -> SessionEntry:
        """
        Finish the ritual from the last phase.

        Args:
            intensity_after: Intensity rating after the ritual (1-10)
            notes: Optional free-text notes
            vow_honored: Whether the vow was honored, when already known

        Returns:
            The finalized entry

        Raises:
            NoActiveSessionError: No session is active
            InvalidPhaseForOperationError: Current phase is not the last one
            ValidationError: Intensity out of range
        """
        entry = self._require_active()
        if self.machine.phase != LAST_PHASE:
            raise InvalidPhaseForOperationError(
                f"Cannot complete from phase '{self.machine.phase.value}', "
                f"only from '{LAST_PHASE.value}'"
            )
        self._check_intensity(intensity_after, "intensity_after")

        self.machine.complete()
        entry.status = SessionStatus.COMPLETED
        entry.completed_at = self.clock.now()
        entry.intensity_after = intensity_after
        entry.notes = notes
        if vow_honored is not None and entry.vow is not None:
            entry.vow_honored = vow_honored

        log.info(
            "ritual_completed",
            intensity_before=entry.intensity_before,
            intensity_after=intensity_after,
            improvement=entry.intensity_improvement,
            validations=len(entry.voice_validations),
        )
        return await self._finalize(entry)

    async def abandon(self) -> SessionEntry:
        """
        Abandon the active ritual from any phase.

        The entry is recorded for session counting only; it never earns
        points, streak days or achievements.

        Raises:
            NoActiveSessionError: No session is active
        """
        entry = self._require_active()
        abandoned_in = self.machine.phase

        self.machine.abandon()
        entry.status = SessionStatus.ABANDONED
        entry.completed_at = self.clock.now()

        log.info("ritual_abandoned", phase=abandoned_in.value)
        return await self._finalize(entry)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _finalize(self, entry: SessionEntry) -> SessionEntry:
        finalized = entry.model_copy(deep=True)
        self._active = None
        self.machine.reset()
        try:
            self.last_result = await self.metrics.record(finalized.model_copy(deep=True))
        finally:
            clear_context()
        return finalized

    def _on_phase_changed(self, previous: RitualPhase, new_phase: RitualPhase) -> None:
        if self._active is None:
            return
        self._active.current_phase = new_phase
        self._active.phase_history.append(new_phase)

    def _require_active(self) -> SessionEntry:
        if self._active is None:
            raise NoActiveSessionError("No ritual session is active")
        return self._active

    @staticmethod
    def _check_intensity(value: int, field_name: str) -> None:
        if not INTENSITY_MIN <= value <= INTENSITY_MAX:
            raise ValidationError(
                f"{field_name} must be between {INTENSITY_MIN} and {INTENSITY_MAX}, got {value}"
            )
