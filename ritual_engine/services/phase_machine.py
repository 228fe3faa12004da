"""
Phase state machine for a ritual session.

States, in order:

    idle -> preparation -> breathing -> evocation -> recognition
         -> liberation -> returning -> cutting -> sealing -> renewal
         -> completed

plus `abandoned`, reachable from any non-terminal state other than idle.
Both terminal states are absorbing; advance() from a terminal state resets
the machine to idle so it can host a fresh session.

Each content phase may carry a dwell timer. When it expires an
auto-advance phase moves on by itself; any other phase just stops its
timer and waits. The last phase always waits, since only complete() may
leave it. The timer is cancelled on every transition, pause,
abandon and complete, so a stale callback can never fire into a phase it
does not describe.
"""

from datetime import datetime
from typing import Callable, List, Optional

import structlog

from ritual_engine.core.clock import Clock, Scheduler, SystemClock, TimerHandle
from ritual_engine.core.config import PhasesConfig
from ritual_engine.core.exceptions import (
    InvalidPhaseForOperationError,
    NoActiveSessionError,
    RitualEngineError,
)
from ritual_engine.domain.models.ritual import (
    LAST_PHASE,
    ORDINAL_PHASES,
    RitualPhase,
    next_phase,
)

log = structlog.get_logger(__name__)

TransitionListener = Callable[[RitualPhase, RitualPhase], None]


class PhaseStateMachine:
    """Owns the current phase, the pause flag and the phase timer."""

    def __init__(
        self,
        scheduler: Scheduler,
        phases_config: Optional[PhasesConfig] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            scheduler: Source of cancellable deferred callbacks
            phases_config: Per-phase dwell time and auto-advance flags
            clock: Time source used to track remaining timer time across pauses
        """
        self.scheduler = scheduler
        self.phases_config = phases_config or PhasesConfig()
        self.clock = clock or SystemClock()

        self._phase = RitualPhase.IDLE
        self._paused = False
        self._listeners: List[TransitionListener] = []

        self._timer: Optional[TimerHandle] = None
        self._timer_started_at: Optional[datetime] = None
        self._timer_remaining: Optional[float] = None
        self._timer_expired = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def phase(self) -> RitualPhase:
        return self._phase

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def is_active(self) -> bool:
        """A session is running: neither idle nor terminal."""
        return self._phase != RitualPhase.IDLE and not self._phase.is_terminal

    @property
    def timer_running(self) -> bool:
        return self._timer is not None

    @property
    def timer_expired(self) -> bool:
        """Dwell time of the current (non auto-advance) phase ran out."""
        return self._timer_expired

    @property
    def timer_remaining(self) -> Optional[float]:
        """Seconds left on the current phase timer, None if it has none."""
        if self._timer_remaining is None:
            return None
        if self._timer is None or self._timer_started_at is None:
            return self._timer_remaining
        elapsed = (self.clock.now() - self._timer_started_at).total_seconds()
        return max(self._timer_remaining - elapsed, 0.0)

    @property
    def progress(self) -> float:
        """Fraction of the ritual done: ordinal index / (ordinal count - 1)."""
        if self._phase == RitualPhase.COMPLETED:
            return 1.0
        if self._phase == RitualPhase.ABANDONED:
            return 0.0
        return self._phase.order / (len(ORDINAL_PHASES) - 1)

    def add_listener(self, listener: TransitionListener) -> None:
        """Register a callback invoked as listener(previous, new) after each transition."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def advance(self) -> RitualPhase:
        """Move to the successor phase.

        From a terminal state this resets to idle.

        Returns:
            The new current phase
        """
        if self._phase.is_terminal:
            self.reset()
            return self._phase
        self._transition(next_phase(self._phase))
        return self._phase

    def abandon(self) -> RitualPhase:
        """Abandon the running session from any non-terminal phase.

        Raises:
            NoActiveSessionError: Machine is idle
        """
        if self._phase == RitualPhase.IDLE:
            raise NoActiveSessionError("Cannot abandon: no session is running")
        if self._phase.is_terminal:
            return self._phase
        self._transition(RitualPhase.ABANDONED)
        return self._phase

    def complete(self) -> RitualPhase:
        """Finish the ritual. Only legal from the last ordinal phase.

        Raises:
            NoActiveSessionError: Machine is idle
            InvalidPhaseForOperationError: Current phase is not the last one
        """
        if self._phase == RitualPhase.IDLE:
            raise NoActiveSessionError("Cannot complete: no session is running")
        if self._phase != LAST_PHASE:
            raise InvalidPhaseForOperationError(
                f"Cannot complete from phase '{self._phase.value}', "
                f"only from '{LAST_PHASE.value}'"
            )
        self._transition(RitualPhase.COMPLETED)
        return self._phase

    def reset(self) -> None:
        """Return to idle, dropping any timer and pause state."""
        self._cancel_timer()
        self._timer_remaining = None
        self._timer_expired = False
        self._paused = False
        self._phase = RitualPhase.IDLE

    # ------------------------------------------------------------------
    # Pause / resume
    # ------------------------------------------------------------------

    def pause(self) -> None:
        """Freeze the phase timer without changing phase."""
        if self._paused:
            return
        self._timer_remaining = self.timer_remaining
        self._cancel_timer()
        self._paused = True
        log.info("phase_paused", phase=self._phase.value, remaining=self._timer_remaining)

    def resume(self) -> None:
        """Unfreeze the phase timer. No-op when not paused."""
        if not self._paused:
            return
        self._paused = False
        if self._timer_remaining is not None and not self._timer_expired:
            self._schedule(self._timer_remaining)
        log.info("phase_resumed", phase=self._phase.value, remaining=self._timer_remaining)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(self, new_phase: RitualPhase) -> None:
        previous = self._phase
        self._cancel_timer()
        self._timer_remaining = None
        self._timer_expired = False
        self._phase = new_phase

        if not new_phase.is_terminal:
            self._arm_timer(new_phase)

        log.info("phase_advanced", previous=previous.value, phase=new_phase.value)

        for listener in self._listeners:
            listener(previous, new_phase)

    def _arm_timer(self, phase: RitualPhase) -> None:
        timing = self.phases_config.for_phase(phase.value)
        if timing.max_dwell_seconds <= 0:
            return
        self._timer_remaining = timing.max_dwell_seconds
        # While paused the timer stays armed but unscheduled until resume()
        if not self._paused:
            self._schedule(timing.max_dwell_seconds)

    def _schedule(self, delay_seconds: float) -> None:
        phase = self._phase
        self._timer_started_at = self.clock.now()
        self._timer = self.scheduler.call_later(
            delay_seconds, lambda: self._on_timer_expired(phase)
        )

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._timer_started_at = None

    def _on_timer_expired(self, phase: RitualPhase) -> None:
        if phase != self._phase or self._paused:
            # Stale callback for a phase we already left
            return

        self._timer = None
        self._timer_started_at = None
        self._timer_remaining = 0.0
        timing = self.phases_config.for_phase(phase.value)
        log.info("phase_timer_expired", phase=phase.value, auto_advance=timing.auto_advance)

        # Leaving the last phase needs complete(), which carries the final rating
        if not timing.auto_advance or phase == LAST_PHASE:
            self._timer_expired = True
            return

        try:
            self.advance()
        except RitualEngineError as e:
            log.error("phase_auto_advance_failed", phase=phase.value, error=e.message)
