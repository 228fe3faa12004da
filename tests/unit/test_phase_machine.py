"""Tests for the phase state machine."""

import pytest

from ritual_engine.core.config import PhasesConfig, PhaseTimingConfig
from ritual_engine.core.exceptions import (
    InvalidPhaseForOperationError,
    NoActiveSessionError,
)
from ritual_engine.domain.models.ritual import CONTENT_PHASES, RitualPhase
from ritual_engine.services.phase_machine import PhaseStateMachine


@pytest.fixture
def machine(scheduler, clock):
    return PhaseStateMachine(scheduler=scheduler, phases_config=PhasesConfig(), clock=clock)


def walk_to(machine, phase):
    while machine.phase != phase:
        machine.advance()


class TestAdvance:
    """Tests for advance()."""

    def test_starts_idle(self, machine):
        assert machine.phase == RitualPhase.IDLE
        assert not machine.is_active

    def test_visits_every_phase_in_order(self, machine):
        """advance() from idle walks the fixed order with no skips or repeats."""
        visited = []
        machine.advance()
        while not machine.phase.is_terminal:
            visited.append(machine.phase)
            machine.advance()

        assert visited == CONTENT_PHASES
        assert machine.phase == RitualPhase.COMPLETED

    def test_advance_from_terminal_resets_to_idle(self, machine):
        walk_to(machine, RitualPhase.COMPLETED)

        assert machine.advance() == RitualPhase.IDLE

    def test_listener_receives_transitions(self, machine):
        seen = []
        machine.add_listener(lambda prev, new: seen.append((prev, new)))

        machine.advance()
        machine.advance()

        assert seen == [
            (RitualPhase.IDLE, RitualPhase.PREPARATION),
            (RitualPhase.PREPARATION, RitualPhase.BREATHING),
        ]


class TestAbandonAndComplete:
    """Tests for terminal transitions."""

    def test_abandon_from_any_content_phase(self, scheduler, clock):
        for phase in CONTENT_PHASES:
            machine = PhaseStateMachine(scheduler=scheduler, clock=clock)
            walk_to(machine, phase)

            assert machine.abandon() == RitualPhase.ABANDONED

    def test_abandon_when_idle_raises(self, machine):
        with pytest.raises(NoActiveSessionError):
            machine.abandon()

    def test_complete_from_renewal(self, machine):
        walk_to(machine, RitualPhase.RENEWAL)

        assert machine.complete() == RitualPhase.COMPLETED
        assert machine.progress == 1.0

    def test_complete_from_other_phase_raises(self, machine):
        walk_to(machine, RitualPhase.SEALING)

        with pytest.raises(InvalidPhaseForOperationError):
            machine.complete()

        assert machine.phase == RitualPhase.SEALING

    def test_complete_when_idle_raises(self, machine):
        with pytest.raises(NoActiveSessionError):
            machine.complete()


class TestProgress:
    """Tests for the progress fraction."""

    def test_progress_is_ordinal_fraction(self, machine):
        assert machine.progress == 0.0

        machine.advance()
        assert machine.progress == pytest.approx(1 / 9)

        walk_to(machine, RitualPhase.RENEWAL)
        assert machine.progress == 1.0

    def test_abandoned_progress_is_zero(self, machine):
        walk_to(machine, RitualPhase.CUTTING)
        machine.abandon()

        assert machine.progress == 0.0


class TestTimer:
    """Tests for per-phase dwell timers."""

    def test_auto_advance_phase_moves_on_when_timer_expires(self, machine, scheduler):
        machine.advance()  # preparation: 60s, auto-advance

        scheduler.advance(59)
        assert machine.phase == RitualPhase.PREPARATION

        scheduler.advance(1)
        assert machine.phase == RitualPhase.BREATHING

    def test_auto_advance_chains_through_timed_phases(self, machine, scheduler):
        machine.advance()

        # preparation 60 + breathing 120 + evocation 180
        scheduler.advance(360)

        assert machine.phase == RitualPhase.RECOGNITION

    def test_manual_phase_stops_timer_and_waits(self, machine, scheduler):
        walk_to(machine, RitualPhase.RECOGNITION)

        scheduler.advance(301)

        assert machine.phase == RitualPhase.RECOGNITION
        assert machine.timer_expired
        assert not machine.timer_running

    def test_transition_cancels_previous_timer(self, machine, scheduler):
        machine.advance()
        first_timer = scheduler.pending[0]

        machine.advance()

        assert first_timer.cancelled
        assert len(scheduler.pending) == 1

    def test_stale_callback_is_ignored(self, machine, scheduler):
        machine.advance()
        stale = scheduler.pending[0]
        machine.advance()

        stale.callback()

        assert machine.phase == RitualPhase.BREATHING

    def test_terminal_states_have_no_timer(self, machine, scheduler):
        walk_to(machine, RitualPhase.RENEWAL)
        machine.complete()

        assert scheduler.pending == []

    def test_last_phase_never_auto_advances(self, scheduler, clock):
        """An auto-advance renewal timer still waits for complete()."""
        config = PhasesConfig(
            renewal=PhaseTimingConfig(max_dwell_seconds=10, auto_advance=True)
        )
        machine = PhaseStateMachine(scheduler=scheduler, phases_config=config, clock=clock)
        walk_to(machine, RitualPhase.RENEWAL)

        scheduler.advance(11)

        assert machine.phase == RitualPhase.RENEWAL
        assert machine.timer_expired
        assert machine.complete() == RitualPhase.COMPLETED

    def test_phase_without_dwell_time_has_no_timer(self, scheduler, clock):
        config = PhasesConfig(preparation=PhaseTimingConfig(max_dwell_seconds=0))
        machine = PhaseStateMachine(scheduler=scheduler, phases_config=config, clock=clock)

        machine.advance()

        assert not machine.timer_running
        assert machine.timer_remaining is None


class TestPauseResume:
    """Tests for pause()/resume()."""

    def test_pause_freezes_timer(self, machine, scheduler):
        machine.advance()
        scheduler.advance(20)

        machine.pause()
        scheduler.advance(600)

        assert machine.is_paused
        assert machine.phase == RitualPhase.PREPARATION
        assert machine.timer_remaining == pytest.approx(40)

    def test_resume_continues_with_remaining_time(self, machine, scheduler):
        machine.advance()
        scheduler.advance(20)
        machine.pause()
        scheduler.advance(600)

        machine.resume()
        scheduler.advance(39)
        assert machine.phase == RitualPhase.PREPARATION

        scheduler.advance(1)
        assert machine.phase == RitualPhase.BREATHING

    def test_resume_when_not_paused_is_noop(self, machine, scheduler):
        machine.advance()

        machine.resume()

        assert not machine.is_paused
        assert len(scheduler.pending) == 1

    def test_pause_does_not_change_phase(self, machine):
        walk_to(machine, RitualPhase.LIBERATION)

        machine.pause()

        assert machine.phase == RitualPhase.LIBERATION

    def test_transition_while_paused_defers_new_timer(self, machine, scheduler):
        machine.advance()
        machine.pause()

        machine.advance()

        assert machine.phase == RitualPhase.BREATHING
        assert scheduler.pending == []

        machine.resume()
        scheduler.advance(120)
        assert machine.phase == RitualPhase.EVOCATION

    def test_reset_clears_pause_and_timer(self, machine, scheduler):
        machine.advance()
        machine.pause()

        machine.reset()

        assert machine.phase == RitualPhase.IDLE
        assert not machine.is_paused
        assert scheduler.pending == []
