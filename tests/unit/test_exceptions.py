"""Tests for exception hierarchy."""

import pytest


def test_exception_hierarchy():
    """All exceptions inherit from RitualEngineError."""
    from ritual_engine.core.exceptions import (
        ConfigurationError,
        ContentError,
        InvalidPhaseForOperationError,
        NoActiveSessionError,
        PersistenceError,
        PhaseMismatchError,
        RitualEngineError,
        SessionAlreadyActiveError,
        SessionError,
        ValidationError,
    )

    assert issubclass(ConfigurationError, RitualEngineError)
    assert issubclass(ValidationError, RitualEngineError)
    assert issubclass(ContentError, RitualEngineError)
    assert issubclass(PersistenceError, RitualEngineError)
    assert issubclass(SessionError, RitualEngineError)
    assert issubclass(SessionAlreadyActiveError, SessionError)
    assert issubclass(NoActiveSessionError, SessionError)
    assert issubclass(PhaseMismatchError, SessionError)
    assert issubclass(InvalidPhaseForOperationError, SessionError)


def test_exceptions_can_be_raised():
    """Exceptions can be raised and caught."""
    from ritual_engine.core.exceptions import NoActiveSessionError, SessionError

    with pytest.raises(SessionError):
        raise NoActiveSessionError("No ritual session is active")


def test_exception_keeps_message():
    from ritual_engine.core.exceptions import PersistenceError

    error = PersistenceError("disk full")

    assert error.message == "disk full"
    assert str(error) == "disk full"


def test_phase_mismatch_carries_phases():
    """PhaseMismatchError exposes both phases for the UI."""
    from ritual_engine.core.exceptions import PhaseMismatchError

    error = PhaseMismatchError("wrong phase", expected="recognition", actual="liberation")

    assert error.expected == "recognition"
    assert error.actual == "liberation"
    assert error.message == "wrong phase"
