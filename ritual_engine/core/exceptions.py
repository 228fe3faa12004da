"""
Custom exception hierarchy for the ritual engine.

All application exceptions inherit from RitualEngineError.
"""


class RitualEngineError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(RitualEngineError):
    """Invalid or missing configuration."""

    pass


class ValidationError(RitualEngineError):
    """Input validation failed."""

    pass


class ContentError(RitualEngineError):
    """Content catalog could not be loaded or is malformed."""

    pass


# =============================================================================
# Session Errors
# =============================================================================


class SessionError(RitualEngineError):
    """Session-related error."""

    pass


class SessionAlreadyActiveError(SessionError):
    """A ritual session is already in progress.

    Only one session may be active at a time; the caller has to complete
    or abandon the current one first.
    """

    pass


class NoActiveSessionError(SessionError):
    """Operation requires an active session but none is in progress."""

    pass


class PhaseMismatchError(SessionError):
    """Phase supplied by the caller differs from the engine's current phase."""

    def __init__(self, message: str, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(message)


class InvalidPhaseForOperationError(SessionError):
    """Operation is not legal in the current phase."""

    pass


# =============================================================================
# Persistence Errors
# =============================================================================


class PersistenceError(RitualEngineError):
    """Reading or writing the metrics ledger failed."""

    pass
