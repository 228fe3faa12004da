"""Ritual engine services: phase machine, voice scoring, sessions, metrics and content."""

from ritual_engine.services.phase_machine import PhaseStateMachine
from ritual_engine.services.voice_validation_service import VoiceValidationScorer
from ritual_engine.services.content_catalog import ContentCatalog
from ritual_engine.services.metrics_service import MetricsLedgerService
from ritual_engine.services.ritual_session_service import RitualSessionService

__all__ = [
    "PhaseStateMachine",
    "VoiceValidationScorer",
    "ContentCatalog",
    "MetricsLedgerService",
    "RitualSessionService",
]
