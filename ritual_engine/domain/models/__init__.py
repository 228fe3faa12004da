"""Domain models package."""

from .ritual import (
    RitualPhase,
    BondType,
    Approach,
    SessionStatus,
    VowCategory,
    VowDuration,
)
from .session import SessionEntry, VoiceValidation, BehavioralVow
from .achievement import Achievement
from .ledger import LedgerSnapshot, RecordResult, AchievementStatus
from .content import Script, ScriptKey

__all__ = [
    "RitualPhase",
    "BondType",
    "Approach",
    "SessionStatus",
    "VowCategory",
    "VowDuration",
    "SessionEntry",
    "VoiceValidation",
    "BehavioralVow",
    "Achievement",
    "LedgerSnapshot",
    "RecordResult",
    "AchievementStatus",
    "Script",
    "ScriptKey",
]
