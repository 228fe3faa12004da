"""Session domain models for ritual lifecycle management.

Core Models:
    - VoiceValidation: outcome of scoring one spoken reading
    - BehavioralVow: commitment recorded during the renewal phase
    - SessionEntry: one user-initiated pass through the ritual

Session Lifecycle:
    1. Created by RitualSessionService.start() with status IN_PROGRESS
    2. Phase history and validations grow as phases are completed
    3. Finalized as COMPLETED (from renewal) or ABANDONED (from any phase)
    4. Handed by value to the metrics ledger, then discarded by the engine

Invariant: completed_at is set if and only if status != IN_PROGRESS.
"""

from datetime import datetime, timedelta
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from ritual_engine.domain.models.ritual import (
    Approach,
    BondType,
    RitualPhase,
    SessionStatus,
    VowCategory,
    VowDuration,
)


INTENSITY_MIN = 1
INTENSITY_MAX = 10


class VoiceValidation(BaseModel):
    """Result of matching a spoken transcript against expected phrases.

    Produced by VoiceValidationScorer; one entry per phase where reading
    was required.
    """

    phase: RitualPhase
    expected_phrases: List[str] = Field(default_factory=list)
    matched_phrases: List[str] = Field(default_factory=list)
    passed: bool
    validated_at: Optional[datetime] = None

    @property
    def coverage(self) -> float:
        """Fraction of expected phrases matched (1.0 when nothing was expected)."""
        if not self.expected_phrases:
            return 1.0
        return len(self.matched_phrases) / len(self.expected_phrases)

    @property
    def missing_phrases(self) -> List[str]:
        return [p for p in self.expected_phrases if p not in self.matched_phrases]


class BehavioralVow(BaseModel):
    """Short behavioural commitment with a category and duration."""

    title: str = Field(min_length=1)
    category: VowCategory
    duration: VowDuration = VowDuration.HOURS_24
    created_at: Optional[datetime] = None

    @property
    def expires_at(self) -> Optional[datetime]:
        if self.created_at is None:
            return None
        return self.created_at + timedelta(hours=self.duration.hours)


class SessionEntry(BaseModel):
    """One guided pass through the ritual.

    Identity (id, created_at, classification, intensity_before) is fixed at
    start. Phase and result fields are written only by the engine while the
    session is in progress; the entry is treated as immutable once terminal.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    created_at: datetime
    completed_at: Optional[datetime] = None

    bond_type: BondType
    approach: Approach
    label: str = Field(description="User-chosen label, e.g. 'my ex-partner'")

    intensity_before: int = Field(ge=INTENSITY_MIN, le=INTENSITY_MAX)
    intensity_after: Optional[int] = Field(
        default=None, ge=INTENSITY_MIN, le=INTENSITY_MAX
    )

    current_phase: RitualPhase = RitualPhase.IDLE
    phase_history: List[RitualPhase] = Field(
        default_factory=list, description="Visited phases in order (append-only)"
    )

    voice_validations: List[VoiceValidation] = Field(default_factory=list)
    vow: Optional[BehavioralVow] = None
    vow_honored: Optional[bool] = None
    notes: Optional[str] = None

    status: SessionStatus = SessionStatus.IN_PROGRESS

    @property
    def is_terminal(self) -> bool:
        return self.status != SessionStatus.IN_PROGRESS

    @property
    def intensity_improvement(self) -> Optional[int]:
        """after - before; None until the session is completed."""
        if self.status != SessionStatus.COMPLETED or self.intensity_after is None:
            return None
        return self.intensity_after - self.intensity_before

    @property
    def passed_validation_count(self) -> int:
        return sum(1 for v in self.voice_validations if v.passed)

    @property
    def all_validations_passed(self) -> bool:
        """True when no validated reading failed (vacuously true without readings)."""
        return all(v.passed for v in self.voice_validations)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.created_at).total_seconds()
