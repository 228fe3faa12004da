"""Metrics ledger models.

LedgerSnapshot is the flat, persisted record of rollups derived from
finalized sessions. It never holds raw session entries.

Level follows the cumulative points: every EXPERIENCE_PER_LEVEL points
earn one level, starting at level 1.

Invariants:
    - best_streak >= current_streak
    - total_points never decreases
    - unlocked achievements are never removed
"""

from datetime import date
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, Field

from ritual_engine.domain.models.achievement import Achievement

EXPERIENCE_PER_LEVEL = 100


class LedgerSnapshot(BaseModel):
    """Counters and unlocked achievements, as saved to and loaded from storage."""

    total_sessions: int = Field(default=0, ge=0, description="Sessions started")
    completed_sessions: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    best_streak: int = Field(default=0, ge=0)
    total_points: int = Field(default=0, ge=0)
    unlocked_achievements: Set[Achievement] = Field(default_factory=set)
    last_completed_date: Optional[date] = None

    # Backing counters for derived stats
    intensity_improvement_total: int = 0
    vows_total: int = Field(default=0, ge=0)
    vows_honored: int = Field(default=0, ge=0)
    total_time_seconds: float = Field(
        default=0.0, ge=0, description="Time spent in completed rituals"
    )
    completions_by_day: Dict[date, int] = Field(
        default_factory=dict, description="Completed sessions per calendar day"
    )

    @property
    def completion_rate(self) -> float:
        if self.total_sessions == 0:
            return 0.0
        return self.completed_sessions / self.total_sessions

    @property
    def average_intensity_improvement(self) -> float:
        if self.completed_sessions == 0:
            return 0.0
        return self.intensity_improvement_total / self.completed_sessions

    @property
    def vow_completion_rate(self) -> float:
        if self.vows_total == 0:
            return 0.0
        return self.vows_honored / self.vows_total

    @property
    def level(self) -> int:
        return self.total_points // EXPERIENCE_PER_LEVEL + 1

    @property
    def experience_to_next_level(self) -> int:
        return self.level * EXPERIENCE_PER_LEVEL - self.total_points

    @property
    def average_session_minutes(self) -> float:
        if self.completed_sessions == 0:
            return 0.0
        return self.total_time_seconds / 60 / self.completed_sessions


class RecordResult(BaseModel):
    """What a single recorded session earned."""

    session_points: int = 0
    new_achievements: List[Achievement] = Field(default_factory=list)
    achievement_points: int = 0
    level_up: bool = False

    @property
    def total_points(self) -> int:
        return self.session_points + self.achievement_points


class AchievementStatus(BaseModel):
    """Achievement as presented to the UI."""

    achievement: Achievement
    title: str
    description: str
    points_reward: int
    unlocked: bool
