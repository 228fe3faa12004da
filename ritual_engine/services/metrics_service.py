"""
Metrics & achievement ledger.

Consumes finalized session entries and maintains the derived rollups:
session counters, calendar-day streaks, cumulative points, per-day
completion counts and unlocked achievements. Raw entries are never kept.

Weekly stats run Monday through Sunday; monthly stats cover every day of
the calendar month.

Persistence is best effort. A failed save is logged and the in-memory
ledger stays authoritative; the next record() or flush() retries, so a
user can always finish a ritual even when storage is unavailable.
"""

import calendar
from datetime import date, timedelta
from typing import Dict, List, Optional, Protocol

import structlog

from ritual_engine.core.clock import Clock, SystemClock
from ritual_engine.core.config import RitualConfig
from ritual_engine.core.exceptions import PersistenceError, ValidationError
from ritual_engine.domain.models.achievement import Achievement
from ritual_engine.domain.models.ledger import (
    AchievementStatus,
    LedgerSnapshot,
    RecordResult,
)
from ritual_engine.domain.models.ritual import BondType, SessionStatus
from ritual_engine.domain.models.session import SessionEntry

log = structlog.get_logger(__name__)


class LedgerStore(Protocol):
    """Storage for the ledger snapshot (see MetricsRepository)."""

    async def save(self, snapshot: LedgerSnapshot) -> None: ...

    async def load(self) -> Optional[LedgerSnapshot]: ...


class MetricsLedgerService:
    """Derives streaks, points and achievements from finalized sessions."""

    def __init__(
        self,
        repository: Optional[LedgerStore] = None,
        config: Optional[RitualConfig] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            repository: Snapshot store. None keeps the ledger in memory only.
            config: Scoring and achievement thresholds
            clock: Source of "today" for weekly and monthly stats
        """
        self.repository = repository
        self.config = config or RitualConfig()
        self.clock = clock or SystemClock()
        self._snapshot = LedgerSnapshot()
        self._unsaved = False

    @property
    def snapshot(self) -> LedgerSnapshot:
        """Copy of the current ledger."""
        return self._snapshot.model_copy(deep=True)

    @property
    def has_unsaved_changes(self) -> bool:
        return self._unsaved

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def load(self) -> LedgerSnapshot:
        """Reload the ledger from storage.

        A missing or unreadable snapshot leaves the in-memory ledger as is.
        Unsaved in-memory changes are newer than storage and are kept.
        """
        if self.repository is None:
            return self.snapshot

        try:
            loaded = await self.repository.load()
        except (PersistenceError, OSError) as e:
            log.error("ledger_load_failed", error=str(e))
            return self.snapshot

        if self._unsaved:
            log.warning("ledger_load_skipped_unsaved_changes")
            return self.snapshot

        if loaded is not None:
            self._snapshot = loaded
            log.info(
                "ledger_loaded",
                total_sessions=loaded.total_sessions,
                total_points=loaded.total_points,
                achievements=len(loaded.unlocked_achievements),
            )
        return self.snapshot

    async def flush(self) -> bool:
        """Retry saving unsaved changes. Returns True when storage is up to date."""
        if not self._unsaved:
            return True
        return await self._persist()

    async def _persist(self) -> bool:
        if self.repository is None:
            self._unsaved = False
            return True
        try:
            await self.repository.save(self.snapshot)
        except (PersistenceError, OSError) as e:
            self._unsaved = True
            log.error("ledger_save_failed", error=str(e))
            return False
        self._unsaved = False
        return True

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    async def record(self, entry: SessionEntry) -> RecordResult:
        """
        Fold a finalized session into the ledger.

        Every session counts toward total_sessions. Only completed sessions
        earn points, advance the streak and unlock achievements.

        Args:
            entry: A completed or abandoned session entry

        Returns:
            RecordResult with the points and achievements this session earned

        Raises:
            ValidationError: The entry is still in progress
        """
        if entry.status == SessionStatus.IN_PROGRESS:
            raise ValidationError(
                f"Session {entry.id} is still in progress and cannot be recorded"
            )

        ledger = self._snapshot
        ledger.total_sessions += 1
        level_before = ledger.level
        result = RecordResult()

        if entry.status == SessionStatus.COMPLETED:
            ledger.completed_sessions += 1
            result.session_points = self.calculate_points(entry)
            ledger.total_points += result.session_points
            ledger.intensity_improvement_total += entry.intensity_improvement or 0
            if entry.vow is not None:
                ledger.vows_total += 1
                if entry.vow_honored:
                    ledger.vows_honored += 1

            ledger.total_time_seconds += entry.duration_seconds or 0.0
            day = self._completion_day(entry)
            ledger.completions_by_day[day] = ledger.completions_by_day.get(day, 0) + 1
            self._update_streak(day)

            for achievement in self.evaluate_achievements(entry):
                if achievement in ledger.unlocked_achievements:
                    continue
                ledger.unlocked_achievements.add(achievement)
                ledger.total_points += achievement.points_reward
                result.new_achievements.append(achievement)
                result.achievement_points += achievement.points_reward

            result.level_up = ledger.level > level_before

        log.info(
            "session_recorded",
            session_id=entry.id,
            status=entry.status.value,
            session_points=result.session_points,
            new_achievements=[a.value for a in result.new_achievements],
            current_streak=ledger.current_streak,
            level=ledger.level,
        )

        await self._persist()
        return result

    def calculate_points(self, entry: SessionEntry) -> int:
        """
        Points for one completed session.

        base + per_intensity * max(0, improvement)
             + per_validation * passed validations
             + vow bonus if a vow was made and honored
        """
        scoring = self.config.scoring
        improvement = max(0, entry.intensity_improvement or 0)
        points = scoring.base_points
        points += scoring.points_per_intensity_point * improvement
        points += scoring.points_per_passed_validation * entry.passed_validation_count
        if entry.vow is not None and entry.vow_honored:
            points += scoring.honored_vow_bonus
        return points

    def evaluate_achievements(self, entry: SessionEntry) -> List[Achievement]:
        """Achievements whose predicate holds after this session was counted."""
        thresholds = self.config.achievements
        ledger = self._snapshot
        earned = [Achievement.FIRST_LIBERATION]

        if ledger.completed_sessions >= thresholds.bond_cutter_sessions:
            earned.append(Achievement.BOND_CUTTER)
        if entry.bond_type == BondType.ANCESTRAL_LOYALTY:
            earned.append(Achievement.ANCESTRAL_LIBERATOR)
        if ledger.completed_sessions >= thresholds.light_soul_sessions:
            earned.append(Achievement.LIGHT_SOUL)
        if entry.vow is not None and entry.vow_honored:
            earned.append(Achievement.VOW_KEEPER)
        if ledger.current_streak >= thresholds.streak_master_days:
            earned.append(Achievement.STREAK_MASTER)
        if (entry.intensity_improvement or 0) >= thresholds.intensity_master_improvement:
            earned.append(Achievement.INTENSITY_MASTER)
        if entry.all_validations_passed:
            earned.append(Achievement.VOICE_MASTER)

        return earned

    def all_achievements(self) -> List[AchievementStatus]:
        """Every achievement with its unlocked flag, in declaration order."""
        unlocked = self._snapshot.unlocked_achievements
        return [
            AchievementStatus(
                achievement=a,
                title=a.title,
                description=a.description,
                points_reward=a.points_reward,
                unlocked=a in unlocked,
            )
            for a in Achievement
        ]

    # ------------------------------------------------------------------
    # Streak
    # ------------------------------------------------------------------

    def _completion_day(self, entry: SessionEntry) -> date:
        moment = entry.completed_at or entry.created_at
        return moment.date()

    def _update_streak(self, day: date) -> None:
        """
        Calendar-day streak policy.

        - Same day as the last completion: unchanged (one increment per day)
        - Exactly the previous day: +1
        - Gap of two or more days, or no prior completion: reset to 1

        A completion dated before the last one (clock moved backwards) is
        treated like a same-day completion.
        """
        ledger = self._snapshot
        last = ledger.last_completed_date

        if last is None:
            ledger.current_streak = 1
        else:
            gap = (day - last).days
            if gap <= 0:
                ledger.current_streak = max(ledger.current_streak, 1)
            elif gap == 1:
                ledger.current_streak += 1
            else:
                ledger.current_streak = 1

        if last is None or day > last:
            ledger.last_completed_date = day
        ledger.best_streak = max(ledger.best_streak, ledger.current_streak)

    # ------------------------------------------------------------------
    # Progress tracking
    # ------------------------------------------------------------------

    def weekly_stats(self, day: Optional[date] = None) -> Dict[date, int]:
        """Completions for each day of the week containing `day` (default today)."""
        day = day or self.clock.now().date()
        week_start = day - timedelta(days=day.weekday())
        days = [week_start + timedelta(days=i) for i in range(7)]
        return self._counts_for(days)

    def monthly_stats(self, day: Optional[date] = None) -> Dict[date, int]:
        """Completions for each day of the month containing `day` (default today)."""
        day = day or self.clock.now().date()
        month_length = calendar.monthrange(day.year, day.month)[1]
        days = [day.replace(day=n) for n in range(1, month_length + 1)]
        return self._counts_for(days)

    def completions_this_week(self, day: Optional[date] = None) -> int:
        return sum(self.weekly_stats(day).values())

    def completions_this_month(self, day: Optional[date] = None) -> int:
        return sum(self.monthly_stats(day).values())

    def _counts_for(self, days: List[date]) -> Dict[date, int]:
        counts = self._snapshot.completions_by_day
        return {d: counts.get(d, 0) for d in days}
