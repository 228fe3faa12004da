"""Metrics repository - persists the ledger snapshot as a single row."""

import json
from datetime import date
from typing import Optional

import aiosqlite
import structlog

from ritual_engine.core.exceptions import PersistenceError
from ritual_engine.domain.models.achievement import Achievement
from ritual_engine.domain.models.ledger import LedgerSnapshot

log = structlog.get_logger(__name__)

_COLUMNS = (
    "total_sessions",
    "completed_sessions",
    "current_streak",
    "best_streak",
    "total_points",
    "unlocked_achievements",
    "last_completed_date",
    "intensity_improvement_total",
    "vows_total",
    "vows_honored",
    "total_time_seconds",
    "completions_by_day",
)


class MetricsRepository:
    """Repository for the metrics ledger snapshot."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    async def save(self, snapshot: LedgerSnapshot) -> None:
        """Upsert the snapshot.

        Raises:
            PersistenceError: The write failed
        """
        values = (
            snapshot.total_sessions,
            snapshot.completed_sessions,
            snapshot.current_streak,
            snapshot.best_streak,
            snapshot.total_points,
            json.dumps(sorted(a.value for a in snapshot.unlocked_achievements)),
            snapshot.last_completed_date.isoformat()
            if snapshot.last_completed_date
            else None,
            snapshot.intensity_improvement_total,
            snapshot.vows_total,
            snapshot.vows_honored,
            snapshot.total_time_seconds,
            json.dumps(
                {d.isoformat(): n for d, n in snapshot.completions_by_day.items()},
                sort_keys=True,
            ),
        )
        placeholders = ", ".join("?" for _ in _COLUMNS)
        updates = ", ".join(f"{c} = excluded.{c}" for c in _COLUMNS)
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    f"INSERT INTO ritual_metrics (id, {', '.join(_COLUMNS)}) "
                    f"VALUES (1, {placeholders}) "
                    f"ON CONFLICT(id) DO UPDATE SET {updates}, "
                    "updated_at = datetime('now')",
                    values,
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to save metrics ledger: {e}") from e

        log.debug("ledger_saved", total_sessions=snapshot.total_sessions)

    async def load(self) -> Optional[LedgerSnapshot]:
        """Load the saved snapshot, or None if nothing was saved yet.

        Raises:
            PersistenceError: The read failed or the stored row is corrupt
        """
        try:
            async with aiosqlite.connect(self.db_path) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute("SELECT * FROM ritual_metrics WHERE id = 1")
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to load metrics ledger: {e}") from e

        if not row:
            return None

        try:
            return self._row_to_snapshot(row)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Corrupt metrics ledger row: {e}") from e

    async def clear(self) -> None:
        """Delete the saved snapshot."""
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("DELETE FROM ritual_metrics")
                await db.commit()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Failed to clear metrics ledger: {e}") from e

    def _row_to_snapshot(self, row: aiosqlite.Row) -> LedgerSnapshot:
        last_date = row["last_completed_date"]
        return LedgerSnapshot(
            total_sessions=row["total_sessions"],
            completed_sessions=row["completed_sessions"],
            current_streak=row["current_streak"],
            best_streak=row["best_streak"],
            total_points=row["total_points"],
            unlocked_achievements={
                Achievement(a) for a in json.loads(row["unlocked_achievements"])
            },
            last_completed_date=date.fromisoformat(last_date) if last_date else None,
            intensity_improvement_total=row["intensity_improvement_total"],
            vows_total=row["vows_total"],
            vows_honored=row["vows_honored"],
            total_time_seconds=row["total_time_seconds"],
            completions_by_day={
                date.fromisoformat(d): n
                for d, n in json.loads(row["completions_by_day"]).items()
            },
        )
