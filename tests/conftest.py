"""
Shared test fixtures.

Time is fully controlled: FakeClock is the only source of "now" and
ManualScheduler fires phase timers only when the test moves the clock.
"""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from ritual_engine.core.config import RitualConfig
from ritual_engine.core.exceptions import PersistenceError
from ritual_engine.domain.models.content import Script, ScriptKey
from ritual_engine.domain.models.ledger import LedgerSnapshot
from ritual_engine.domain.models.ritual import (
    Approach,
    BondType,
    RitualPhase,
    VowCategory,
    VowDuration,
)
from ritual_engine.domain.models.session import BehavioralVow
from ritual_engine.persistence.database import init_database
from ritual_engine.persistence.repositories.metrics_repo import MetricsRepository
from ritual_engine.services.content_catalog import ContentCatalog
from ritual_engine.services.metrics_service import MetricsLedgerService
from ritual_engine.services.ritual_session_service import RitualSessionService


START_TIME = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: Optional[datetime] = None):
        self.current = now or START_TIME

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class _ManualHandle:
    def __init__(self, due: datetime, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose callbacks fire as the fake clock is advanced."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.handles: List[_ManualHandle] = []

    def call_later(self, delay_seconds: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(self.clock.now() + timedelta(seconds=delay_seconds), callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> List[_ManualHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every timer that falls due on the way."""
        target = self.clock.now() + timedelta(seconds=seconds)
        while True:
            due = [h for h in self.pending if h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.due)
            self.clock.current = handle.due
            handle.fired = True
            handle.callback()
        self.clock.current = target


class InMemoryLedgerStore:
    """Ledger store kept in memory; can be told to fail."""

    def __init__(self):
        self.saved: Optional[LedgerSnapshot] = None
        self.save_calls = 0
        self.fail_saves = False
        self.fail_loads = False
        self.save_error: Optional[Exception] = None

    async def save(self, snapshot: LedgerSnapshot) -> None:
        self.save_calls += 1
        if self.save_error is not None:
            raise self.save_error
        if self.fail_saves:
            raise PersistenceError("disk full")
        self.saved = snapshot.model_copy(deep=True)

    async def load(self) -> Optional[LedgerSnapshot]:
        if self.fail_loads:
            raise PersistenceError("database locked")
        return self.saved.model_copy(deep=True) if self.saved else None


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return ManualScheduler(clock)


@pytest.fixture
def ritual_config():
    return RitualConfig()


@pytest.fixture
def catalog():
    """Small catalog with known voice anchors."""
    scripts = {
        ScriptKey(None, Approach.SECULAR, RitualPhase.RECOGNITION): Script(
            title="I recognize",
            body_text="I recognize what we lived and how it affected me.",
            required_voice_phrases=[
                "I recognize what we lived",
                "it affected me",
                "I no longer need to stay tied",
            ],
        ),
        ScriptKey(None, Approach.SECULAR, RitualPhase.LIBERATION): Script(
            title="I release",
            required_voice_phrases=["I release this bond", "take my energy back"],
        ),
        ScriptKey(None, Approach.SECULAR, RitualPhase.RETURNING): Script(
            title="I return",
            required_voice_phrases=["I return what is not mine"],
        ),
        ScriptKey(None, Approach.SECULAR, RitualPhase.RENEWAL): Script(
            title="Renewal",
            suggested_vows=[
                BehavioralVow(title="No contact", category=VowCategory.NO_CONTACT),
            ],
        ),
        ScriptKey(BondType.ANCESTRAL_LOYALTY, Approach.SECULAR, RitualPhase.RECOGNITION): Script(
            title="I recognize the family pattern",
            required_voice_phrases=["I recognize the pattern"],
        ),
    }
    return ContentCatalog(scripts)


@pytest.fixture
def ledger_store():
    return InMemoryLedgerStore()


@pytest.fixture
def metrics(ledger_store, ritual_config):
    return MetricsLedgerService(repository=ledger_store, config=ritual_config)


@pytest.fixture
def engine(metrics, catalog, ritual_config, clock, scheduler):
    return RitualSessionService(
        metrics=metrics,
        catalog=catalog,
        config=ritual_config,
        clock=clock,
        scheduler=scheduler,
    )


@pytest.fixture
def sample_vow():
    return BehavioralVow(
        title="No contact", category=VowCategory.NO_CONTACT, duration=VowDuration.HOURS_48
    )


@pytest.fixture
async def test_db():
    """Create and initialize a temporary metrics database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        await init_database(db_path)
        yield db_path


@pytest.fixture
async def metrics_repo(test_db):
    return MetricsRepository(str(test_db))
