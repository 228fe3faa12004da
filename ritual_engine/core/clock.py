"""
Time sources and deferred-callback scheduling.

The engine never reads the wall clock or creates timers directly. It is
handed a Clock (source of "now") and a Scheduler (cancellable deferred
callbacks on the owning thread) so streak boundaries and timer expiry can
be driven deterministically.
"""

import asyncio
from datetime import datetime
from typing import Callable, Optional, Protocol


class Clock(Protocol):
    """Source of the current time (timezone-aware)."""

    def now(self) -> datetime: ...


class TimerHandle(Protocol):
    """Handle to a scheduled callback."""

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Schedules a callback to run once after a delay on the owning thread."""

    def call_later(
        self, delay_seconds: float, callback: Callable[[], None]
    ) -> TimerHandle: ...


class SystemClock:
    """Wall clock in the device's local timezone.

    Local time is used so that calendar-day streaks follow the user's day.
    """

    def now(self) -> datetime:
        return datetime.now().astimezone()


class AsyncioScheduler:
    """Scheduler backed by the asyncio event loop.

    Callbacks run on the loop's thread, the same logical thread that owns
    engine state. Uses the running loop unless one is given explicitly.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(
        self, delay_seconds: float, callback: Callable[[], None]
    ) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay_seconds, callback)
