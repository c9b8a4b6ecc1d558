"""The clock/sleep port used by rate limiters.

A SleepingStopwatch supplies the current instant in microseconds and performs
the actual suspension once a limiter has computed how long a caller must
wait. Two implementations ship:

- SystemSleepingStopwatch: real monotonic time, ``time.sleep`` and
  ``asyncio.sleep``.
- ManualSleepingStopwatch: logical time that only moves when something
  sleeps or when the owner advances it. Used for deterministic tests and
  for driving limiters from a simulation loop.
"""

from __future__ import annotations

import asyncio
import threading
import time
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Protocol, runtime_checkable

from smoothlimiter.core.clock import Stopwatch, Ticker
from smoothlimiter.core.temporal import Duration, TimeUnit, to_micros


@runtime_checkable
class SleepingStopwatch(Protocol):
    """Clock and sleep collaborator of a rate limiter."""

    def read_microseconds(self) -> int:
        """Current monotonic instant in microseconds since an arbitrary origin."""
        ...

    def sleep_microseconds(self, micros: int) -> None:
        """Block the calling thread for at least ``micros``; no-op if ``micros <= 0``."""
        ...

    async def sleep_microseconds_async(self, micros: int) -> None:
        """Suspend the calling task for at least ``micros``; no-op if ``micros <= 0``."""
        ...


def sleep_uninterruptibly(
    seconds: float,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Sleep until ``seconds`` have elapsed on ``clock``.

    If the underlying sleep returns early the remainder is slept again, so
    the full duration always elapses.
    """
    if seconds <= 0:
        return
    deadline = clock() + seconds
    remaining = seconds
    while remaining > 0:
        sleep(remaining)
        remaining = deadline - clock()


async def sleep_uninterruptibly_async(seconds: float) -> None:
    """Awaitable counterpart of :func:`sleep_uninterruptibly`."""
    if seconds <= 0:
        return
    loop = asyncio.get_running_loop()
    deadline = loop.time() + seconds
    remaining = seconds
    while remaining > 0:
        await asyncio.sleep(remaining)
        remaining = deadline - loop.time()


class SystemSleepingStopwatch:
    """SleepingStopwatch reading a started Stopwatch and sleeping for real.

    Args:
        ticker: Optional ticker for the underlying stopwatch.
    """

    def __init__(self, ticker: Ticker | None = None):
        self._stopwatch = Stopwatch.create_started(ticker)

    def read_microseconds(self) -> int:
        return self._stopwatch.elapsed_micros()

    def sleep_microseconds(self, micros: int) -> None:
        if micros > 0:
            sleep_uninterruptibly(micros / 1_000_000)

    async def sleep_microseconds_async(self, micros: int) -> None:
        if micros > 0:
            await sleep_uninterruptibly_async(micros / 1_000_000)


def _format_seconds(micros: int) -> str:
    seconds = Decimal(micros) / Decimal(1_000_000)
    return str(seconds.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class ManualSleepingStopwatch:
    """Logical-time SleepingStopwatch.

    Sleeping advances the instant immediately and logs an ``R<seconds>``
    event (the limiter throttled a caller). ``advance`` moves time forward on
    behalf of the owner and logs a ``U<seconds>`` event (the caller idled).
    ``update`` jumps to an instant without logging anything.

    Args:
        start_micros: Initial instant.
    """

    def __init__(self, start_micros: int = 0):
        self._now_micros = start_micros
        self._events: list[str] = []
        self._lock = threading.Lock()

    @property
    def now(self) -> Duration:
        """Current instant as an offset from the origin."""
        return Duration(self._now_micros)

    def read_microseconds(self) -> int:
        return self._now_micros

    def sleep_microseconds(self, micros: int) -> None:
        self._record("R", micros)

    async def sleep_microseconds_async(self, micros: int) -> None:
        self._record("R", micros)

    def advance(
        self,
        amount: Duration | timedelta | int,
        unit: TimeUnit = TimeUnit.MICROSECONDS,
    ) -> None:
        """Let ``amount`` of time pass, as if the caller slept."""
        micros = to_micros(amount, unit)
        if micros < 0:
            raise ValueError(f"Cannot advance by a negative amount: {micros}us")
        self._record("U", micros)

    def update(self, now_micros: int) -> None:
        """Set the current instant without recording an event."""
        with self._lock:
            if now_micros < self._now_micros:
                raise ValueError(
                    f"Time cannot move backwards: {now_micros}us < {self._now_micros}us"
                )
            self._now_micros = now_micros

    def events(self) -> list[str]:
        """Return the events recorded since the last call, then forget them."""
        with self._lock:
            recorded = list(self._events)
            self._events.clear()
        return recorded

    def _record(self, caption: str, micros: int) -> None:
        with self._lock:
            self._now_micros += max(micros, 0)
            self._events.append(f"{caption}{_format_seconds(micros)}")
