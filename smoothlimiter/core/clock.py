"""Monotonic tickers and the stopwatch built on top of them.

A Ticker is the lowest-level time source: a nanosecond counter with an
arbitrary, process-fixed origin. Stopwatch accumulates elapsed ticker time
between start/stop calls.
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable

from smoothlimiter.core.temporal import Duration


@runtime_checkable
class Ticker(Protocol):
    """A source of monotonic nanosecond readings."""

    def read(self) -> int:
        """Current reading in nanoseconds; never decreases."""
        ...


class SystemTicker:
    """Ticker backed by ``time.monotonic_ns``."""

    def read(self) -> int:
        return time.monotonic_ns()


class Stopwatch:
    """Measures elapsed time using a Ticker.

    Args:
        ticker: Time source. Defaults to the system monotonic clock.
    """

    def __init__(self, ticker: Ticker | None = None):
        self._ticker = ticker if ticker is not None else SystemTicker()
        self._is_running = False
        self._elapsed_nanos = 0
        self._start_tick = 0

    @classmethod
    def create_started(cls, ticker: Ticker | None = None) -> Stopwatch:
        return cls(ticker).start()

    @property
    def ticker(self) -> Ticker:
        return self._ticker

    @property
    def is_running(self) -> bool:
        return self._is_running

    def start(self) -> Stopwatch:
        """Start measuring. Starting a running stopwatch has no effect."""
        if not self._is_running:
            self._is_running = True
            self._start_tick = self._ticker.read()
        return self

    def stop(self) -> Stopwatch:
        """Stop measuring, keeping the time accumulated so far."""
        tick = self._ticker.read()
        if self._is_running:
            self._elapsed_nanos += tick - self._start_tick
        self._is_running = False
        return self

    def reset(self) -> Stopwatch:
        """Zero the elapsed time and stop."""
        self._elapsed_nanos = 0
        self._is_running = False
        return self

    def elapsed_nanos(self) -> int:
        if self._is_running:
            return self._ticker.read() - self._start_tick + self._elapsed_nanos
        return self._elapsed_nanos

    def elapsed_micros(self) -> int:
        return self.elapsed_nanos() // 1_000

    @property
    def elapsed(self) -> Duration:
        return Duration(self.elapsed_micros())

    def __str__(self) -> str:
        return str(self.elapsed)
