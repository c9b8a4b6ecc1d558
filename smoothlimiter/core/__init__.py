"""Time sources, units and the clock/sleep port."""

from smoothlimiter.core.clock import Stopwatch, SystemTicker, Ticker
from smoothlimiter.core.sleeping_stopwatch import (
    ManualSleepingStopwatch,
    SleepingStopwatch,
    SystemSleepingStopwatch,
    sleep_uninterruptibly,
    sleep_uninterruptibly_async,
)
from smoothlimiter.core.temporal import Duration, TimeUnit, as_duration, to_micros

__all__ = [
    "Duration",
    "ManualSleepingStopwatch",
    "SleepingStopwatch",
    "Stopwatch",
    "SystemSleepingStopwatch",
    "SystemTicker",
    "Ticker",
    "TimeUnit",
    "as_duration",
    "sleep_uninterruptibly",
    "sleep_uninterruptibly_async",
    "to_micros",
]
