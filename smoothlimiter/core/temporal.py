"""Time units and durations with saturating arithmetic.

All limiter bookkeeping happens in integer microseconds. Conversions that
scale a value up (e.g. seconds to microseconds) saturate at the signed 64-bit
bounds instead of growing without limit, so that an "unbounded" timeout such
as ``TimeUnit.MAX`` seconds still compares sensibly against a clock reading.
Conversions that scale down truncate toward zero.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import ClassVar

MAX = 2**63 - 1
MIN = -(2**63)


def _saturate(value: int) -> int:
    if value > MAX:
        return MAX
    if value < MIN:
        return MIN
    return value


def saturated_add(a: int, b: int) -> int:
    return _saturate(a + b)


def saturated_int(value: float) -> int:
    """Truncate ``value`` toward zero, clamping to the signed 64-bit range.

    Infinities clamp to ``MAX``/``MIN``; NaN is not a valid amount of time.
    """
    if value >= MAX:
        return MAX
    if value <= MIN:
        return MIN
    return int(value)


def _scale(value: int, source_nanos: int, target_nanos: int) -> int:
    """Rescale ``value`` between two units given their sizes in nanoseconds."""
    if source_nanos >= target_nanos:
        factor = source_nanos // target_nanos
        over = MAX // factor
        if value > over:
            return MAX
        if value < -over:
            return MIN
        return value * factor
    divisor = target_nanos // source_nanos
    quotient = abs(value) // divisor
    return quotient if value >= 0 else -quotient


class TimeUnit(Enum):
    """A time granularity, valued by its length in nanoseconds."""

    NANOSECONDS = 1
    MICROSECONDS = 1_000
    MILLISECONDS = 1_000_000
    SECONDS = 1_000_000_000
    MINUTES = 60 * 1_000_000_000
    HOURS = 3_600 * 1_000_000_000
    DAYS = 86_400 * 1_000_000_000

    def convert(self, duration: int, source: TimeUnit) -> int:
        """Convert ``duration`` expressed in ``source`` units into this unit."""
        return _scale(int(duration), source.value, self.value)

    def to_nanos(self, duration: int) -> int:
        return TimeUnit.NANOSECONDS.convert(duration, self)

    def to_micros(self, duration: int) -> int:
        return TimeUnit.MICROSECONDS.convert(duration, self)

    def to_millis(self, duration: int) -> int:
        return TimeUnit.MILLISECONDS.convert(duration, self)

    def to_seconds(self, duration: int) -> int:
        return TimeUnit.SECONDS.convert(duration, self)


@dataclass(frozen=True, order=True)
class Duration:
    """An immutable span of time with microsecond resolution.

    Values are clamped to the signed 64-bit range on construction through
    the ``from_*`` helpers.
    """

    micros: int

    ZERO: ClassVar[Duration]

    @classmethod
    def from_micros(cls, micros: int) -> Duration:
        return cls(_saturate(int(micros)))

    @classmethod
    def from_seconds(cls, seconds: float) -> Duration:
        """Create a duration from (possibly fractional) seconds.

        Infinite inputs saturate; NaN is rejected.
        """
        if math.isnan(seconds):
            raise ValueError("seconds must not be NaN")
        if math.isinf(seconds):
            return cls(MAX if seconds > 0 else MIN)
        return cls(_saturate(round(seconds * 1_000_000)))

    @classmethod
    def from_timedelta(cls, delta: timedelta) -> Duration:
        return cls(_saturate(delta // timedelta(microseconds=1)))

    @classmethod
    def of(cls, amount: int, unit: TimeUnit) -> Duration:
        return cls(unit.to_micros(amount))

    def to_seconds(self) -> float:
        return self.micros / 1_000_000

    def to_timedelta(self) -> timedelta:
        return timedelta(microseconds=self.micros)

    def __add__(self, other: Duration) -> Duration:
        if not isinstance(other, Duration):
            return NotImplemented
        return Duration(_saturate(self.micros + other.micros))

    def __sub__(self, other: Duration) -> Duration:
        if not isinstance(other, Duration):
            return NotImplemented
        return Duration(_saturate(self.micros - other.micros))

    def __bool__(self) -> bool:
        return self.micros != 0

    def __str__(self) -> str:
        return f"{self.to_seconds():.6f}s"


Duration.ZERO = Duration(0)


def as_duration(value: Duration | timedelta | float | int) -> Duration:
    """Coerce a user supplied span into a Duration.

    Numbers are interpreted as seconds, matching the rest of the public API.
    """
    if isinstance(value, Duration):
        return value
    if isinstance(value, timedelta):
        return Duration.from_timedelta(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Duration.from_seconds(float(value))
    raise TypeError(f"Expected Duration, timedelta or seconds, got {type(value).__name__}")


def to_micros(
    value: Duration | timedelta | int,
    unit: TimeUnit = TimeUnit.MICROSECONDS,
) -> int:
    """Convert a timeout into microseconds.

    Integers are interpreted in ``unit``; ``Duration`` and ``timedelta`` carry
    their own unit and ignore it.
    """
    if isinstance(value, Duration):
        return value.micros
    if isinstance(value, timedelta):
        return Duration.from_timedelta(value).micros
    if isinstance(value, int) and not isinstance(value, bool):
        return unit.to_micros(value)
    raise TypeError(f"Expected Duration, timedelta or int, got {type(value).__name__}")
