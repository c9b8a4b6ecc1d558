"""Thread-safe rate limiter façade and its factory.

RateLimiter distributes permits at a configurable rate. ``acquire`` blocks
until the requested permits are available; ``try_acquire`` only waits if the
permits can be granted within a timeout. Once acquired, permits need not be
released.

The number of permits requested never affects the throttling of the request
itself: ``acquire(1)`` and ``acquire(1000)`` on an idle limiter are both
granted immediately, but the *next* request pays for the larger one.

Concurrency: one lock guards the engine and is held only while the
reservation is computed and committed. Sleeping always happens after the
lock is released. No fairness is provided beyond lock acquisition order.

Example:
    from smoothlimiter import create

    limiter = create(5.0)                  # 5 permits per second, bursty
    warm = create(2.0, warmup_period=4.0)  # ramps up over 4 seconds

    for task in tasks:
        limiter.acquire()
        submit(task)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import timedelta

from smoothlimiter.core.sleeping_stopwatch import SleepingStopwatch, SystemSleepingStopwatch
from smoothlimiter.core.temporal import Duration, TimeUnit, as_duration, saturated_add, to_micros
from smoothlimiter.instrumentation.data import AcquisitionLog
from smoothlimiter.rate_limiter.engine import SmoothRateLimiter
from smoothlimiter.rate_limiter.policy import (
    DEFAULT_MAX_BURST_SECONDS,
    PermitState,
    RateShapingPolicy,
    SmoothBurstyPolicy,
    SmoothWarmingUpPolicy,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimiterStats:
    """Frozen snapshot of RateLimiter statistics."""

    acquired: int = 0
    permits: int = 0
    throttled: int = 0
    rejected: int = 0
    total_wait: Duration = Duration.ZERO


def _check_permits(permits: int) -> None:
    if not isinstance(permits, int) or isinstance(permits, bool):
        raise TypeError(f"Requested permits must be an int, got {type(permits).__name__}")
    if permits <= 0:
        raise ValueError(f"Requested permits ({permits}) must be positive")


class RateLimiter:
    """Thread-safe front end of a SmoothRateLimiter engine.

    Use :func:`create` rather than constructing this directly; the engine
    must have its rate set before the limiter is usable.

    Args:
        engine: Reservation engine with its rate shaping policy.
        stopwatch: Clock/sleep collaborator.
        acquisition_log: Optional recorder for every granted reservation.
    """

    def __init__(
        self,
        engine: SmoothRateLimiter,
        stopwatch: SleepingStopwatch,
        acquisition_log: AcquisitionLog | None = None,
    ):
        self._engine = engine
        self._stopwatch = stopwatch
        self._acquisition_log = acquisition_log
        self._lock = threading.Lock()

        self._acquired = 0
        self._permits = 0
        self._throttled = 0
        self._rejected = 0
        self._total_wait_micros = 0

    @property
    def policy(self) -> RateShapingPolicy:
        return self._engine.policy

    @property
    def stopwatch(self) -> SleepingStopwatch:
        return self._stopwatch

    @property
    def acquisitions(self) -> AcquisitionLog | None:
        return self._acquisition_log

    @property
    def stats(self) -> RateLimiterStats:
        """Frozen snapshot of rate limiter statistics."""
        with self._lock:
            return RateLimiterStats(
                acquired=self._acquired,
                permits=self._permits,
                throttled=self._throttled,
                rejected=self._rejected,
                total_wait=Duration(self._total_wait_micros),
            )

    def snapshot(self) -> PermitState:
        """Copy of the engine's accounting state, taken under the lock."""
        with self._lock:
            return self._engine.snapshot()

    def get_rate(self) -> float:
        """The stable rate in permits per second."""
        with self._lock:
            return self._engine.get_rate()

    def set_rate(self, permits_per_second: float) -> None:
        """Update the stable rate.

        Callers already sleeping are not woken and do not observe the new
        rate. Since each request repays the previous one, the request right
        after this call is still throttled at the old rate.

        Raises:
            ValueError: If the rate is not positive or is NaN.
        """
        if not permits_per_second > 0.0:
            raise ValueError(f"rate must be positive, got {permits_per_second}")
        with self._lock:
            self._engine.set_rate(permits_per_second, self._stopwatch.read_microseconds())
        logger.info("Rate set to %s permits/s", permits_per_second)

    def acquire(self, permits: int = 1) -> Duration:
        """Acquire ``permits``, blocking until they are granted.

        Returns:
            Time spent sleeping; ``Duration.ZERO`` if not throttled.

        Raises:
            ValueError: If ``permits`` is not positive.
            TypeError: If ``permits`` is not an int.
        """
        wait_micros = self._reserve(permits)
        self._stopwatch.sleep_microseconds(wait_micros)
        return Duration(wait_micros)

    def try_acquire(
        self,
        permits: int = 1,
        timeout: Duration | timedelta | int = 0,
        unit: TimeUnit = TimeUnit.MICROSECONDS,
    ) -> bool:
        """Acquire ``permits`` if they can be granted within ``timeout``.

        Returns ``False`` immediately, without changing any state, when the
        permits would not be available before the timeout expires.
        Otherwise reserves them and sleeps as ``acquire`` would.

        Args:
            permits: Number of permits to acquire.
            timeout: Longest acceptable wait. Integers are in ``unit``.
                Negative values are treated as zero; huge values saturate.
            unit: Unit of an integer ``timeout``.

        Raises:
            ValueError: If ``permits`` is not positive.
            TypeError: If ``permits`` is not an int.
        """
        wait_micros = self._try_reserve(permits, max(to_micros(timeout, unit), 0))
        if wait_micros is None:
            return False
        self._stopwatch.sleep_microseconds(wait_micros)
        return True

    async def acquire_async(self, permits: int = 1) -> Duration:
        """Awaitable variant of :meth:`acquire`; suspends the task instead of the thread."""
        wait_micros = self._reserve(permits)
        await self._stopwatch.sleep_microseconds_async(wait_micros)
        return Duration(wait_micros)

    async def try_acquire_async(
        self,
        permits: int = 1,
        timeout: Duration | timedelta | int = 0,
        unit: TimeUnit = TimeUnit.MICROSECONDS,
    ) -> bool:
        """Awaitable variant of :meth:`try_acquire`."""
        wait_micros = self._try_reserve(permits, max(to_micros(timeout, unit), 0))
        if wait_micros is None:
            return False
        await self._stopwatch.sleep_microseconds_async(wait_micros)
        return True

    def _reserve(self, permits: int) -> int:
        _check_permits(permits)
        with self._lock:
            now_micros = self._stopwatch.read_microseconds()
            wait_micros = self._reserve_and_get_wait_length(permits, now_micros)
        logger.debug("Reserved %d permit(s) at %dus; wait=%dus", permits, now_micros, wait_micros)
        return wait_micros

    def _try_reserve(self, permits: int, timeout_micros: int) -> int | None:
        _check_permits(permits)
        with self._lock:
            now_micros = self._stopwatch.read_microseconds()
            if not self._can_acquire(now_micros, timeout_micros):
                self._rejected += 1
                wait_micros = None
            else:
                wait_micros = self._reserve_and_get_wait_length(permits, now_micros)
        if wait_micros is None:
            logger.debug(
                "Rejected %d permit(s) at %dus; timeout=%dus", permits, now_micros, timeout_micros
            )
        else:
            logger.debug(
                "Reserved %d permit(s) at %dus; wait=%dus", permits, now_micros, wait_micros
            )
        return wait_micros

    def _can_acquire(self, now_micros: int, timeout_micros: int) -> bool:
        return self._engine.query_earliest_available(now_micros) - timeout_micros <= now_micros

    def _reserve_and_get_wait_length(self, permits: int, now_micros: int) -> int:
        """Reserve the next ticket; returns the wait, never negative. Lock must be held."""
        moment_available = self._engine.reserve_earliest_available(permits, now_micros)
        wait_micros = max(moment_available - now_micros, 0)

        self._acquired += 1
        self._permits += permits
        self._total_wait_micros = saturated_add(self._total_wait_micros, wait_micros)
        if wait_micros > 0:
            self._throttled += 1
        if self._acquisition_log is not None:
            self._acquisition_log.record(now_micros, permits, wait_micros)
        return wait_micros

    def __repr__(self) -> str:
        return f"RateLimiter[stableRate={self.get_rate():.1f}qps, policy={self.policy!r}]"


def create(
    permits_per_second: float,
    warmup_period: Duration | timedelta | float | None = None,
    *,
    max_burst_seconds: float = DEFAULT_MAX_BURST_SECONDS,
    stopwatch: SleepingStopwatch | None = None,
    record_acquisitions: bool = False,
) -> RateLimiter:
    """Create a RateLimiter with the given stable throughput.

    Without a warmup period the limiter is bursty: while unused it saves up
    to ``max_burst_seconds`` worth of permits, which later callers can take
    without waiting.

    With a warmup period the limiter starts cold and ramps up to the stable
    rate over ``warmup_period`` (as long as there are enough requests to
    saturate it). Left unused for ``warmup_period`` it returns to the cold
    state.

    Args:
        permits_per_second: Stable rate; ``math.inf`` disables throttling.
        warmup_period: Ramp-up duration. Numbers are seconds.
        max_burst_seconds: Burst size of a bursty limiter, in seconds of
            permits. Ignored when a warmup period is given.
        stopwatch: Clock/sleep collaborator. Defaults to the system clock.
        record_acquisitions: Keep an AcquisitionLog of every reservation.

    Raises:
        ValueError: If the rate is not positive or NaN, or the warmup period
            is negative.
    """
    policy: RateShapingPolicy
    if warmup_period is None:
        policy = SmoothBurstyPolicy(max_burst_seconds)
    else:
        warmup = as_duration(warmup_period)
        if warmup < Duration.ZERO:
            raise ValueError(f"warmup_period must not be negative, got {warmup}")
        policy = SmoothWarmingUpPolicy(warmup.micros)

    limiter = RateLimiter(
        SmoothRateLimiter(policy),
        stopwatch if stopwatch is not None else SystemSleepingStopwatch(),
        AcquisitionLog() if record_acquisitions else None,
    )
    limiter.set_rate(permits_per_second)
    logger.debug("Created %r", limiter)
    return limiter
