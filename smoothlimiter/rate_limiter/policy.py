"""Rate shaping policies: how stored permits accrue and what spending them costs.

A policy is a plain class plugged into a SmoothRateLimiter engine. It decides
two things:

- how ``max_permits`` and ``stored_permits`` are rescaled when the rate
  changes (``set_rate``), and
- how many microseconds of throttling it costs to spend a portion of the
  stored permits (``stored_permits_to_wait_time``).

Available policies:
- SmoothBurstyPolicy: token bucket; stored permits are free.
- SmoothWarmingUpPolicy: linear ramp from a cold interval (3x stable) down to
  the stable interval; stored permits are expensive.

A policy instance belongs to exactly one engine and is only touched while the
owning limiter holds its lock.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from smoothlimiter.core.temporal import saturated_add, saturated_int

DEFAULT_MAX_BURST_SECONDS = 1.0
COLD_FACTOR = 3.0


@dataclass
class PermitState:
    """Mutable accounting state of one rate limiter.

    Attributes:
        stored_permits: Permits accrued from idle time, in ``[0, max_permits]``.
        max_permits: Ceiling on ``stored_permits``.
        stable_interval_micros: Microseconds per permit at the stable rate;
            ``0.0`` for an infinite rate.
        next_free_ticket_micros: Instant at which the next request can be
            granted. May lie in the past or the future.
    """

    stored_permits: float = 0.0
    max_permits: float = 0.0
    stable_interval_micros: float = 0.0
    next_free_ticket_micros: int = 0


def permits_to_micros(permits: float, interval_micros: float) -> int:
    """Cost of ``permits`` at ``interval_micros`` each, truncated and saturated.

    Taking no permits is free even when the interval is infinite.
    """
    if permits <= 0.0:
        return 0
    return saturated_int(permits * interval_micros)


def _rescale(stored_permits: float, old_max_permits: float, max_permits: float) -> float:
    """Keep the ``stored / max`` proportion across a change of ``max``."""
    return stored_permits * max_permits / old_max_permits


@runtime_checkable
class RateShapingPolicy(Protocol):
    """Protocol for the refill/spend strategy of a smooth rate limiter."""

    def set_rate(
        self,
        state: PermitState,
        permits_per_second: float,
        stable_interval_micros: float,
    ) -> None:
        """Recompute ``max_permits`` and rescale ``stored_permits`` for a new rate.

        Called after the engine has credited idle time at the old rate and
        stored the new stable interval in ``state``.
        """
        ...

    def stored_permits_to_wait_time(
        self,
        state: PermitState,
        stored_permits: float,
        permits_to_take: float,
    ) -> int:
        """Throttling, in microseconds, for spending ``permits_to_take`` stored permits.

        Conceptually the integral of the policy's interval function over
        ``[stored_permits - permits_to_take, stored_permits]``. Always
        ``0 <= permits_to_take <= stored_permits``.
        """
        ...


class SmoothBurstyPolicy:
    """Token bucket: up to ``max_burst_seconds`` of idle time can be spent for free.

    Args:
        max_burst_seconds: How many seconds worth of permits can be saved up
            while the limiter is unused.

    Raises:
        ValueError: If ``max_burst_seconds`` is not positive.
    """

    def __init__(self, max_burst_seconds: float = DEFAULT_MAX_BURST_SECONDS):
        if not max_burst_seconds > 0:
            raise ValueError(f"max_burst_seconds must be > 0, got {max_burst_seconds}")
        self._max_burst_seconds = float(max_burst_seconds)

    @property
    def max_burst_seconds(self) -> float:
        return self._max_burst_seconds

    def set_rate(
        self,
        state: PermitState,
        permits_per_second: float,
        stable_interval_micros: float,
    ) -> None:
        old_max_permits = state.max_permits
        state.max_permits = self._max_burst_seconds * permits_per_second

        if math.isinf(state.max_permits) or math.isinf(old_max_permits):
            # Leaving (or entering) an infinite rate starts fully charged
            state.stored_permits = state.max_permits
        elif old_max_permits == 0.0:
            state.stored_permits = 0.0
        else:
            state.stored_permits = _rescale(
                state.stored_permits, old_max_permits, state.max_permits
            )

    def stored_permits_to_wait_time(
        self,
        state: PermitState,
        stored_permits: float,
        permits_to_take: float,
    ) -> int:
        return 0

    def __repr__(self) -> str:
        return f"SmoothBurstyPolicy(max_burst_seconds={self._max_burst_seconds})"


class SmoothWarmingUpPolicy:
    """Linear warmup ramp between a cold and the stable interval.

    The interval paid per stored permit is flat (the stable interval) while
    fewer than half of ``max_permits`` are stored, then climbs linearly to
    ``COLD_FACTOR`` times the stable interval when the bucket is full. A
    freshly created limiter is full, i.e. cold; idling for the warmup period
    makes it cold again.

    ``max_permits`` is ``warmup_period / stable_interval``, so the time spent
    draining the ramp is the same regardless of the configured rate.

    Args:
        warmup_period_micros: Length of the warmup period.

    Raises:
        ValueError: If the warmup period is negative.
    """

    def __init__(self, warmup_period_micros: int):
        if warmup_period_micros < 0:
            raise ValueError(f"warmup period must not be negative, got {warmup_period_micros}us")
        self._warmup_period_micros = warmup_period_micros
        self._half_permits = 0.0
        # Slope of the line from the stable interval (at half_permits) to the
        # cold interval (at max_permits)
        self._slope = 0.0

    @property
    def warmup_period_micros(self) -> int:
        return self._warmup_period_micros

    @property
    def half_permits(self) -> float:
        return self._half_permits

    @property
    def slope(self) -> float:
        return self._slope

    def set_rate(
        self,
        state: PermitState,
        permits_per_second: float,
        stable_interval_micros: float,
    ) -> None:
        old_max_permits = state.max_permits
        if stable_interval_micros == 0.0:
            state.max_permits = math.inf
        else:
            state.max_permits = self._warmup_period_micros / stable_interval_micros
        self._half_permits = state.max_permits / 2.0

        # Stable interval is x, cold is 3x, so on average it's 2x: the warmup
        # period drains the ramp at half the stable rate
        cold_interval_micros = stable_interval_micros * COLD_FACTOR
        if 0.0 < self._half_permits < math.inf:
            self._slope = (cold_interval_micros - stable_interval_micros) / self._half_permits
        else:
            self._slope = 0.0

        if math.isinf(state.max_permits):
            state.stored_permits = state.max_permits
        elif math.isinf(old_max_permits):
            # Coming from an infinite rate counts as already warm
            state.stored_permits = 0.0
        elif old_max_permits == 0.0:
            state.stored_permits = state.max_permits  # initial state is cold
        else:
            state.stored_permits = _rescale(
                state.stored_permits, old_max_permits, state.max_permits
            )

    def stored_permits_to_wait_time(
        self,
        state: PermitState,
        stored_permits: float,
        permits_to_take: float,
    ) -> int:
        stable_interval_micros = state.stable_interval_micros
        if stable_interval_micros == 0.0:
            return 0

        available_permits_above_half = stored_permits - self._half_permits
        micros = 0
        # Trapezoid under the climbing part of the ramp
        if available_permits_above_half > 0.0:
            permits_above_half_to_take = min(available_permits_above_half, permits_to_take)
            micros = permits_to_micros(
                permits_above_half_to_take,
                (
                    self._permits_to_time(stable_interval_micros, available_permits_above_half)
                    + self._permits_to_time(
                        stable_interval_micros,
                        available_permits_above_half - permits_above_half_to_take,
                    )
                )
                / 2.0,
            )
            permits_to_take -= permits_above_half_to_take
        # Rectangle under the flat part
        return saturated_add(micros, permits_to_micros(permits_to_take, stable_interval_micros))

    def _permits_to_time(self, stable_interval_micros: float, permits: float) -> float:
        return stable_interval_micros + permits * self._slope

    def __repr__(self) -> str:
        return f"SmoothWarmingUpPolicy(warmup_period_micros={self._warmup_period_micros})"
