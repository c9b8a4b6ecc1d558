"""Permit reservation engine shared by every rate shaping policy.

The engine keeps the continuous accounting of a smooth rate limiter: how
many permits have been stored up while idle, and the instant at which the
next request may be granted. It turns a permit request into a reservation
by pushing ``next_free_ticket_micros`` into the future.

Each request pays for the *previous* one: a request is granted at the
current ``next_free_ticket_micros`` and only its successors are delayed by
the permits it took. The size of a request therefore never changes its own
wait.

Waits and ticket instants saturate at the signed 64-bit bound; a rate so
small that its interval overflows to infinity reserves a ticket at
``TimeUnit.MAX`` instead of failing.

The engine is not thread-safe; RateLimiter serializes access to it.
"""

from __future__ import annotations

import dataclasses
import math

from smoothlimiter.core.temporal import saturated_add
from smoothlimiter.rate_limiter.policy import PermitState, RateShapingPolicy, permits_to_micros

MICROS_PER_SECOND = 1_000_000.0


class SmoothRateLimiter:
    """Reservation engine parameterized by a RateShapingPolicy.

    Args:
        policy: Refill/spend strategy. Owned by this engine.
    """

    def __init__(self, policy: RateShapingPolicy):
        self._policy = policy
        self._state = PermitState()

    @property
    def policy(self) -> RateShapingPolicy:
        return self._policy

    def snapshot(self) -> PermitState:
        """Copy of the current accounting state."""
        return dataclasses.replace(self._state)

    def get_rate(self) -> float:
        if self._state.stable_interval_micros == 0.0:
            return math.inf
        return MICROS_PER_SECOND / self._state.stable_interval_micros

    def set_rate(self, permits_per_second: float, now_micros: int) -> None:
        """Change the stable rate.

        Idle time up to ``now_micros`` is credited at the old rate first.
        """
        self._resync(now_micros)
        stable_interval_micros = MICROS_PER_SECOND / permits_per_second
        self._state.stable_interval_micros = stable_interval_micros
        self._policy.set_rate(self._state, permits_per_second, stable_interval_micros)

    def query_earliest_available(self, now_micros: int) -> int:
        return self._state.next_free_ticket_micros

    def reserve_earliest_available(self, permits: int, now_micros: int) -> int:
        """Reserve ``permits`` and return the instant the caller may proceed.

        The returned instant can lie in the past; callers wait
        ``max(result - now_micros, 0)``.
        """
        self._resync(now_micros)
        state = self._state
        next_free_ticket_snapshot = state.next_free_ticket_micros

        stored_permits_to_spend = min(float(permits), state.stored_permits)
        fresh_permits = permits - stored_permits_to_spend

        wait_micros = saturated_add(
            self._policy.stored_permits_to_wait_time(
                state, state.stored_permits, stored_permits_to_spend
            ),
            permits_to_micros(fresh_permits, state.stable_interval_micros),
        )

        state.next_free_ticket_micros = saturated_add(state.next_free_ticket_micros, wait_micros)
        state.stored_permits -= stored_permits_to_spend
        return next_free_ticket_snapshot

    def _resync(self, now_micros: int) -> None:
        state = self._state
        if now_micros > state.next_free_ticket_micros:
            if state.stable_interval_micros == 0.0:
                state.stored_permits = state.max_permits
            else:
                state.stored_permits = min(
                    state.max_permits,
                    state.stored_permits
                    + (now_micros - state.next_free_ticket_micros) / state.stable_interval_micros,
                )
            state.next_free_ticket_micros = now_micros
