"""Smooth rate limiting: reservation engine, shaping policies and façade.

This module provides:

**Policies** (pure algorithms, plugged into the engine):
- SmoothBurstyPolicy: token bucket, stored permits are free
- SmoothWarmingUpPolicy: linear warmup ramp, stored permits are expensive

**Engine**:
- SmoothRateLimiter: permit accounting and reservation, not thread-safe

**Façade**:
- RateLimiter: thread-safe acquire/try_acquire, sleeps outside the lock
- create: factory choosing the policy

Example:
    from smoothlimiter import Duration
    from smoothlimiter.rate_limiter import create

    limiter = create(10.0)
    limiter.acquire()
    if limiter.try_acquire(timeout=Duration.from_seconds(0.5)):
        ...
"""

from smoothlimiter.rate_limiter.engine import SmoothRateLimiter
from smoothlimiter.rate_limiter.limiter import RateLimiter, RateLimiterStats, create
from smoothlimiter.rate_limiter.policy import (
    COLD_FACTOR,
    DEFAULT_MAX_BURST_SECONDS,
    PermitState,
    RateShapingPolicy,
    SmoothBurstyPolicy,
    SmoothWarmingUpPolicy,
)

__all__ = [
    "COLD_FACTOR",
    "DEFAULT_MAX_BURST_SECONDS",
    # State
    "PermitState",
    # Façade
    "RateLimiter",
    "RateLimiterStats",
    # Protocol
    "RateShapingPolicy",
    # Policies
    "SmoothBurstyPolicy",
    # Engine
    "SmoothRateLimiter",
    "SmoothWarmingUpPolicy",
    "create",
]
