"""smoothlimiter: smooth rate limiting with bursty and warmup permit shaping.

Example:
    import smoothlimiter

    limiter = smoothlimiter.create(5.0)
    waited = limiter.acquire()       # Duration slept, ZERO if not throttled
    if limiter.try_acquire(timeout=smoothlimiter.Duration.from_seconds(0.1)):
        ...
"""

import logging

from smoothlimiter.core import (
    Duration,
    ManualSleepingStopwatch,
    SleepingStopwatch,
    Stopwatch,
    SystemSleepingStopwatch,
    SystemTicker,
    Ticker,
    TimeUnit,
)
from smoothlimiter.instrumentation import Acquisition, AcquisitionLog
from smoothlimiter.logging_config import (
    configure_from_env,
    disable_logging,
    enable_console_logging,
    enable_file_logging,
    enable_json_file_logging,
    enable_json_logging,
    enable_timed_file_logging,
    set_level,
    set_module_level,
)
from smoothlimiter.rate_limiter import (
    PermitState,
    RateLimiter,
    RateLimiterStats,
    RateShapingPolicy,
    SmoothBurstyPolicy,
    SmoothRateLimiter,
    SmoothWarmingUpPolicy,
    create,
)

# Silent unless the application configures logging
logging.getLogger("smoothlimiter").addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "Acquisition",
    "AcquisitionLog",
    "Duration",
    "ManualSleepingStopwatch",
    "PermitState",
    "RateLimiter",
    "RateLimiterStats",
    "RateShapingPolicy",
    "SleepingStopwatch",
    "SmoothBurstyPolicy",
    "SmoothRateLimiter",
    "SmoothWarmingUpPolicy",
    "Stopwatch",
    "SystemSleepingStopwatch",
    "SystemTicker",
    "Ticker",
    "TimeUnit",
    "configure_from_env",
    "create",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_file_logging",
    "enable_json_logging",
    "enable_timed_file_logging",
    "set_level",
    "set_module_level",
]
