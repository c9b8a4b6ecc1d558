"""Instrumentation for rate limiters."""

from smoothlimiter.instrumentation.data import Acquisition, AcquisitionLog

__all__ = [
    "Acquisition",
    "AcquisitionLog",
]
