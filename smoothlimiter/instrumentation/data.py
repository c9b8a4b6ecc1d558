"""Per-acquisition records for analysing how a limiter throttled its callers.

AcquisitionLog stores one sample per granted reservation: when it was
reserved, how many permits it took and how long the caller had to wait.
Samples are appended by RateLimiter while it holds its lock, so they are in
reservation order.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass

import pandas as pd


@dataclass(frozen=True)
class Acquisition:
    """A single granted reservation."""

    time_s: float
    permits: int
    wait_s: float


class AcquisitionLog:
    """Container for acquisition samples with analysis utilities."""

    TIME_S = "time_s"
    PERMITS = "permits"
    WAIT_S = "wait_s"

    def __init__(self) -> None:
        self._samples: list[Acquisition] = []

    def record(self, time_micros: int, permits: int, wait_micros: int) -> None:
        """Record a reservation made at ``time_micros`` on the limiter's clock."""
        self._samples.append(
            Acquisition(
                time_s=time_micros / 1_000_000,
                permits=permits,
                wait_s=wait_micros / 1_000_000,
            )
        )

    def clear(self) -> None:
        self._samples.clear()

    @property
    def values(self) -> list[Acquisition]:
        return list(self._samples)

    def between(self, start_s: float, end_s: float) -> AcquisitionLog:
        """Return a new log with samples reserved in [start, end)."""
        result = AcquisitionLog()
        result._samples = [a for a in self._samples if start_s <= a.time_s < end_s]
        return result

    def waits(self) -> list[float]:
        return [a.wait_s for a in self._samples]

    def total_permits(self) -> int:
        return sum(a.permits for a in self._samples)

    def mean_wait(self) -> float:
        """Mean wait in seconds. Returns 0.0 if empty."""
        waits = self.waits()
        if not waits:
            return 0.0
        return statistics.fmean(waits)

    def max_wait(self) -> float:
        """Longest wait in seconds. Returns 0.0 if empty."""
        return max(self.waits(), default=0.0)

    def throughput(self) -> float:
        """Permits per second between the first and last reservation.

        Returns 0.0 when fewer than two reservations were made or no time
        elapsed between them.
        """
        if len(self._samples) < 2:
            return 0.0
        elapsed = self._samples[-1].time_s - self._samples[0].time_s
        if elapsed <= 0:
            return 0.0
        return self.total_permits() / elapsed

    def to_dataframe(self) -> pd.DataFrame:
        """Samples as a DataFrame with ``time_s``, ``permits`` and ``wait_s`` columns."""
        return pd.DataFrame(
            {
                self.TIME_S: [a.time_s for a in self._samples],
                self.PERMITS: [a.permits for a in self._samples],
                self.WAIT_S: [a.wait_s for a in self._samples],
            },
            columns=[self.TIME_S, self.PERMITS, self.WAIT_S],
        )

    def __len__(self) -> int:
        return len(self._samples)

    def __bool__(self) -> bool:
        return len(self._samples) > 0
