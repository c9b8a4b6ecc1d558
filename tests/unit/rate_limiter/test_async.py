"""Tests for the awaitable acquire variants."""

import asyncio

import pytest

from smoothlimiter import create
from smoothlimiter.core.temporal import Duration, TimeUnit


class TestAcquireAsync:
    def test_matches_sync_sequence(self, stopwatch):
        limiter = create(5.0, stopwatch=stopwatch)

        async def run():
            return [await limiter.acquire_async() for _ in range(3)]

        waits = asyncio.run(run())

        assert waits == [Duration.ZERO, Duration(200_000), Duration(200_000)]
        assert stopwatch.events() == ["R0.00", "R0.20", "R0.20"]

    def test_warmup_sequence(self, stopwatch):
        limiter = create(2.0, Duration.from_seconds(4), stopwatch=stopwatch)

        async def run():
            for _ in range(5):
                await limiter.acquire_async()

        asyncio.run(run())

        assert stopwatch.events() == ["R0.00", "R1.38", "R1.13", "R0.88", "R0.63"]

    def test_rejects_non_positive(self, stopwatch):
        limiter = create(5.0, stopwatch=stopwatch)
        with pytest.raises(ValueError):
            asyncio.run(limiter.acquire_async(0))


class TestTryAcquireAsync:
    def test_timeout(self, stopwatch):
        limiter = create(5.0, stopwatch=stopwatch)

        async def run():
            return [
                await limiter.try_acquire_async(),
                await limiter.try_acquire_async(),
                await limiter.try_acquire_async(timeout=200, unit=TimeUnit.MILLISECONDS),
            ]

        assert asyncio.run(run()) == [True, False, True]
        assert stopwatch.events() == ["R0.00", "R0.20"]
        assert limiter.stats.rejected == 1

    def test_real_clock_suspends_task(self):
        limiter = create(20.0)

        async def run():
            loop = asyncio.get_running_loop()
            start = loop.time()
            for _ in range(3):
                await limiter.acquire_async()
            return loop.time() - start

        # Third request waits for the two before it: 2 x 50ms
        assert asyncio.run(run()) >= 0.09

    def test_concurrent_tasks_are_spaced(self, stopwatch):
        limiter = create(10.0, stopwatch=stopwatch)

        async def run():
            return await asyncio.gather(*(limiter.acquire_async() for _ in range(4)))

        waits = asyncio.run(run())

        # Logical sleeps finish before the next task reserves
        assert sorted(w.micros for w in waits) == [0, 100_000, 100_000, 100_000]
        assert limiter.stats.acquired == 4

    def test_rejects_non_int_permits(self, stopwatch):
        limiter = create(5.0, stopwatch=stopwatch)
        with pytest.raises(TypeError):
            asyncio.run(limiter.try_acquire_async(1.5))
        with pytest.raises(TypeError):
            asyncio.run(limiter.acquire_async(1.5))
        assert stopwatch.events() == []
