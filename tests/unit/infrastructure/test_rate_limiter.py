"""Tests for SerialRateLimiter."""

import asyncio

import pytest

from cratedigger.infrastructure.rate_limiter import SerialRateLimiter


class FakeTime:
    """Manual clock; sleep() advances it instead of waiting."""

    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


class TestSerialRateLimiter:
    async def test_first_call_does_not_wait(self, fake_time: FakeTime) -> None:
        limiter = SerialRateLimiter(1.2, "test", fake_time.clock, fake_time.sleep)

        async def task() -> str:
            return "ok"

        assert await limiter.run(task) == "ok"
        assert fake_time.sleeps == []

    async def test_waits_remaining_gap(self, fake_time: FakeTime) -> None:
        limiter = SerialRateLimiter(1.2, "test", fake_time.clock, fake_time.sleep)

        async def task() -> None:
            return None

        await limiter.run(task)
        fake_time.now += 0.2
        await limiter.run(task)

        assert fake_time.sleeps == [pytest.approx(1.0)]

    async def test_no_wait_when_gap_already_passed(self, fake_time: FakeTime) -> None:
        limiter = SerialRateLimiter(1.2, "test", fake_time.clock, fake_time.sleep)

        async def task() -> None:
            return None

        await limiter.run(task)
        fake_time.now += 5
        await limiter.run(task)

        assert fake_time.sleeps == []

    # Hey future me - a failing call must still count as a dispatch, otherwise an error
    # storm would hammer the provider with zero spacing.
    async def test_failed_task_still_counts(self, fake_time: FakeTime) -> None:
        limiter = SerialRateLimiter(1.0, "test", fake_time.clock, fake_time.sleep)

        async def boom() -> None:
            raise RuntimeError("provider down")

        async def ok() -> str:
            return "ok"

        with pytest.raises(RuntimeError):
            await limiter.run(boom)
        assert limiter.last_dispatch == 100.0
        assert await limiter.run(ok) == "ok"
        assert fake_time.sleeps == [pytest.approx(1.0)]

    async def test_tasks_never_overlap(self, fake_time: FakeTime) -> None:
        limiter = SerialRateLimiter(0.0, "test", fake_time.clock, fake_time.sleep)
        in_flight = 0
        max_in_flight = 0
        order: list[int] = []

        def make_task(n: int):
            async def task() -> None:
                nonlocal in_flight, max_in_flight
                in_flight += 1
                max_in_flight = max(max_in_flight, in_flight)
                await asyncio.sleep(0)
                order.append(n)
                in_flight -= 1

            return task

        await asyncio.gather(*(limiter.run(make_task(n)) for n in range(5)))

        assert max_in_flight == 1
        assert order == [0, 1, 2, 3, 4]
