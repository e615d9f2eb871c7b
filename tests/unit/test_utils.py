"""Unit tests for retry and single-flight helpers."""

import asyncio

import pytest

from inbox_mirror.utils import SingleFlight, retry_async


class TestRetryAsync:
    """Test suite for retry_async."""

    @pytest.mark.asyncio
    async def test_always_failing_call_is_attempted_three_times(self) -> None:
        calls = 0
        delays: list[float] = []

        async def failing() -> None:
            nonlocal calls
            calls += 1
            raise RuntimeError(f"boom {calls}")

        async def fake_sleep(delay: float) -> None:
            delays.append(delay)

        with pytest.raises(RuntimeError, match="boom 3"):
            await retry_async(failing, max_attempts=3, delay=1.0, sleep=fake_sleep)

        assert calls == 3
        assert delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_returns_first_success(self) -> None:
        calls = 0

        async def flaky() -> str:
            nonlocal calls
            calls += 1
            if calls < 2:
                raise ConnectionError("transient")
            return "ok"

        async def fake_sleep(delay: float) -> None:
            pass

        assert await retry_async(flaky, sleep=fake_sleep) == "ok"
        assert calls == 2


class TestSingleFlight:
    """Test suite for SingleFlight."""

    @pytest.mark.asyncio
    async def test_overlapping_calls_share_one_execution(self) -> None:
        flight: SingleFlight[int] = SingleFlight()
        started = 0
        release = asyncio.Event()

        async def work() -> int:
            nonlocal started
            started += 1
            await release.wait()
            return started

        first = asyncio.create_task(flight.run(work))
        second = asyncio.create_task(flight.run(work))
        await asyncio.sleep(0)
        assert flight.in_flight is True

        release.set()
        results = await asyncio.gather(first, second)

        assert results == [1, 1]
        assert started == 1

    @pytest.mark.asyncio
    async def test_next_call_after_completion_runs_again(self) -> None:
        flight: SingleFlight[int] = SingleFlight()
        runs = 0

        async def work() -> int:
            nonlocal runs
            runs += 1
            return runs

        assert await flight.run(work) == 1
        assert await flight.run(work) == 2
