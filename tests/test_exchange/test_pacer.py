"""Tests for RequestPacer -- bounded concurrency and start spacing."""

import asyncio

import pytest

from scanner.exchange.pacer import RequestPacer


class TestRequestPacer:
    @pytest.mark.asyncio
    async def test_limits_concurrency(self) -> None:
        pacer = RequestPacer(max_concurrent=2, min_interval=0.0)
        active = 0
        peak = 0

        async def request() -> None:
            nonlocal active, peak
            async with pacer.slot():
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1

        await asyncio.gather(*(request() for _ in range(6)))
        assert peak == 2

    @pytest.mark.asyncio
    async def test_spaces_request_starts(self) -> None:
        pacer = RequestPacer(max_concurrent=5, min_interval=0.05)
        loop = asyncio.get_running_loop()
        starts: list[float] = []

        async def request() -> None:
            async with pacer.slot():
                starts.append(loop.time())

        await asyncio.gather(*(request() for _ in range(3)))
        gaps = [b - a for a, b in zip(starts, starts[1:])]
        assert all(gap >= 0.045 for gap in gaps)

    def test_minimum_one_slot(self) -> None:
        pacer = RequestPacer(max_concurrent=0, min_interval=-1.0)
        assert pacer.min_interval == 0.0
