"""Per-repository single-flight lock tests."""

import asyncio

import pytest

from repodoc.cache.locks import SingleFlight


async def run_jobs(flight: SingleFlight, keys: list[str]) -> int:
    """Run one short job per key and return the peak concurrency."""
    active = 0
    peak = 0

    async def job(key):
        nonlocal active, peak
        async with flight.hold(key):
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1

    await asyncio.gather(*(job(key) for key in keys))
    return peak


async def test_same_key_runs_one_at_a_time():
    flight = SingleFlight()

    assert await run_jobs(flight, ["octo/app"] * 4) == 1


async def test_different_keys_run_concurrently():
    flight = SingleFlight()

    assert await run_jobs(flight, ["octo/app", "octo/other"]) == 2


async def test_locks_are_dropped_after_use():
    flight = SingleFlight()

    async with flight.hold("octo/app"):
        assert flight.is_busy("octo/app")
        assert not flight.is_busy("octo/other")
        assert len(flight) == 1

    assert not flight.is_busy("octo/app")
    assert len(flight) == 0


async def test_lock_released_on_error():
    flight = SingleFlight()

    with pytest.raises(RuntimeError):
        async with flight.hold("octo/app"):
            raise RuntimeError("generation failed")

    assert len(flight) == 0
    async with flight.hold("octo/app"):
        pass
