import asyncio

import pytest

from payout_relay.exceptions import RateLimited, ServerBusy
from payout_relay.gate import ConcurrencyGate, RateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_rate_limiter_blocks_after_limit_per_client():
    clock = FakeClock()
    limiter = RateLimiter(limit=2, window_seconds=60, message="slow down", clock=clock)

    limiter.hit("10.0.0.1")
    limiter.hit("10.0.0.1")
    with pytest.raises(RateLimited) as exc_info:
        limiter.hit("10.0.0.1")
    assert exc_info.value.message == "slow down"
    assert exc_info.value.status_code == 429
    assert exc_info.value.retry_after == 60

    # other clients are unaffected
    limiter.hit("10.0.0.2")


def test_rate_limiter_window_slides():
    clock = FakeClock()
    limiter = RateLimiter(limit=1, window_seconds=60, clock=clock)
    limiter.hit("client")
    clock.now += 30
    with pytest.raises(RateLimited) as exc_info:
        limiter.hit("client")
    assert exc_info.value.retry_after == 30
    clock.now += 31
    limiter.hit("client")
    assert limiter.remaining("client") == 0


def test_idle_clients_are_evicted():
    clock = FakeClock()
    limiter = RateLimiter(limit=5, window_seconds=60, clock=clock, sweep_threshold=3)

    for i in range(3):
        limiter.hit(f"10.0.0.{i}")
    assert limiter.tracked_keys == 3

    clock.now += 61
    limiter.hit("10.0.0.99")
    assert limiter.tracked_keys == 1
    assert limiter.remaining("10.0.0.99") == 4


def test_sweep_keeps_clients_inside_the_window():
    clock = FakeClock()
    limiter = RateLimiter(limit=1, window_seconds=60, clock=clock, sweep_threshold=2)

    limiter.hit("idle")
    clock.now += 50
    limiter.hit("active")
    clock.now += 20
    limiter.hit("newcomer")

    assert limiter.tracked_keys == 2
    with pytest.raises(RateLimited):
        limiter.hit("active")


def test_third_concurrent_request_is_refused():
    gate = ConcurrencyGate(limit=2)

    async def scenario():
        async with gate.admit():
            async with gate.admit():
                assert gate.in_flight == 2
                with pytest.raises(ServerBusy):
                    async with gate.admit():
                        pass
                assert gate.in_flight == 2
            # one finished, a new request fits again
            async with gate.admit():
                assert gate.in_flight == 2
        assert gate.in_flight == 0

    asyncio.run(scenario())


def test_gate_released_when_request_raises():
    gate = ConcurrencyGate(limit=1)

    async def failing():
        async with gate.admit():
            raise RuntimeError("gateway exploded")

    with pytest.raises(RuntimeError):
        asyncio.run(failing())
    assert gate.in_flight == 0

    async def succeeding():
        async with gate.admit():
            return gate.in_flight

    assert asyncio.run(succeeding()) == 1


def test_gate_under_real_concurrency():
    gate = ConcurrencyGate(limit=2)
    results = []

    async def worker(release: asyncio.Event):
        try:
            async with gate.admit():
                await release.wait()
                results.append("done")
        except ServerBusy:
            results.append("busy")

    async def scenario():
        release = asyncio.Event()
        tasks = [asyncio.create_task(worker(release)) for _ in range(3)]
        await asyncio.sleep(0)
        release.set()
        await asyncio.gather(*tasks)

    asyncio.run(scenario())
    assert sorted(results) == ["busy", "done", "done"]
    assert gate.in_flight == 0
