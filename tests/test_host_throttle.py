import asyncio

import pytest

from summaly.core.errors import RateLimitExceeded, ThrottleRejected, UrlParseError
from summaly.workflows.host_throttle import HostThrottle, host_of
from summaly.workflows.summary_config import ThrottleConfig

FAST = ThrottleConfig(cap=3, release_grace=0.01, max_attempts=3, retry_delay=0.01)


def test_host_of_lowercases_and_rejects_missing_host():
    assert host_of("https://Example.COM/path") == "example.com"
    with pytest.raises(UrlParseError):
        host_of("not a url")
    with pytest.raises(UrlParseError):
        host_of("mailto:someone@example.com")
    with pytest.raises(UrlParseError):
        host_of("http://[::1")


def test_admits_two_leases_then_rejects_third():
    async def run():
        throttle = HostThrottle(FAST)
        first = await throttle.try_acquire("https://example.com/a")
        second = await throttle.try_acquire("https://example.com/b")
        assert throttle.active("example.com") == 2
        with pytest.raises(ThrottleRejected):
            await throttle.try_acquire("https://example.com/c")
        # other hosts are independent
        other = await throttle.try_acquire("https://other.example/")
        for lease in (first, second, other):
            lease.release()
        await throttle.wait_idle()
        return throttle

    throttle = asyncio.run(run())
    assert throttle.hosts == {}


def test_release_is_deferred_by_grace_window():
    async def run():
        throttle = HostThrottle(ThrottleConfig(release_grace=0.05))
        lease = await throttle.try_acquire("https://example.com/")
        lease.release()
        held = throttle.active("example.com")
        await throttle.wait_idle()
        return held, throttle.active("example.com")

    held, after = asyncio.run(run())
    assert held == 1
    assert after == 0


def test_release_is_idempotent_and_never_negative():
    async def run():
        throttle = HostThrottle(FAST)
        first = await throttle.try_acquire("https://example.com/")
        second = await throttle.try_acquire("https://example.com/")
        first.release()
        first.release()
        await throttle.wait_idle()
        counts = [throttle.active("example.com")]
        second.release()
        await throttle.wait_idle()
        counts.append(throttle.active("example.com"))
        return counts

    assert asyncio.run(run()) == [1, 0]


def test_acquire_exhausts_retries_with_rate_limit():
    async def run():
        throttle = HostThrottle(FAST)
        await throttle.try_acquire("https://busy.example/")
        await throttle.try_acquire("https://busy.example/")
        with pytest.raises(RateLimitExceeded):
            await throttle.acquire("https://busy.example/")

    asyncio.run(run())


def test_acquire_succeeds_once_a_slot_frees_up():
    async def run():
        throttle = HostThrottle(ThrottleConfig(release_grace=0.01, max_attempts=3, retry_delay=0.05))
        lease = await throttle.try_acquire("https://busy.example/")
        await throttle.try_acquire("https://busy.example/")
        lease.release()
        granted = await throttle.acquire("https://busy.example/")
        return granted.host

    assert asyncio.run(run()) == "busy.example"


def test_acquire_rejects_hostless_url_without_retry():
    async def run():
        throttle = HostThrottle(ThrottleConfig(retry_delay=5.0))
        with pytest.raises(UrlParseError):
            await throttle.acquire("/relative/only")

    asyncio.run(asyncio.wait_for(run(), timeout=1.0))


def test_lease_released_when_owner_is_cancelled():
    async def run():
        throttle = HostThrottle(FAST)
        started = asyncio.Event()

        async def owner():
            async with await throttle.try_acquire("https://example.com/"):
                started.set()
                await asyncio.sleep(10)

        task = asyncio.create_task(owner())
        await started.wait()
        assert throttle.active("example.com") == 1
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await throttle.wait_idle()
        return throttle.hosts

    assert asyncio.run(run()) == {}


def test_concurrent_acquires_never_exceed_cap():
    async def run():
        throttle = HostThrottle(FAST)
        results = await asyncio.gather(
            *(throttle.try_acquire("https://example.com/") for _ in range(10)),
            return_exceptions=True,
        )
        granted = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, ThrottleRejected)]
        return len(granted), len(rejected), throttle.active("example.com")

    granted, rejected, active = asyncio.run(run())
    assert granted == 2
    assert rejected == 8
    assert active == 2
