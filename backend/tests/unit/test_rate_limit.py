import asyncio

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from clubconnect.domain.errors import RateLimitExceeded, StorageUnavailable
from clubconnect.infra.rate_limit import CooldownLimiter, RateLimitedAction


@pytest.mark.asyncio
async def test_second_call_inside_cooldown_is_rejected(fake_redis, clock):
    limiter = CooldownLimiter(fake_redis, clock=clock)
    await limiter.check_rate_limit("s1", RateLimitedAction.GUIDANCE_REQUEST)
    await limiter.record_action("s1", RateLimitedAction.GUIDANCE_REQUEST)

    clock.advance(seconds=100)
    with pytest.raises(RateLimitExceeded) as excinfo:
        await limiter.check_rate_limit("s1", RateLimitedAction.GUIDANCE_REQUEST)
    assert excinfo.value.retry_after_seconds == 200
    assert excinfo.value.reason == "guidance_request_cooldown"


@pytest.mark.asyncio
async def test_call_succeeds_after_cooldown_elapses(fake_redis, clock):
    limiter = CooldownLimiter(fake_redis, clock=clock)
    await limiter.record_action("s1", RateLimitedAction.GUIDANCE_REQUEST)
    clock.advance(seconds=301)
    await limiter.check_rate_limit("s1", RateLimitedAction.GUIDANCE_REQUEST)


@pytest.mark.asyncio
async def test_cooldowns_are_per_account_and_action(fake_redis, clock):
    limiter = CooldownLimiter(fake_redis, clock=clock)
    await limiter.record_action("s1", RateLimitedAction.GUIDANCE_REQUEST)
    await limiter.check_rate_limit("s2", RateLimitedAction.GUIDANCE_REQUEST)
    await limiter.check_rate_limit("s1", RateLimitedAction.REFERRAL_REQUEST)


@pytest.mark.asyncio
async def test_record_sets_ttl_and_explicit_cooldown_override(fake_redis, clock):
    limiter = CooldownLimiter(fake_redis, cooldowns={"post": 60}, clock=clock)
    await limiter.record_action("s1", "post")
    ttl = await fake_redis.ttl("rl:last:post:s1")
    assert 0 < ttl <= 60
    clock.advance(seconds=30)
    await limiter.check_rate_limit("s1", "post", cooldown_seconds=10)
    with pytest.raises(RateLimitExceeded):
        await limiter.check_rate_limit("s1", "post")


def test_default_cooldowns():
    limiter = CooldownLimiter()
    assert limiter.cooldown_for(RateLimitedAction.GUIDANCE_REQUEST) == 300
    assert limiter.cooldown_for(RateLimitedAction.REFERRAL_REQUEST) == 30 * 24 * 3600
    assert limiter.cooldown_for(RateLimitedAction.POST) == 60
    assert limiter.cooldown_for("unknown") == 0


class _UnreachableRedis:
    async def get(self, key):
        raise RedisConnectionError("connection refused")


class _StalledRedis:
    async def get(self, key):
        await asyncio.sleep(5)


@pytest.mark.asyncio
async def test_unreachable_redis_surfaces_storage_unavailable(clock):
    limiter = CooldownLimiter(_UnreachableRedis(), clock=clock)
    with pytest.raises(StorageUnavailable):
        await limiter.check_rate_limit("s1", RateLimitedAction.GUIDANCE_REQUEST)


@pytest.mark.asyncio
async def test_stalled_redis_read_is_bounded(clock):
    limiter = CooldownLimiter(_StalledRedis(), clock=clock, timeout_seconds=0.05)
    with pytest.raises(StorageUnavailable):
        await limiter.check_rate_limit("s1", RateLimitedAction.GUIDANCE_REQUEST)
