"""Redis-backed per-account cooldowns.

Each (account, action) pair stores the time of its last successful action.
Callers check before the guarded work and record only after it committed.
Redis reads are bounded by ``timeout_seconds``; a slow or unreachable Redis
surfaces as StorageUnavailable.
"""

from __future__ import annotations

import asyncio
import logging
import math
from enum import Enum
from typing import Mapping, Optional

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from clubconnect.domain.common import Clock, utcnow
from clubconnect.domain.errors import RateLimitExceeded, StorageUnavailable
from clubconnect.infra.redis import RedisProxy, redis_client
from clubconnect.obs import metrics
from clubconnect.settings import settings

logger = logging.getLogger(__name__)

_UNAVAILABLE = (RedisConnectionError, RedisTimeoutError, asyncio.TimeoutError, OSError)


class RateLimitedAction(str, Enum):
	GUIDANCE_REQUEST = "guidance_request"
	REFERRAL_REQUEST = "referral_request"
	# Club posts live outside this service; their endpoint shares this limiter
	POST = "post"


def default_cooldowns() -> dict[str, int]:
	return {
		RateLimitedAction.GUIDANCE_REQUEST.value: settings.cooldown_guidance_seconds,
		RateLimitedAction.REFERRAL_REQUEST.value: settings.cooldown_referral_request_seconds,
		RateLimitedAction.POST.value: settings.cooldown_post_seconds,
	}


def _action_name(action: RateLimitedAction | str) -> str:
	return action.value if isinstance(action, RateLimitedAction) else str(action)


class CooldownLimiter:
	def __init__(
		self,
		redis: Redis | RedisProxy | None = None,
		*,
		cooldowns: Optional[Mapping[str, int]] = None,
		clock: Clock = utcnow,
		timeout_seconds: Optional[float] = None,
	) -> None:
		self._redis = redis if redis is not None else redis_client
		self._cooldowns = dict(cooldowns) if cooldowns is not None else default_cooldowns()
		self._clock = clock
		self._timeout = timeout_seconds if timeout_seconds is not None else settings.operation_timeout_seconds

	@staticmethod
	def _key(account_id: str, action: str) -> str:
		return f"rl:last:{action}:{account_id}"

	def cooldown_for(self, action: RateLimitedAction | str) -> int:
		return int(self._cooldowns.get(_action_name(action), 0))

	async def _last_action(self, account_id: str, name: str) -> Optional[str]:
		try:
			return await asyncio.wait_for(self._redis.get(self._key(account_id, name)), timeout=self._timeout)
		except _UNAVAILABLE as exc:
			logger.error("rate_limit_read_failed", exc_info=True, extra={"account_id": account_id, "action": name})
			raise StorageUnavailable() from exc

	async def check_rate_limit(
		self,
		account_id: str,
		action: RateLimitedAction | str,
		cooldown_seconds: Optional[int] = None,
	) -> None:
		"""Raise RateLimitExceeded while the cooldown for this pair is running."""
		name = _action_name(action)
		cooldown = self.cooldown_for(name) if cooldown_seconds is None else int(cooldown_seconds)
		if cooldown <= 0:
			return
		raw = await self._last_action(account_id, name)
		if raw is None:
			return
		elapsed = self._clock().timestamp() - float(raw)
		if elapsed < cooldown:
			metrics.inc_rate_limited(name)
			raise RateLimitExceeded(math.ceil(cooldown - elapsed), reason=f"{name}_cooldown")

	async def record_action(self, account_id: str, action: RateLimitedAction | str) -> None:
		name = _action_name(action)
		ttl = self.cooldown_for(name)
		now = self._clock().timestamp()
		await asyncio.wait_for(
			self._redis.set(self._key(account_id, name), repr(now), ex=ttl if ttl > 0 else None),
			timeout=self._timeout,
		)
