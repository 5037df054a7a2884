"""Session invalidation markers.

Sessions themselves are owned by the external auth system; we only keep a
per-account "revoked before" timestamp. Access tokens issued earlier are refused
by :func:`clubconnect.infra.auth.get_current_user`.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from clubconnect.infra.redis import redis_client

logger = logging.getLogger(__name__)

# Longer than any access token lifetime
MARKER_TTL_SECONDS = 7 * 24 * 3600


def _marker_key(account_id: str) -> str:
	return f"session:revoked_before:{account_id}"


async def revoke_all_sessions(account_id: str, *, at: datetime) -> None:
	"""Idempotent: repeating the call only moves the marker forward."""
	key = _marker_key(account_id)
	stamp = int(at.timestamp())
	current = await redis_client.get(key)
	if current is not None and int(current) >= stamp:
		return
	await redis_client.set(key, str(stamp), ex=MARKER_TTL_SECONDS)
	logger.info("sessions_revoked", extra={"account_id": account_id, "revoked_before": stamp})


async def revoked_before(account_id: str) -> Optional[int]:
	value = await redis_client.get(_marker_key(account_id))
	return int(value) if value is not None else None
