"""Activity log appends."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from clubconnect.domain.activity.models import ActivityLogEntry, ActivityType
from clubconnect.domain.common import new_id
from clubconnect.domain.store import UnitOfWork
from clubconnect.obs import metrics

logger = logging.getLogger(__name__)


async def record(
	uow: UnitOfWork,
	account_id: str,
	activity_type: ActivityType,
	*,
	at: datetime,
	details: Optional[Mapping[str, Any]] = None,
) -> None:
	# Display-only history: never fail the caller's transaction over it
	entry = ActivityLogEntry(
		id=new_id(),
		account_id=account_id,
		type=activity_type,
		created_at=at,
		details=dict(details or {}),
	)
	try:
		async with uow.savepoint():
			await uow.insert_activity(entry)
	except Exception:
		metrics.inc_activity_failure(activity_type.value)
		logger.error(
			"activity_write_failed",
			exc_info=True,
			extra={"account_id": account_id, "type": activity_type.value},
		)
