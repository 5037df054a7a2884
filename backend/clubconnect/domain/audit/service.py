"""Audit writes that ride along with the admin transaction they describe."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from clubconnect.domain.audit.models import AuditAction, AuditLogEntry
from clubconnect.domain.common import new_id
from clubconnect.domain.store import UnitOfWork
from clubconnect.obs import metrics

logger = logging.getLogger(__name__)


async def record(
	uow: UnitOfWork,
	*,
	actor_id: str,
	action: AuditAction,
	target_id: str,
	tenant_id: str,
	at: datetime,
	metadata: Optional[Mapping[str, Any]] = None,
) -> Optional[AuditLogEntry]:
	"""Append an audit entry inside a savepoint.

	A failed write is logged at error level and counted; the surrounding admin
	action still commits. Returns the entry, or None when the write failed.
	"""
	entry = AuditLogEntry(
		id=new_id(),
		actor_id=actor_id,
		action=action,
		target_id=target_id,
		tenant_id=tenant_id,
		created_at=at,
		metadata=dict(metadata or {}),
	)
	try:
		async with uow.savepoint():
			await uow.insert_audit(entry)
	except Exception:
		metrics.inc_audit_failure(action.value)
		logger.error(
			"audit_write_failed",
			exc_info=True,
			extra={"actor_id": actor_id, "action": action.value, "target_id": target_id},
		)
		return None
	return entry
