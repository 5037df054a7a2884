"""Append-only audit trail of privileged actions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping


class AuditAction(str, Enum):
	APPROVE_ALUMNI = "APPROVE_ALUMNI"
	REJECT_ALUMNI = "REJECT_ALUMNI"
	SUSPEND_USER = "SUSPEND_USER"
	BLOCK_USER = "BLOCK_USER"
	PROMOTE_TO_ADMIN = "PROMOTE_TO_ADMIN"
	SET_ROLE_STATUS = "SET_ROLE_STATUS"
	RESOLVE_SAFETY_REPORT = "RESOLVE_SAFETY_REPORT"
	STUDENT_REPORTED = "STUDENT_REPORTED"
	CREATE_ANNOUNCEMENT = "CREATE_ANNOUNCEMENT"


@dataclass(slots=True)
class AuditLogEntry:
	id: str
	actor_id: str
	action: AuditAction
	target_id: str
	tenant_id: str
	created_at: datetime
	metadata: dict[str, Any] = field(default_factory=dict)

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "AuditLogEntry":
		return cls(
			id=str(record["id"]),
			actor_id=str(record["actor_id"]),
			action=AuditAction(record["action"]),
			target_id=str(record["target_id"]),
			tenant_id=record["tenant_id"],
			created_at=record["created_at"],
			metadata=dict(record.get("metadata") or {}),
		)
