"""Per-account activity history."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping


class ActivityType(str, Enum):
	ACCOUNT_REGISTERED = "ACCOUNT_REGISTERED"
	ALUMNI_TRANSITION = "ALUMNI_TRANSITION"
	SETTINGS_CHANGED = "SETTINGS_CHANGED"
	STATUS_CHANGED = "STATUS_CHANGED"
	GUIDANCE_REQUESTED = "GUIDANCE_REQUESTED"
	GUIDANCE_JOINED = "GUIDANCE_JOINED"
	GUIDANCE_ACCEPTED = "GUIDANCE_ACCEPTED"
	GUIDANCE_REPLIED = "GUIDANCE_REPLIED"
	GUIDANCE_RESPONSE_RECEIVED = "GUIDANCE_RESPONSE_RECEIVED"
	GUIDANCE_COMPLETED = "GUIDANCE_COMPLETED"
	REFERRAL_CREATED = "REFERRAL_CREATED"
	REFERRAL_APPLIED = "REFERRAL_APPLIED"
	REFERRAL_APPLICATION_RECEIVED = "REFERRAL_APPLICATION_RECEIVED"
	REFERRAL_STATUS_UPDATED = "REFERRAL_STATUS_UPDATED"
	REFERRAL_CLOSED = "REFERRAL_CLOSED"
	STUDENT_REPORTED = "STUDENT_REPORTED"


@dataclass(slots=True)
class ActivityLogEntry:
	id: str
	account_id: str
	type: ActivityType
	created_at: datetime
	details: dict[str, Any] = field(default_factory=dict)

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "ActivityLogEntry":
		return cls(
			id=str(record["id"]),
			account_id=str(record["account_id"]),
			type=ActivityType(record["type"]),
			created_at=record["created_at"],
			details=dict(record.get("details") or {}),
		)
