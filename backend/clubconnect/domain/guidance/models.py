"""Guidance request records and the lifecycle table."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional


class GuidanceType(str, Enum):
	MENTORSHIP = "mentorship"
	REFERRAL = "referral"


class GuidanceStatus(str, Enum):
	PENDING = "pending"
	ACCEPTED = "accepted"
	REPLIED = "replied"
	COMPLETED = "completed"


# Forward-only lifecycle; completed is terminal.
ALLOWED_TRANSITIONS: dict[GuidanceStatus, frozenset[GuidanceStatus]] = {
	GuidanceStatus.PENDING: frozenset({GuidanceStatus.ACCEPTED, GuidanceStatus.REPLIED, GuidanceStatus.COMPLETED}),
	GuidanceStatus.ACCEPTED: frozenset({GuidanceStatus.REPLIED, GuidanceStatus.COMPLETED}),
	GuidanceStatus.REPLIED: frozenset({GuidanceStatus.COMPLETED}),
	GuidanceStatus.COMPLETED: frozenset(),
}

INBOX_STATUSES = (GuidanceStatus.PENDING, GuidanceStatus.ACCEPTED)


def can_transition(current: GuidanceStatus, target: GuidanceStatus) -> bool:
	return target in ALLOWED_TRANSITIONS[current]


@dataclass(slots=True)
class GuidanceRequest:
	id: str
	student_id: str
	mentor_id: Optional[str]
	topic: str
	message: str
	type: GuidanceType
	status: GuidanceStatus
	tenant_id: str
	created_at: datetime
	updated_at: datetime
	response: Optional[str] = None
	responder_id: Optional[str] = None
	accepted_at: Optional[datetime] = None
	responded_at: Optional[datetime] = None
	completed_at: Optional[datetime] = None

	@property
	def is_open(self) -> bool:
		return self.mentor_id is None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "GuidanceRequest":
		mentor_id = record.get("mentor_id")
		return cls(
			id=str(record["id"]),
			student_id=str(record["student_id"]),
			mentor_id=str(mentor_id) if mentor_id is not None else None,
			topic=record["topic"],
			message=record["message"],
			type=GuidanceType(record["type"]),
			status=GuidanceStatus(record["status"]),
			tenant_id=record["tenant_id"],
			created_at=record["created_at"],
			updated_at=record["updated_at"],
			response=record.get("response"),
			responder_id=record.get("responder_id"),
			accepted_at=record.get("accepted_at"),
			responded_at=record.get("responded_at"),
			completed_at=record.get("completed_at"),
		)
