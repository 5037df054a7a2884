"""Safety reports and announcements handled by the admin console."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional


class ReportStatus(str, Enum):
	PENDING = "pending"
	RESOLVED = "resolved"


class ReportAction(str, Enum):
	NONE = "none"
	WARNING = "warning"
	SUSPEND = "suspend"


class AnnouncementType(str, Enum):
	INFO = "info"
	WARNING = "warning"
	SUCCESS = "success"
	EVENT = "event"


@dataclass(slots=True)
class SafetyReport:
	id: str
	reporter_id: str
	student_id: str
	reason: str
	tenant_id: str
	status: ReportStatus
	created_at: datetime
	related_request_id: Optional[str] = None
	resolution: Optional[str] = None
	admin_action: Optional[ReportAction] = None
	resolved_by: Optional[str] = None
	resolved_at: Optional[datetime] = None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "SafetyReport":
		action = record.get("admin_action")
		return cls(
			id=str(record["id"]),
			reporter_id=str(record["reporter_id"]),
			student_id=str(record["student_id"]),
			reason=record["reason"],
			tenant_id=record["tenant_id"],
			status=ReportStatus(record["status"]),
			created_at=record["created_at"],
			related_request_id=record.get("related_request_id"),
			resolution=record.get("resolution"),
			admin_action=ReportAction(action) if action else None,
			resolved_by=record.get("resolved_by"),
			resolved_at=record.get("resolved_at"),
		)


@dataclass(slots=True)
class Announcement:
	id: str
	author_id: str
	tenant_id: str
	title: str
	content: str
	type: AnnouncementType
	created_at: datetime

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Announcement":
		return cls(
			id=str(record["id"]),
			author_id=str(record["author_id"]),
			tenant_id=record["tenant_id"],
			title=record["title"],
			content=record["content"],
			type=AnnouncementType(record["type"]),
			created_at=record["created_at"],
		)
