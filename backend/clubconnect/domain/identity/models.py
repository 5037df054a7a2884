"""Identity records: accounts, profiles and alumni metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional


class Role(str, Enum):
	STUDENT = "student"
	ALUMNI = "alumni"
	ADMIN = "admin"


class AccountStatus(str, Enum):
	PENDING = "pending"
	ACTIVE = "active"
	SUSPENDED = "suspended"
	BLOCKED = "blocked"
	REJECTED = "rejected"


# Statuses that still allow a student to take part in workflows.
STUDENT_PARTICIPATING = frozenset({AccountStatus.ACTIVE, AccountStatus.PENDING})
# Statuses an account can no longer act from until an admin intervenes.
RESTRICTED = frozenset({AccountStatus.SUSPENDED, AccountStatus.BLOCKED})


def _list(value: Any) -> list[str]:
	if not value:
		return []
	return [str(item) for item in value]


@dataclass(slots=True)
class Account:
	"""Authoritative role/status record for a platform user."""

	id: str
	role: Role
	status: AccountStatus
	tenant_id: str
	email: str
	created_at: datetime
	updated_at: datetime
	status_changed_at: Optional[datetime] = None
	status_changed_by: Optional[str] = None
	status_reason: Optional[str] = None
	suspension_end: Optional[datetime] = None

	@property
	def is_active(self) -> bool:
		return self.status is AccountStatus.ACTIVE

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Account":
		return cls(
			id=str(record["id"]),
			role=Role(record["role"]),
			status=AccountStatus(record["status"]),
			tenant_id=record["tenant_id"],
			email=record["email"],
			created_at=record["created_at"],
			updated_at=record["updated_at"],
			status_changed_at=record.get("status_changed_at"),
			status_changed_by=record.get("status_changed_by"),
			status_reason=record.get("status_reason"),
			suspension_end=record.get("suspension_end"),
		)


@dataclass(slots=True)
class Profile:
	"""Display data keyed 1:1 to an account."""

	account_id: str
	display_name: str
	bio: str = ""
	skills: list[str] = field(default_factory=list)
	updated_at: Optional[datetime] = None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Profile":
		return cls(
			account_id=str(record["account_id"]),
			display_name=record["display_name"],
			bio=record.get("bio") or "",
			skills=_list(record.get("skills")),
			updated_at=record.get("updated_at"),
		)


@dataclass(slots=True)
class AlumniMeta:
	"""Single source of truth for mentoring/referral flags and expertise."""

	account_id: str
	company: str
	job_title: str
	grad_year: Optional[int]
	expertise: list[str] = field(default_factory=list)
	mentor_opt_in: bool = False
	referral_opt_in: bool = False
	average_rating: float = 0.0
	rating_count: int = 0
	updated_at: Optional[datetime] = None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "AlumniMeta":
		return cls(
			account_id=str(record["account_id"]),
			company=record["company"],
			job_title=record["job_title"],
			grad_year=record.get("grad_year"),
			expertise=_list(record.get("expertise")),
			mentor_opt_in=bool(record.get("mentor_opt_in")),
			referral_opt_in=bool(record.get("referral_opt_in")),
			average_rating=float(record.get("average_rating") or 0.0),
			rating_count=int(record.get("rating_count") or 0),
			updated_at=record.get("updated_at"),
		)
