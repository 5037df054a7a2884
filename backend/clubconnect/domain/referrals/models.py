"""Referral postings and their applicant ledger."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional


class ReferralStatus(str, Enum):
	OPEN = "open"
	CLOSED = "closed"


class ApplicantStatus(str, Enum):
	PENDING = "pending"
	ACCEPTED = "accepted"
	REJECTED = "rejected"


def _parse_ts(value: Any) -> Optional[datetime]:
	if value is None or isinstance(value, datetime):
		return value
	return datetime.fromisoformat(str(value))


@dataclass(slots=True)
class Applicant:
	student_id: str
	applied_at: datetime
	status: ApplicantStatus = ApplicantStatus.PENDING
	decided_at: Optional[datetime] = None

	def to_json(self) -> dict[str, Any]:
		return {
			"student_id": self.student_id,
			"applied_at": self.applied_at.isoformat(),
			"status": self.status.value,
			"decided_at": self.decided_at.isoformat() if self.decided_at else None,
		}

	@classmethod
	def from_json(cls, data: Mapping[str, Any]) -> "Applicant":
		return cls(
			student_id=str(data["student_id"]),
			applied_at=_parse_ts(data["applied_at"]),
			status=ApplicantStatus(data.get("status") or ApplicantStatus.PENDING.value),
			decided_at=_parse_ts(data.get("decided_at")),
		)


@dataclass(slots=True)
class Referral:
	id: str
	created_by: str
	tenant_id: str
	company: str
	role: str
	description: str
	status: ReferralStatus
	created_at: datetime
	updated_at: datetime
	requirements: Optional[str] = None
	salary_min: Optional[int] = None
	salary_max: Optional[int] = None
	applicants: list[Applicant] = field(default_factory=list)
	accepted_applicant: Optional[str] = None
	closed_at: Optional[datetime] = None

	@property
	def applicant_count(self) -> int:
		return len(self.applicants)

	def find_applicant(self, student_id: str) -> Optional[Applicant]:
		for applicant in self.applicants:
			if applicant.student_id == student_id:
				return applicant
		return None

	def applicants_json(self) -> list[dict[str, Any]]:
		return [applicant.to_json() for applicant in self.applicants]

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Referral":
		return cls(
			id=str(record["id"]),
			created_by=str(record["created_by"]),
			tenant_id=record["tenant_id"],
			company=record["company"],
			role=record["role"],
			description=record["description"],
			status=ReferralStatus(record["status"]),
			created_at=record["created_at"],
			updated_at=record["updated_at"],
			requirements=record.get("requirements"),
			salary_min=record.get("salary_min"),
			salary_max=record.get("salary_max"),
			applicants=[Applicant.from_json(item) for item in record.get("applicants") or []],
			accepted_applicant=record.get("accepted_applicant"),
			closed_at=record.get("closed_at"),
		)
