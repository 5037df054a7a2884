"""Pydantic schemas for referral postings and applications."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from clubconnect.domain.referrals.models import ApplicantStatus, Referral, ReferralStatus

ReferralView = Literal["open", "created", "applied"]


class ReferralCreate(BaseModel):
	company: Annotated[str, Field(min_length=2, max_length=100)]
	role: Annotated[str, Field(min_length=2, max_length=100)]
	description: Annotated[str, Field(min_length=10, max_length=2000)]
	requirements: Optional[Annotated[str, Field(max_length=1000)]] = None
	salary_min: Optional[Annotated[int, Field(ge=0)]] = None
	salary_max: Optional[Annotated[int, Field(ge=0)]] = None

	@model_validator(mode="after")
	def _salary_range(self) -> "ReferralCreate":
		if self.salary_min is not None and self.salary_max is not None and self.salary_min > self.salary_max:
			raise ValueError("salary_min must not exceed salary_max")
		return self


class ApplicantDecision(BaseModel):
	status: ApplicantStatus


class ApplicantOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	student_id: str
	applied_at: datetime
	status: ApplicantStatus
	decided_at: Optional[datetime] = None


class ReferralOut(BaseModel):
	id: str
	created_by: str
	company: str
	role: str
	description: str
	requirements: Optional[str] = None
	salary_min: Optional[int] = None
	salary_max: Optional[int] = None
	status: ReferralStatus
	applicant_count: int
	applicants: list[ApplicantOut] = Field(default_factory=list)
	accepted_applicant: Optional[str] = None
	created_at: datetime
	updated_at: datetime
	closed_at: Optional[datetime] = None

	@classmethod
	def for_viewer(cls, referral: Referral, viewer_id: str) -> "ReferralOut":
		"""Creators see every applicant; everyone else only their own entry."""
		if viewer_id == referral.created_by:
			visible = referral.applicants
		else:
			visible = [item for item in referral.applicants if item.student_id == viewer_id]
		accepted = referral.accepted_applicant
		if viewer_id != referral.created_by and accepted != viewer_id:
			accepted = None
		return cls(
			id=referral.id,
			created_by=referral.created_by,
			company=referral.company,
			role=referral.role,
			description=referral.description,
			requirements=referral.requirements,
			salary_min=referral.salary_min,
			salary_max=referral.salary_max,
			status=referral.status,
			applicant_count=referral.applicant_count,
			applicants=[ApplicantOut.model_validate(item) for item in visible],
			accepted_applicant=accepted,
			created_at=referral.created_at,
			updated_at=referral.updated_at,
			closed_at=referral.closed_at,
		)
