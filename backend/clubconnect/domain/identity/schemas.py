"""Pydantic schemas for registration, alumni settings and account views."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from clubconnect.domain.activity.models import ActivityType
from clubconnect.domain.identity.models import AccountStatus, Role

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

Email = Annotated[str, Field(pattern=EMAIL_PATTERN, max_length=254)]
DisplayName = Annotated[str, Field(min_length=2, max_length=50)]
Tag = Annotated[str, Field(min_length=1, max_length=40)]
GradYear = Annotated[int, Field(ge=1980, le=2030)]


class StudentRegistration(BaseModel):
	email: Email
	display_name: DisplayName
	bio: Annotated[str, Field(max_length=500)] = ""
	skills: list[Tag] = Field(default_factory=list, max_length=15)


class AlumniDetails(BaseModel):
	company: Annotated[str, Field(min_length=1, max_length=100)]
	job_title: Annotated[str, Field(min_length=1, max_length=100)]
	grad_year: GradYear
	expertise: list[Tag] = Field(..., min_length=1, max_length=10)


class AlumniRegistration(AlumniDetails):
	email: Email
	display_name: DisplayName
	bio: Annotated[str, Field(max_length=500)] = ""
	mentor_opt_in: bool = False
	referral_opt_in: bool = False


class AlumniTransition(AlumniDetails):
	pass


class AlumniPreferencesUpdate(BaseModel):
	mentor_opt_in: Optional[bool] = None
	referral_opt_in: Optional[bool] = None
	expertise: Optional[Annotated[list[Tag], Field(min_length=1, max_length=10)]] = None


class ProfileOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	display_name: str
	bio: str = ""
	skills: list[str] = Field(default_factory=list)


class AlumniMetaOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	company: str
	job_title: str
	grad_year: Optional[int] = None
	expertise: list[str] = Field(default_factory=list)
	mentor_opt_in: bool
	referral_opt_in: bool
	average_rating: float
	rating_count: int


class AccountOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	role: Role
	status: AccountStatus
	tenant_id: str
	email: str
	created_at: datetime
	updated_at: datetime
	status_changed_at: Optional[datetime] = None
	status_reason: Optional[str] = None
	suspension_end: Optional[datetime] = None


class AccountDetailsOut(BaseModel):
	account: AccountOut
	profile: Optional[ProfileOut] = None
	alumni: Optional[AlumniMetaOut] = None


class ActivityOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	type: ActivityType
	details: dict[str, Any] = Field(default_factory=dict)
	created_at: datetime
