"""Pydantic schemas for guidance requests."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from clubconnect.domain.guidance.models import GuidanceStatus, GuidanceType


class GuidanceCreate(BaseModel):
	topic: Annotated[str, Field(min_length=5, max_length=100)]
	message: Annotated[str, Field(min_length=10, max_length=1000)]
	type: GuidanceType = GuidanceType.MENTORSHIP
	target_mentor_id: Optional[str] = Field(default=None, description="Pre-target one mentor; omit for the open pool")


class GuidanceReply(BaseModel):
	response: Annotated[str, Field(min_length=10, max_length=1000)]
	status: Optional[Literal["replied", "completed"]] = None


class GuidanceOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	student_id: str
	mentor_id: Optional[str] = None
	topic: str
	message: str
	type: GuidanceType
	status: GuidanceStatus
	response: Optional[str] = None
	responder_id: Optional[str] = None
	created_at: datetime
	updated_at: datetime
	accepted_at: Optional[datetime] = None
	responded_at: Optional[datetime] = None
	completed_at: Optional[datetime] = None


class InboxItem(GuidanceOut):
	expertise_match: bool = False
	source: Literal["assigned", "open"]


class MentorStatsOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	active_engagements: int
	completed: int
	pending: int
	total: int
