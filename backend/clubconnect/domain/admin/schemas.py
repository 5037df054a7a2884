"""Pydantic schemas for the admin console and safety reports."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from clubconnect.domain.admin.models import AnnouncementType, ReportAction, ReportStatus
from clubconnect.domain.audit.models import AuditAction
from clubconnect.domain.identity.schemas import AccountOut


class ReasonPayload(BaseModel):
	reason: Annotated[str, Field(min_length=5, max_length=500)]


class ReportCreate(BaseModel):
	student_id: str
	reason: Annotated[str, Field(min_length=10, max_length=500)]
	related_request_id: Optional[str] = None


class ReportResolution(BaseModel):
	resolution: Annotated[str, Field(min_length=5, max_length=500)]
	action: ReportAction = ReportAction.NONE


class AnnouncementCreate(BaseModel):
	title: Annotated[str, Field(min_length=5, max_length=100)]
	content: Annotated[str, Field(min_length=10, max_length=1000)]
	type: AnnouncementType = AnnouncementType.INFO


class SafetyReportOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	reporter_id: str
	student_id: str
	reason: str
	related_request_id: Optional[str] = None
	status: ReportStatus
	resolution: Optional[str] = None
	admin_action: Optional[ReportAction] = None
	resolved_by: Optional[str] = None
	created_at: datetime
	resolved_at: Optional[datetime] = None


class AnnouncementOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	author_id: str
	title: str
	content: str
	type: AnnouncementType
	created_at: datetime


class AuditEntryOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	actor_id: str
	action: AuditAction
	target_id: str
	metadata: dict[str, Any] = Field(default_factory=dict)
	created_at: datetime


class SearchHit(BaseModel):
	account: AccountOut
	display_name: Optional[str] = None


class ResolutionOut(BaseModel):
	report: SafetyReportOut
	suspended: Optional[AccountOut] = None


class DashboardOut(BaseModel):
	pending_alumni: list[AccountOut]
	pending_reports: list[SafetyReportOut]
	recent_audit: list[AuditEntryOut]
	announcements: list[AnnouncementOut]
	account_counts: dict[str, dict[str, int]]
