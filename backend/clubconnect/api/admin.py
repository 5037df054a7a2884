"""Admin console: account moderation, safety reports, audit log and announcements."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from clubconnect.domain import container
from clubconnect.domain.admin import schemas
from clubconnect.domain.admin.models import ReportStatus
from clubconnect.domain.admin.service import AdminService
from clubconnect.domain.identity.schemas import AccountOut
from clubconnect.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/admin", tags=["admin"])
announcements_router = APIRouter(prefix="/announcements", tags=["announcements"])


@router.post("/accounts/{account_id}/approve", response_model=AccountOut)
async def approve_alumni_endpoint(
	account_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: AdminService = Depends(container.get_admin_service),
) -> AccountOut:
	return AccountOut.model_validate(await service.approve_alumni(auth_user.id, account_id))


@router.post("/accounts/{account_id}/reject", response_model=AccountOut)
async def reject_alumni_endpoint(
	account_id: str,
	payload: schemas.ReasonPayload,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: AdminService = Depends(container.get_admin_service),
) -> AccountOut:
	return AccountOut.model_validate(await service.reject_alumni(auth_user.id, account_id, payload.reason))


@router.post("/accounts/{account_id}/suspend", response_model=AccountOut)
async def suspend_user_endpoint(
	account_id: str,
	payload: schemas.ReasonPayload,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: AdminService = Depends(container.get_admin_service),
) -> AccountOut:
	return AccountOut.model_validate(await service.suspend_user(auth_user.id, account_id, payload.reason))


@router.post("/accounts/{account_id}/block", response_model=AccountOut)
async def block_user_endpoint(
	account_id: str,
	payload: schemas.ReasonPayload,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: AdminService = Depends(container.get_admin_service),
) -> AccountOut:
	return AccountOut.model_validate(await service.block_user(auth_user.id, account_id, payload.reason))


@router.post("/accounts/{account_id}/promote", response_model=AccountOut)
async def promote_to_admin_endpoint(
	account_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: AdminService = Depends(container.get_admin_service),
) -> AccountOut:
	return AccountOut.model_validate(await service.promote_to_admin(auth_user.id, account_id))


@router.get("/search", response_model=List[schemas.SearchHit])
async def search_users_endpoint(
	q: str = Query(default=""),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: AdminService = Depends(container.get_admin_service),
) -> List[schemas.SearchHit]:
	hits = await service.search_users(auth_user.id, q)
	return [
		schemas.SearchHit(
			account=AccountOut.model_validate(account),
			display_name=profile.display_name if profile else None,
		)
		for account, profile in hits
	]


@router.post("/reports/{report_id}/resolve", response_model=schemas.ResolutionOut)
async def resolve_report_endpoint(
	report_id: str,
	payload: schemas.ReportResolution,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: AdminService = Depends(container.get_admin_service),
) -> schemas.ResolutionOut:
	result = await service.resolve_safety_report(auth_user.id, report_id, payload.resolution, payload.action)
	return schemas.ResolutionOut.model_validate(result, from_attributes=True)


@router.get("/audit", response_model=List[schemas.AuditEntryOut])
async def audit_log_endpoint(
	limit: int = Query(default=50, ge=1, le=200),
	target_id: Optional[str] = Query(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: AdminService = Depends(container.get_admin_service),
) -> List[schemas.AuditEntryOut]:
	entries = await service.list_audit_log(auth_user.id, limit=limit, target_id=target_id)
	return [schemas.AuditEntryOut.model_validate(entry) for entry in entries]


@router.get("/dashboard", response_model=schemas.DashboardOut)
async def dashboard_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: AdminService = Depends(container.get_admin_service),
) -> schemas.DashboardOut:
	return schemas.DashboardOut.model_validate(await service.dashboard(auth_user.id), from_attributes=True)


@router.get("/reports", response_model=List[schemas.SafetyReportOut])
async def list_reports_endpoint(
	status_filter: Optional[ReportStatus] = Query(default=ReportStatus.PENDING, alias="status"),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: AdminService = Depends(container.get_admin_service),
) -> List[schemas.SafetyReportOut]:
	reports = await service.list_reports(auth_user.id, status=status_filter)
	return [schemas.SafetyReportOut.model_validate(item) for item in reports]


@announcements_router.post("", response_model=schemas.AnnouncementOut, status_code=status.HTTP_201_CREATED)
async def create_announcement_endpoint(
	payload: schemas.AnnouncementCreate,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: AdminService = Depends(container.get_admin_service),
) -> schemas.AnnouncementOut:
	return schemas.AnnouncementOut.model_validate(await service.create_announcement(auth_user.id, payload))


@announcements_router.get("", response_model=List[schemas.AnnouncementOut])
async def list_announcements_endpoint(
	limit: int = Query(default=20, ge=1, le=100),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: AdminService = Depends(container.get_admin_service),
) -> List[schemas.AnnouncementOut]:
	items = await service.list_announcements(auth_user.id, limit=limit)
	return [schemas.AnnouncementOut.model_validate(item) for item in items]
