"""Safety reports filed by mentors against students."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from clubconnect.domain import container
from clubconnect.domain.admin.safety import SafetyService
from clubconnect.domain.admin.schemas import ReportCreate, SafetyReportOut
from clubconnect.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/safety", tags=["safety"])


@router.post("/reports", response_model=SafetyReportOut, status_code=status.HTTP_201_CREATED)
async def report_student_endpoint(
	payload: ReportCreate,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: SafetyService = Depends(container.get_safety_service),
) -> SafetyReportOut:
	report = await service.report_student(auth_user.id, payload)
	return SafetyReportOut.model_validate(report)
