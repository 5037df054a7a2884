"""Guidance request lifecycle endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from clubconnect.domain import container
from clubconnect.domain.guidance import schemas
from clubconnect.domain.guidance.service import GuidanceService, InboxEntry
from clubconnect.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/guidance", tags=["guidance"])


def _inbox_item(entry: InboxEntry) -> schemas.InboxItem:
	base = schemas.GuidanceOut.model_validate(entry.request)
	return schemas.InboxItem(**base.model_dump(), expertise_match=entry.expertise_match, source=entry.source)


@router.post("", response_model=schemas.GuidanceOut, status_code=status.HTTP_201_CREATED)
async def request_guidance_endpoint(
	payload: schemas.GuidanceCreate,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GuidanceService = Depends(container.get_guidance_service),
) -> schemas.GuidanceOut:
	request = await service.request_guidance(auth_user.id, payload)
	return schemas.GuidanceOut.model_validate(request)


@router.get("/inbox", response_model=List[schemas.InboxItem])
async def inbox_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GuidanceService = Depends(container.get_guidance_service),
) -> List[schemas.InboxItem]:
	return [_inbox_item(entry) for entry in await service.get_filtered_requests(auth_user.id)]


@router.get("/mine", response_model=List[schemas.GuidanceOut])
async def my_requests_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GuidanceService = Depends(container.get_guidance_service),
) -> List[schemas.GuidanceOut]:
	requests = await service.list_student_requests(auth_user.id)
	return [schemas.GuidanceOut.model_validate(item) for item in requests]


@router.get("/stats", response_model=schemas.MentorStatsOut)
async def mentor_stats_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GuidanceService = Depends(container.get_guidance_service),
) -> schemas.MentorStatsOut:
	return schemas.MentorStatsOut.model_validate(await service.mentor_stats(auth_user.id))


@router.post("/{request_id}/accept", response_model=schemas.GuidanceOut)
async def accept_guidance_endpoint(
	request_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GuidanceService = Depends(container.get_guidance_service),
) -> schemas.GuidanceOut:
	request = await service.accept_guidance_request(auth_user.id, request_id)
	return schemas.GuidanceOut.model_validate(request)


@router.post("/{request_id}/reply", response_model=schemas.GuidanceOut)
async def reply_guidance_endpoint(
	request_id: str,
	payload: schemas.GuidanceReply,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GuidanceService = Depends(container.get_guidance_service),
) -> schemas.GuidanceOut:
	request = await service.reply_to_guidance(auth_user.id, request_id, payload.response, payload.status)
	return schemas.GuidanceOut.model_validate(request)


@router.post("/{request_id}/complete", response_model=schemas.GuidanceOut)
async def complete_guidance_endpoint(
	request_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GuidanceService = Depends(container.get_guidance_service),
) -> schemas.GuidanceOut:
	request = await service.complete_guidance(auth_user.id, request_id)
	return schemas.GuidanceOut.model_validate(request)
