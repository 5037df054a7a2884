"""Referral postings and applications."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, status

from clubconnect.domain import container
from clubconnect.domain.referrals import schemas
from clubconnect.domain.referrals.service import ReferralService
from clubconnect.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/referrals", tags=["referrals"])


@router.post("", response_model=schemas.ReferralOut, status_code=status.HTTP_201_CREATED)
async def create_referral_endpoint(
	payload: schemas.ReferralCreate,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: ReferralService = Depends(container.get_referral_service),
) -> schemas.ReferralOut:
	referral = await service.create_referral(auth_user.id, payload)
	return schemas.ReferralOut.for_viewer(referral, auth_user.id)


@router.get("", response_model=List[schemas.ReferralOut])
async def list_referrals_endpoint(
	view: schemas.ReferralView = Query(default="open"),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: ReferralService = Depends(container.get_referral_service),
) -> List[schemas.ReferralOut]:
	referrals = await service.list_referrals(auth_user.id, view)
	return [schemas.ReferralOut.for_viewer(item, auth_user.id) for item in referrals]


@router.post("/{referral_id}/apply", response_model=schemas.ReferralOut)
async def apply_to_referral_endpoint(
	referral_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: ReferralService = Depends(container.get_referral_service),
) -> schemas.ReferralOut:
	referral = await service.apply_to_referral(auth_user.id, referral_id)
	return schemas.ReferralOut.for_viewer(referral, auth_user.id)


@router.patch("/{referral_id}/applicants/{student_id}", response_model=schemas.ReferralOut)
async def update_applicant_endpoint(
	referral_id: str,
	student_id: str,
	payload: schemas.ApplicantDecision,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: ReferralService = Depends(container.get_referral_service),
) -> schemas.ReferralOut:
	referral = await service.update_applicant_status(auth_user.id, referral_id, student_id, payload.status)
	return schemas.ReferralOut.for_viewer(referral, auth_user.id)


@router.post("/{referral_id}/close", response_model=schemas.ReferralOut)
async def close_referral_endpoint(
	referral_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: ReferralService = Depends(container.get_referral_service),
) -> schemas.ReferralOut:
	referral = await service.close_referral(auth_user.id, referral_id)
	return schemas.ReferralOut.for_viewer(referral, auth_user.id)
