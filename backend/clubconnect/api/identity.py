"""Account registration, alumni settings and activity history."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, status

from clubconnect.domain import container
from clubconnect.domain.identity import schemas
from clubconnect.domain.identity.service import AccountDetails, IdentityService
from clubconnect.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/accounts", tags=["accounts"])


def _details_out(details: AccountDetails) -> schemas.AccountDetailsOut:
	return schemas.AccountDetailsOut.model_validate(details, from_attributes=True)


@router.post("/students", response_model=schemas.AccountDetailsOut, status_code=status.HTTP_201_CREATED)
async def register_student_endpoint(
	payload: schemas.StudentRegistration,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: IdentityService = Depends(container.get_identity_service),
) -> schemas.AccountDetailsOut:
	details = await service.register_student(auth_user.id, auth_user.tenant_id, payload)
	return _details_out(details)


@router.post("/alumni", response_model=schemas.AccountDetailsOut, status_code=status.HTTP_201_CREATED)
async def register_alumni_endpoint(
	payload: schemas.AlumniRegistration,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: IdentityService = Depends(container.get_identity_service),
) -> schemas.AccountDetailsOut:
	details = await service.register_alumni(auth_user.id, auth_user.tenant_id, payload)
	return _details_out(details)


@router.get("/me", response_model=schemas.AccountDetailsOut)
async def get_me_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: IdentityService = Depends(container.get_identity_service),
) -> schemas.AccountDetailsOut:
	return _details_out(await service.get_details(auth_user.id))


@router.post("/me/alumni-transition", response_model=schemas.AccountDetailsOut)
async def transition_to_alumni_endpoint(
	payload: schemas.AlumniTransition,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: IdentityService = Depends(container.get_identity_service),
) -> schemas.AccountDetailsOut:
	return _details_out(await service.transition_to_alumni(auth_user.id, payload))


@router.patch("/me/alumni-preferences", response_model=schemas.AlumniMetaOut)
async def update_alumni_preferences_endpoint(
	payload: schemas.AlumniPreferencesUpdate,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: IdentityService = Depends(container.get_identity_service),
) -> schemas.AlumniMetaOut:
	meta = await service.update_alumni_preferences(auth_user.id, payload)
	return schemas.AlumniMetaOut.model_validate(meta)


@router.get("/{account_id}/activity", response_model=List[schemas.ActivityOut])
async def list_activity_endpoint(
	account_id: str,
	limit: int = Query(default=50, ge=1, le=200),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: IdentityService = Depends(container.get_identity_service),
) -> List[schemas.ActivityOut]:
	entries = await service.get_activity(auth_user.id, account_id, limit=limit)
	return [schemas.ActivityOut.model_validate(entry) for entry in entries]
