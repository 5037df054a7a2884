"""Mentor recommendations and browsing."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from clubconnect.domain import container
from clubconnect.domain.matching import schemas
from clubconnect.domain.matching.service import MatchingService
from clubconnect.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/mentors", tags=["mentors"])


@router.get("/recommendations", response_model=schemas.RecommendationsOut)
async def recommend_mentors_endpoint(
	skills: Optional[str] = Query(default=None, description="Comma separated override of the profile skills"),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchingService = Depends(container.get_matching_service),
) -> schemas.RecommendationsOut:
	override = [part for part in skills.split(",") if part.strip()] if skills is not None else None
	result = await service.recommend_for_student(auth_user.id, override)
	return schemas.RecommendationsOut(
		recommendations=[schemas.MentorRecommendation.from_match(match) for match in result.matches],
		total_matches=result.total_matches,
		hint=result.hint,
	)


@router.get("", response_model=schemas.MentorListOut)
async def list_mentors_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: MatchingService = Depends(container.get_matching_service),
) -> schemas.MentorListOut:
	mentors = await service.list_available_mentors(auth_user.id)
	return schemas.MentorListOut(mentors=[schemas.MentorCard.from_candidate(item) for item in mentors])
