"""Pydantic schemas for mentor recommendations and browsing."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from clubconnect.domain.matching.engine import MentorCandidate, MentorMatch


class MentorCard(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	account_id: str
	display_name: Optional[str] = None
	company: Optional[str] = None
	job_title: Optional[str] = None
	grad_year: Optional[int] = None
	expertise: list[str] = Field(default_factory=list)
	average_rating: float = 0.0
	rating_count: int = 0

	@classmethod
	def from_candidate(cls, candidate: MentorCandidate) -> "MentorCard":
		return cls.model_validate(candidate)


class MentorRecommendation(BaseModel):
	mentor: MentorCard
	score: float
	skill_score: float
	experience_score: float
	rating_score: float
	skill_matches: list[str] = Field(default_factory=list)

	@classmethod
	def from_match(cls, match: MentorMatch) -> "MentorRecommendation":
		return cls(
			mentor=MentorCard.from_candidate(match.candidate),
			score=round(match.score, 4),
			skill_score=round(match.skill_score, 4),
			experience_score=round(match.experience_score, 4),
			rating_score=round(match.rating_score, 4),
			skill_matches=list(match.skill_matches),
		)


class RecommendationsOut(BaseModel):
	recommendations: list[MentorRecommendation]
	total_matches: int
	hint: Optional[str] = None


class MentorListOut(BaseModel):
	mentors: list[MentorCard]
