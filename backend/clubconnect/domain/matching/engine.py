"""Mentor scoring.

Pure functions: given a student's skills and a snapshot of the alumni pool,
rank eligible mentors by a weighted composite of

* skill overlap (50%): |S ∩ E| / min(|S|, |E|)
* experience (25%): years since graduation, saturating at 20
* rating (25%): average student rating out of 5

Candidates scoring zero are dropped. Ties are broken by account id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from clubconnect.domain.common import normalise_terms
from clubconnect.domain.identity.models import Account, AccountStatus, AlumniMeta, Profile

SKILL_WEIGHT = 0.5
EXPERIENCE_WEIGHT = 0.25
RATING_WEIGHT = 0.25
EXPERIENCE_SATURATION_YEARS = 20
MAX_RATING = 5.0


@dataclass(slots=True)
class MentorCandidate:
	account_id: str
	status: AccountStatus
	mentor_opt_in: bool
	expertise: list[str] = field(default_factory=list)
	grad_year: Optional[int] = None
	average_rating: float = 0.0
	rating_count: int = 0
	display_name: Optional[str] = None
	company: Optional[str] = None
	job_title: Optional[str] = None

	@property
	def is_eligible(self) -> bool:
		return self.status is AccountStatus.ACTIVE and self.mentor_opt_in

	@classmethod
	def from_pool_row(cls, account: Account, meta: AlumniMeta, profile: Optional[Profile] = None) -> "MentorCandidate":
		return cls(
			account_id=account.id,
			status=account.status,
			mentor_opt_in=meta.mentor_opt_in,
			expertise=list(meta.expertise),
			grad_year=meta.grad_year,
			average_rating=meta.average_rating,
			rating_count=meta.rating_count,
			display_name=profile.display_name if profile else None,
			company=meta.company,
			job_title=meta.job_title,
		)


@dataclass(slots=True)
class MentorMatch:
	candidate: MentorCandidate
	score: float
	skill_score: float
	experience_score: float
	rating_score: float
	skill_matches: list[str] = field(default_factory=list)

	@property
	def account_id(self) -> str:
		return self.candidate.account_id


def skill_score(student_skills: Sequence[str], expertise: Sequence[str]) -> tuple[float, list[str]]:
	skills = normalise_terms(student_skills)
	terms = set(normalise_terms(expertise))
	if not skills or not terms:
		return 0.0, []
	matches = [skill for skill in skills if skill in terms]
	return len(matches) / min(len(skills), len(terms)) * SKILL_WEIGHT, matches


def experience_score(grad_year: Optional[int], current_year: int) -> float:
	if grad_year is None:
		return 0.0
	years = max(0, current_year - grad_year)
	return min(years / EXPERIENCE_SATURATION_YEARS, 1.0) * EXPERIENCE_WEIGHT


def rating_score(average_rating: float) -> float:
	return min(max(average_rating, 0.0) / MAX_RATING, 1.0) * RATING_WEIGHT


def score_candidate(student_skills: Sequence[str], candidate: MentorCandidate, current_year: int) -> MentorMatch:
	skill, matches = skill_score(student_skills, candidate.expertise)
	experience = experience_score(candidate.grad_year, current_year)
	rating = rating_score(candidate.average_rating)
	return MentorMatch(
		candidate=candidate,
		score=skill + experience + rating,
		skill_score=skill,
		experience_score=experience,
		rating_score=rating,
		skill_matches=matches,
	)


def recommend_mentors(
	student_skills: Sequence[str],
	pool: Iterable[MentorCandidate],
	current_year: int,
) -> list[MentorMatch]:
	"""Rank every eligible candidate with a positive score, best first."""
	matches = [
		score_candidate(student_skills, candidate, current_year)
		for candidate in pool
		if candidate.is_eligible
	]
	matches = [match for match in matches if match.score > 0]
	matches.sort(key=lambda match: (-match.score, match.account_id))
	return matches


def browse_mentors(pool: Iterable[MentorCandidate]) -> list[MentorCandidate]:
	"""All eligible mentors, highest rated first."""
	eligible = [candidate for candidate in pool if candidate.is_eligible]
	eligible.sort(key=lambda candidate: (-candidate.average_rating, candidate.account_id))
	return eligible
