"""Mentor recommendation and browsing over the live alumni pool."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from clubconnect.domain.common import Clock, normalise_terms, utcnow
from clubconnect.domain.identity import policy
from clubconnect.domain.matching import engine
from clubconnect.domain.store import Store
from clubconnect.settings import settings

NO_SKILLS_HINT = "Add skills to your profile to get personalised mentor recommendations."


@dataclass(slots=True)
class Recommendations:
	matches: list[engine.MentorMatch] = field(default_factory=list)
	total_matches: int = 0
	hint: Optional[str] = None


class MatchingService:
	def __init__(self, store: Store, *, clock: Clock = utcnow, limit: Optional[int] = None) -> None:
		self._store = store
		self._clock = clock
		self._limit = limit if limit is not None else settings.mentor_recommendation_limit

	async def _load_pool(self, uow) -> list[engine.MentorCandidate]:
		rows = await uow.list_alumni_pool()
		return [engine.MentorCandidate.from_pool_row(account, meta, profile) for account, meta, profile in rows]

	async def recommend_for_student(self, student_id: str, skills: Optional[Sequence[str]] = None) -> Recommendations:
		async with self._store.reader() as uow:
			await policy.require_student(uow, student_id)
			if skills is None:
				profile = await uow.get_profile(student_id)
				skills = profile.skills if profile else []
			skills = normalise_terms(skills)
			if not skills:
				return Recommendations(hint=NO_SKILLS_HINT)
			pool = await self._load_pool(uow)
		ranked = engine.recommend_mentors(skills, pool, self._clock().year)
		return Recommendations(matches=ranked[: self._limit], total_matches=len(ranked))

	async def list_available_mentors(self, caller_id: str) -> list[engine.MentorCandidate]:
		async with self._store.reader() as uow:
			await policy.require_participant(uow, caller_id)
			pool = await self._load_pool(uow)
		return engine.browse_mentors(pool)
