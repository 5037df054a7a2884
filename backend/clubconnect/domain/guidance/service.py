"""Guidance request lifecycle: request, accept, reply, complete."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from clubconnect.domain.activity import service as activity
from clubconnect.domain.activity.models import ActivityType
from clubconnect.domain.common import Clock, new_id, utcnow
from clubconnect.domain.errors import Forbidden, InvalidStateTransition, NotFound, ValidationFailed
from clubconnect.domain.guidance.models import (
	INBOX_STATUSES,
	GuidanceRequest,
	GuidanceStatus,
	GuidanceType,
	can_transition,
)
from clubconnect.domain.guidance.schemas import GuidanceCreate
from clubconnect.domain.identity import policy
from clubconnect.domain.identity.models import AccountStatus, Role
from clubconnect.domain.store import Store, UnitOfWork
from clubconnect.infra.rate_limit import CooldownLimiter, RateLimitedAction
from clubconnect.obs import metrics

logger = logging.getLogger(__name__)

_COOLDOWN_ACTION = {
	GuidanceType.MENTORSHIP: RateLimitedAction.GUIDANCE_REQUEST,
	GuidanceType.REFERRAL: RateLimitedAction.REFERRAL_REQUEST,
}

REPLY_STATUSES = (GuidanceStatus.REPLIED, GuidanceStatus.COMPLETED)


@dataclass(slots=True)
class InboxEntry:
	request: GuidanceRequest
	expertise_match: bool
	source: str


@dataclass(slots=True)
class MentorStats:
	active_engagements: int
	completed: int
	pending: int
	total: int


def expertise_matches(expertise: Sequence[str], request: GuidanceRequest) -> bool:
	text = f"{request.topic} {request.message}".lower()
	return any(term and term.lower() in text for term in expertise)


async def _load_for_update(uow: UnitOfWork, request_id: str) -> GuidanceRequest:
	request = await uow.get_guidance(request_id, for_update=True)
	if request is None:
		raise NotFound("request_not_found")
	return request


class GuidanceService:
	def __init__(self, store: Store, limiter: CooldownLimiter, *, clock: Clock = utcnow) -> None:
		self._store = store
		self._limiter = limiter
		self._clock = clock

	async def request_guidance(self, student_id: str, payload: GuidanceCreate) -> GuidanceRequest:
		action = _COOLDOWN_ACTION[payload.type]
		now = self._clock()
		# Outside the transaction: store locks never wait on Redis
		await self._limiter.check_rate_limit(student_id, action)
		async with self._store.transaction() as uow:
			student = await policy.require_student(uow, student_id)
			mentor_id = payload.target_mentor_id
			if mentor_id is not None:
				await self._ensure_mentor_available(uow, mentor_id)
			request = GuidanceRequest(
				id=new_id(),
				student_id=student_id,
				mentor_id=mentor_id,
				topic=payload.topic.strip(),
				message=payload.message.strip(),
				type=payload.type,
				status=GuidanceStatus.PENDING,
				tenant_id=student.tenant_id,
				created_at=now,
				updated_at=now,
			)
			await uow.insert_guidance(request)
			await activity.record(
				uow,
				student_id,
				ActivityType.GUIDANCE_REQUESTED,
				at=now,
				details={"request_id": request.id, "topic": request.topic, "mentor_id": mentor_id},
			)
		await self._record_cooldown(student_id, action)
		metrics.inc_guidance_transition(GuidanceStatus.PENDING.value)
		logger.info("guidance_requested", extra={"request_id": request.id, "student_id": student_id})
		return request

	async def _ensure_mentor_available(self, uow: UnitOfWork, mentor_id: str) -> None:
		mentor = await uow.get_account(mentor_id)
		if mentor is None:
			raise NotFound("mentor_not_found")
		meta = await uow.get_alumni_meta(mentor_id)
		if (
			mentor.role is not Role.ALUMNI
			or mentor.status is not AccountStatus.ACTIVE
			or meta is None
			or not meta.mentor_opt_in
		):
			raise ValidationFailed("mentor_unavailable", "The selected mentor is not accepting requests.")

	async def _record_cooldown(self, account_id: str, action: RateLimitedAction) -> None:
		# Post-commit: the request already exists
		try:
			await self._limiter.record_action(account_id, action)
		except Exception:
			logger.error(
				"rate_limit_record_failed",
				exc_info=True,
				extra={"account_id": account_id, "action": action.value},
			)

	async def accept_guidance_request(self, mentor_id: str, request_id: str) -> GuidanceRequest:
		now = self._clock()
		async with self._store.transaction() as uow:
			await policy.require_active_alumni(uow, mentor_id)
			request = await _load_for_update(uow, request_id)
			if request.status is not GuidanceStatus.PENDING:
				raise InvalidStateTransition("request_not_pending")
			if request.mentor_id is not None and request.mentor_id != mentor_id:
				raise Forbidden("request_targeted_elsewhere")
			request.mentor_id = mentor_id
			request.status = GuidanceStatus.ACCEPTED
			request.accepted_at = now
			request.updated_at = now
			await uow.update_guidance(request)
			await activity.record(
				uow,
				mentor_id,
				ActivityType.GUIDANCE_JOINED,
				at=now,
				details={"request_id": request.id, "student_id": request.student_id},
			)
			await activity.record(
				uow,
				request.student_id,
				ActivityType.GUIDANCE_ACCEPTED,
				at=now,
				details={"request_id": request.id, "mentor_id": mentor_id},
			)
		metrics.inc_guidance_transition(GuidanceStatus.ACCEPTED.value)
		logger.info("guidance_accepted", extra={"request_id": request.id, "mentor_id": mentor_id})
		return request

	async def reply_to_guidance(
		self,
		responder_id: str,
		request_id: str,
		response: str,
		status: Optional[GuidanceStatus | str] = None,
	) -> GuidanceRequest:
		try:
			target = GuidanceStatus(status) if status is not None else GuidanceStatus.COMPLETED
		except ValueError:
			raise ValidationFailed("invalid_reply_status") from None
		if target not in REPLY_STATUSES:
			raise ValidationFailed("invalid_reply_status")
		now = self._clock()
		async with self._store.transaction() as uow:
			responder = await policy.require_account(uow, responder_id, statuses=(AccountStatus.ACTIVE,))
			request = await _load_for_update(uow, request_id)
			is_mentor = request.mentor_id is not None and request.mentor_id == responder_id
			if not is_mentor and not policy.is_active_admin(responder):
				raise Forbidden("not_assigned_mentor")
			if not can_transition(request.status, target):
				raise InvalidStateTransition(f"cannot_reply_from_{request.status.value}")
			request.response = response.strip()
			request.responder_id = responder_id
			request.status = target
			request.responded_at = now
			request.updated_at = now
			if target is GuidanceStatus.COMPLETED:
				request.completed_at = now
			await uow.update_guidance(request)
			await activity.record(
				uow,
				responder_id,
				ActivityType.GUIDANCE_REPLIED,
				at=now,
				details={"request_id": request.id, "status": target.value},
			)
			await activity.record(
				uow,
				request.student_id,
				ActivityType.GUIDANCE_RESPONSE_RECEIVED,
				at=now,
				details={"request_id": request.id, "responder_id": responder_id},
			)
		metrics.inc_guidance_transition(target.value)
		return request

	async def complete_guidance(self, actor_id: str, request_id: str) -> GuidanceRequest:
		now = self._clock()
		async with self._store.transaction() as uow:
			actor = await policy.require_account(uow, actor_id)
			request = await _load_for_update(uow, request_id)
			involved = actor_id in (request.student_id, request.mentor_id)
			if not involved and not policy.is_active_admin(actor):
				raise Forbidden("not_a_participant")
			if request.status not in (GuidanceStatus.ACCEPTED, GuidanceStatus.REPLIED):
				raise InvalidStateTransition(f"cannot_complete_from_{request.status.value}")
			request.status = GuidanceStatus.COMPLETED
			request.completed_at = now
			request.updated_at = now
			await uow.update_guidance(request)
			for account_id in {request.student_id, request.mentor_id}:
				if account_id:
					await activity.record(
						uow,
						account_id,
						ActivityType.GUIDANCE_COMPLETED,
						at=now,
						details={"request_id": request.id, "completed_by": actor_id},
					)
		metrics.inc_guidance_transition(GuidanceStatus.COMPLETED.value)
		return request

	async def get_filtered_requests(self, alumni_id: str) -> list[InboxEntry]:
		"""Requests assigned to this alumnus plus the open pool."""
		async with self._store.reader() as uow:
			await policy.require_active_alumni(uow, alumni_id)
			meta = await uow.get_alumni_meta(alumni_id)
			assigned = await uow.list_guidance_for_mentor(alumni_id, INBOX_STATUSES)
			open_pool = await uow.list_open_guidance()
		expertise = meta.expertise if meta else []
		entries = [
			InboxEntry(request=request, expertise_match=expertise_matches(expertise, request), source="assigned")
			for request in assigned
		]
		entries.extend(
			InboxEntry(request=request, expertise_match=expertise_matches(expertise, request), source="open")
			for request in open_pool
			if request.mentor_id is None and request.status is GuidanceStatus.PENDING
		)
		return entries

	async def list_student_requests(self, student_id: str) -> Sequence[GuidanceRequest]:
		async with self._store.reader() as uow:
			await policy.require_account(uow, student_id, roles=(Role.STUDENT,), reason="student_required")
			return await uow.list_guidance_for_student(student_id)

	async def mentor_stats(self, alumni_id: str) -> MentorStats:
		async with self._store.reader() as uow:
			await policy.require_account(uow, alumni_id, roles=(Role.ALUMNI,), reason="alumni_required")
			assigned = await uow.list_guidance_for_mentor(alumni_id)
		by_status = {status: 0 for status in GuidanceStatus}
		for request in assigned:
			by_status[request.status] += 1
		return MentorStats(
			active_engagements=by_status[GuidanceStatus.ACCEPTED],
			completed=by_status[GuidanceStatus.REPLIED] + by_status[GuidanceStatus.COMPLETED],
			pending=by_status[GuidanceStatus.PENDING],
			total=len(assigned),
		)
