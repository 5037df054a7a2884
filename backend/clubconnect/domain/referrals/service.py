"""Referral postings: create, apply, decide, close.

Accepting an applicant never changes the other applicants' statuses. Only the
most recent acceptance is held in ``accepted_applicant``; moving that applicant
back to pending or rejected clears it.
"""

from __future__ import annotations

import logging
from typing import Sequence

from clubconnect.domain.activity import service as activity
from clubconnect.domain.activity.models import ActivityType
from clubconnect.domain.common import Clock, new_id, utcnow
from clubconnect.domain.errors import Conflict, Forbidden, InvalidState, NotFound, ValidationFailed
from clubconnect.domain.identity import policy
from clubconnect.domain.identity.models import AccountStatus
from clubconnect.domain.referrals.models import (
	Applicant,
	ApplicantStatus,
	Referral,
	ReferralStatus,
)
from clubconnect.domain.referrals.schemas import ReferralCreate
from clubconnect.domain.store import Store, UnitOfWork
from clubconnect.obs import metrics

logger = logging.getLogger(__name__)


async def _load_for_update(uow: UnitOfWork, referral_id: str) -> Referral:
	referral = await uow.get_referral(referral_id, for_update=True)
	if referral is None:
		raise NotFound("referral_not_found")
	return referral


def _guard_owner(referral: Referral, actor_id: str) -> None:
	if referral.created_by != actor_id:
		raise Forbidden("not_referral_owner")


class ReferralService:
	def __init__(self, store: Store, *, clock: Clock = utcnow) -> None:
		self._store = store
		self._clock = clock

	async def create_referral(self, alumni_id: str, payload: ReferralCreate) -> Referral:
		now = self._clock()
		async with self._store.transaction() as uow:
			account = await policy.require_active_alumni(uow, alumni_id)
			meta = await uow.get_alumni_meta(alumni_id)
			if meta is None or not meta.referral_opt_in:
				raise Forbidden("referral_opt_in_required")
			referral = Referral(
				id=new_id(),
				created_by=alumni_id,
				tenant_id=account.tenant_id,
				company=payload.company.strip(),
				role=payload.role.strip(),
				description=payload.description.strip(),
				requirements=payload.requirements,
				salary_min=payload.salary_min,
				salary_max=payload.salary_max,
				status=ReferralStatus.OPEN,
				created_at=now,
				updated_at=now,
			)
			await uow.insert_referral(referral)
			await activity.record(
				uow,
				alumni_id,
				ActivityType.REFERRAL_CREATED,
				at=now,
				details={"referral_id": referral.id, "company": referral.company, "role": referral.role},
			)
		metrics.inc_referral_event("created")
		return referral

	async def apply_to_referral(self, student_id: str, referral_id: str) -> Referral:
		now = self._clock()
		async with self._store.transaction() as uow:
			await policy.require_student(uow, student_id)
			referral = await _load_for_update(uow, referral_id)
			if referral.status is not ReferralStatus.OPEN:
				raise InvalidState("referral_closed", "This referral is no longer accepting applications.")
			if referral.find_applicant(student_id) is not None:
				raise Conflict("already_applied", "You have already applied to this referral.")
			referral.applicants.append(Applicant(student_id=student_id, applied_at=now))
			referral.updated_at = now
			await uow.update_referral(referral)
			await activity.record(
				uow,
				student_id,
				ActivityType.REFERRAL_APPLIED,
				at=now,
				details={"referral_id": referral.id, "company": referral.company, "role": referral.role},
			)
			await activity.record(
				uow,
				referral.created_by,
				ActivityType.REFERRAL_APPLICATION_RECEIVED,
				at=now,
				details={"referral_id": referral.id, "student_id": student_id},
			)
		metrics.inc_referral_event("applied")
		return referral

	async def update_applicant_status(
		self,
		actor_id: str,
		referral_id: str,
		student_id: str,
		status: ApplicantStatus | str,
	) -> Referral:
		try:
			new_status = ApplicantStatus(status)
		except ValueError:
			raise ValidationFailed("invalid_applicant_status") from None
		now = self._clock()
		async with self._store.transaction() as uow:
			await policy.require_account(uow, actor_id, statuses=(AccountStatus.ACTIVE,))
			referral = await _load_for_update(uow, referral_id)
			_guard_owner(referral, actor_id)
			applicant = referral.find_applicant(student_id)
			if applicant is None:
				raise NotFound("applicant_not_found")
			previous = applicant.status
			applicant.status = new_status
			applicant.decided_at = None if new_status is ApplicantStatus.PENDING else now
			if new_status is ApplicantStatus.ACCEPTED:
				referral.accepted_applicant = student_id
			elif referral.accepted_applicant == student_id:
				referral.accepted_applicant = None
			referral.updated_at = now
			await uow.update_referral(referral)
			details = {
				"referral_id": referral.id,
				"student_id": student_id,
				"previous_status": previous.value,
				"status": new_status.value,
			}
			await activity.record(uow, actor_id, ActivityType.REFERRAL_STATUS_UPDATED, at=now, details=details)
			await activity.record(uow, student_id, ActivityType.REFERRAL_STATUS_UPDATED, at=now, details=details)
		metrics.inc_referral_event(f"applicant_{new_status.value}")
		return referral

	async def close_referral(self, actor_id: str, referral_id: str) -> Referral:
		now = self._clock()
		async with self._store.transaction() as uow:
			await policy.require_account(uow, actor_id, statuses=(AccountStatus.ACTIVE,))
			referral = await _load_for_update(uow, referral_id)
			_guard_owner(referral, actor_id)
			if referral.status is ReferralStatus.CLOSED:
				raise InvalidState("referral_closed", "This referral is already closed.")
			referral.status = ReferralStatus.CLOSED
			referral.closed_at = now
			referral.updated_at = now
			await uow.update_referral(referral)
			details = {"referral_id": referral.id, "company": referral.company, "role": referral.role}
			await activity.record(uow, actor_id, ActivityType.REFERRAL_CLOSED, at=now, details=details)
			for applicant in referral.applicants:
				if applicant.status is ApplicantStatus.PENDING:
					await activity.record(uow, applicant.student_id, ActivityType.REFERRAL_CLOSED, at=now, details=details)
		metrics.inc_referral_event("closed")
		logger.info("referral_closed", extra={"referral_id": referral.id, "actor_id": actor_id})
		return referral

	async def list_referrals(self, caller_id: str, view: str = "open") -> Sequence[Referral]:
		async with self._store.reader() as uow:
			await policy.require_participant(uow, caller_id)
			if view == "open":
				return await uow.list_open_referrals()
			if view == "created":
				return await uow.list_referrals_by_creator(caller_id)
			if view == "applied":
				return await uow.list_referrals_applied_by(caller_id)
		raise ValidationFailed("unknown_view")
