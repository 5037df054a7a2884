"""Identity & role store operations: registration, alumni settings and status changes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from clubconnect.domain.activity import service as activity
from clubconnect.domain.activity.models import ActivityLogEntry, ActivityType
from clubconnect.domain.audit import service as audit
from clubconnect.domain.audit.models import AuditAction
from clubconnect.domain.common import Clock, normalise_terms, utcnow
from clubconnect.domain.errors import Conflict, Forbidden, NotFound
from clubconnect.domain.identity import policy
from clubconnect.domain.identity.models import (
	STUDENT_PARTICIPATING,
	Account,
	AccountStatus,
	AlumniMeta,
	Profile,
	Role,
)
from clubconnect.domain.identity.schemas import (
	AlumniPreferencesUpdate,
	AlumniRegistration,
	AlumniTransition,
	StudentRegistration,
)
from clubconnect.domain.store import Store, UnitOfWork
from clubconnect.obs import metrics
from clubconnect.settings import settings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AccountDetails:
	account: Account
	profile: Optional[Profile]
	alumni: Optional[AlumniMeta]


async def apply_role_status(
	uow: UnitOfWork,
	*,
	actor: Account,
	target: Account,
	action: AuditAction,
	at: datetime,
	role: Optional[Role] = None,
	status: Optional[AccountStatus] = None,
	reason: Optional[str] = None,
	suspension_end: Optional[datetime] = None,
	metadata: Optional[Mapping[str, Any]] = None,
) -> Account:
	"""Write a privileged role/status change plus its single audit entry.

	Callers hold ``target`` under a row lock and have already verified ``actor``.
	"""
	previous_role, previous_status = target.role, target.status
	if role is not None:
		target.role = role
	if status is not None:
		target.status = status
	target.suspension_end = suspension_end
	target.status_reason = reason
	target.status_changed_at = at
	target.status_changed_by = actor.id
	target.updated_at = at
	await uow.update_account(target)

	details: dict[str, Any] = {
		"previous_role": previous_role.value,
		"previous_status": previous_status.value,
		"role": target.role.value,
		"status": target.status.value,
	}
	if reason:
		details["reason"] = reason
	if suspension_end is not None:
		details["suspension_end"] = suspension_end.isoformat()
	details.update(metadata or {})
	await audit.record(
		uow,
		actor_id=actor.id,
		action=action,
		target_id=target.id,
		tenant_id=actor.tenant_id,
		at=at,
		metadata=details,
	)
	await activity.record(uow, target.id, ActivityType.STATUS_CHANGED, at=at, details=details)
	metrics.inc_admin_action(action.value)
	logger.info(
		"account_status_changed",
		extra={"actor_id": actor.id, "target_id": target.id, "action": action.value, "status": target.status.value},
	)
	return target


class IdentityService:
	def __init__(
		self,
		store: Store,
		*,
		clock: Clock = utcnow,
		admin_emails: Optional[Iterable[str]] = None,
	) -> None:
		self._store = store
		self._clock = clock
		emails = settings.admin_bootstrap_emails if admin_emails is None else admin_emails
		self._admin_emails = frozenset(email.strip().lower() for email in emails)

	async def get_account(self, account_id: str) -> Account:
		async with self._store.reader() as uow:
			account = await uow.get_account(account_id)
		if account is None:
			raise NotFound("account_not_found")
		return account

	async def is_active(self, account_id: str) -> bool:
		async with self._store.reader() as uow:
			account = await uow.get_account(account_id)
		return account is not None and account.is_active

	async def get_details(self, account_id: str) -> AccountDetails:
		async with self._store.reader() as uow:
			account = await uow.get_account(account_id)
			if account is None:
				raise NotFound("account_not_found")
			profile = await uow.get_profile(account_id)
			alumni = await uow.get_alumni_meta(account_id)
		return AccountDetails(account=account, profile=profile, alumni=alumni)

	async def set_role_status(
		self,
		actor_id: str,
		target_id: str,
		*,
		role: Optional[Role] = None,
		status: Optional[AccountStatus] = None,
		action: AuditAction = AuditAction.SET_ROLE_STATUS,
		reason: Optional[str] = None,
	) -> Account:
		now = self._clock()
		async with self._store.transaction() as uow:
			actor = await policy.require_admin(uow, actor_id)
			target = await uow.get_account(target_id, for_update=True)
			if target is None:
				raise NotFound("account_not_found")
			return await apply_role_status(
				uow,
				actor=actor,
				target=target,
				action=action,
				at=now,
				role=role,
				status=status,
				reason=reason,
			)

	def _initial_role_status(self, email: str, role: Role, status: AccountStatus) -> tuple[Role, AccountStatus]:
		# Bootstrap list is consulted at account creation only
		if email.lower() in self._admin_emails:
			return Role.ADMIN, AccountStatus.ACTIVE
		return role, status

	async def _ensure_unregistered(self, uow: UnitOfWork, account_id: str, email: str) -> None:
		if await uow.get_account(account_id) is not None:
			raise Conflict("already_registered")
		if await uow.find_account_by_email(email) is not None:
			raise Conflict("email_in_use")

	def _new_account(self, account_id: str, tenant_id: str, email: str, role: Role, status: AccountStatus, now: datetime) -> Account:
		role, status = self._initial_role_status(email, role, status)
		return Account(
			id=account_id,
			role=role,
			status=status,
			tenant_id=tenant_id,
			email=email.lower(),
			created_at=now,
			updated_at=now,
			status_changed_at=now,
			status_changed_by=account_id,
		)

	async def register_student(self, caller_id: str, tenant_id: str, payload: StudentRegistration) -> AccountDetails:
		now = self._clock()
		async with self._store.transaction() as uow:
			await self._ensure_unregistered(uow, caller_id, payload.email)
			account = self._new_account(caller_id, tenant_id, payload.email, Role.STUDENT, AccountStatus.ACTIVE, now)
			profile = Profile(
				account_id=caller_id,
				display_name=payload.display_name.strip(),
				bio=payload.bio,
				skills=normalise_terms(payload.skills),
				updated_at=now,
			)
			await uow.insert_account(account)
			await uow.upsert_profile(profile)
			await activity.record(uow, caller_id, ActivityType.ACCOUNT_REGISTERED, at=now, details={"role": account.role.value})
		logger.info("account_registered", extra={"account_id": caller_id, "role": account.role.value})
		return AccountDetails(account=account, profile=profile, alumni=None)

	async def register_alumni(self, caller_id: str, tenant_id: str, payload: AlumniRegistration) -> AccountDetails:
		now = self._clock()
		async with self._store.transaction() as uow:
			await self._ensure_unregistered(uow, caller_id, payload.email)
			account = self._new_account(caller_id, tenant_id, payload.email, Role.ALUMNI, AccountStatus.PENDING, now)
			profile = Profile(
				account_id=caller_id,
				display_name=payload.display_name.strip(),
				bio=payload.bio,
				updated_at=now,
			)
			meta = AlumniMeta(
				account_id=caller_id,
				company=payload.company.strip(),
				job_title=payload.job_title.strip(),
				grad_year=payload.grad_year,
				expertise=normalise_terms(payload.expertise),
				mentor_opt_in=payload.mentor_opt_in,
				referral_opt_in=payload.referral_opt_in,
				updated_at=now,
			)
			await uow.insert_account(account)
			await uow.upsert_profile(profile)
			await uow.upsert_alumni_meta(meta)
			await activity.record(uow, caller_id, ActivityType.ACCOUNT_REGISTERED, at=now, details={"role": account.role.value})
		logger.info("account_registered", extra={"account_id": caller_id, "role": account.role.value})
		return AccountDetails(account=account, profile=profile, alumni=meta)

	async def transition_to_alumni(self, caller_id: str, payload: AlumniTransition) -> AccountDetails:
		"""Graduating student becomes a pending alumnus awaiting approval."""
		now = self._clock()
		async with self._store.transaction() as uow:
			account = await policy.require_account(
				uow,
				caller_id,
				roles=(Role.STUDENT,),
				statuses=STUDENT_PARTICIPATING,
				for_update=True,
				reason="student_required",
			)
			account.role = Role.ALUMNI
			account.status = AccountStatus.PENDING
			account.status_changed_at = now
			account.status_changed_by = caller_id
			account.status_reason = None
			account.updated_at = now
			meta = AlumniMeta(
				account_id=caller_id,
				company=payload.company.strip(),
				job_title=payload.job_title.strip(),
				grad_year=payload.grad_year,
				expertise=normalise_terms(payload.expertise),
				mentor_opt_in=False,
				referral_opt_in=False,
				updated_at=now,
			)
			await uow.update_account(account)
			await uow.upsert_alumni_meta(meta)
			await activity.record(
				uow,
				caller_id,
				ActivityType.ALUMNI_TRANSITION,
				at=now,
				details={"company": meta.company, "grad_year": meta.grad_year},
			)
			profile = await uow.get_profile(caller_id)
		return AccountDetails(account=account, profile=profile, alumni=meta)

	async def update_alumni_preferences(self, caller_id: str, payload: AlumniPreferencesUpdate) -> AlumniMeta:
		now = self._clock()
		async with self._store.transaction() as uow:
			await policy.require_active_alumni(uow, caller_id, reason="alumni_not_active")
			meta = await uow.get_alumni_meta(caller_id, for_update=True)
			if meta is None:
				raise NotFound("alumni_profile_missing")
			changed: dict[str, Any] = {}
			if payload.mentor_opt_in is not None and payload.mentor_opt_in != meta.mentor_opt_in:
				meta.mentor_opt_in = payload.mentor_opt_in
				changed["mentor_opt_in"] = meta.mentor_opt_in
			if payload.referral_opt_in is not None and payload.referral_opt_in != meta.referral_opt_in:
				meta.referral_opt_in = payload.referral_opt_in
				changed["referral_opt_in"] = meta.referral_opt_in
			if payload.expertise is not None:
				expertise = normalise_terms(payload.expertise)
				if expertise != meta.expertise:
					meta.expertise = expertise
					changed["expertise"] = expertise
			if not changed:
				return meta
			meta.updated_at = now
			await uow.upsert_alumni_meta(meta)
			await activity.record(uow, caller_id, ActivityType.SETTINGS_CHANGED, at=now, details=changed)
		return meta

	async def get_activity(self, caller_id: str, account_id: str, *, limit: int = 50) -> Sequence[ActivityLogEntry]:
		async with self._store.reader() as uow:
			caller = await policy.require_account(uow, caller_id)
			if caller_id != account_id and not policy.is_active_admin(caller):
				raise Forbidden("activity_private")
			if caller_id != account_id and await uow.get_account(account_id) is None:
				raise NotFound("account_not_found")
			return await uow.list_activity(account_id, limit=limit)
