"""Privileged admin actions.

Every operation re-reads the caller's account inside its own transaction and
refuses anyone who is not an active admin before touching other data. Each
state change writes one audit entry in the same transaction. Session
invalidation for suspended or blocked accounts runs after commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Sequence

from clubconnect.domain.admin.models import (
	Announcement,
	ReportAction,
	ReportStatus,
	SafetyReport,
)
from clubconnect.domain.admin.schemas import AnnouncementCreate
from clubconnect.domain.audit import service as audit
from clubconnect.domain.audit.models import AuditAction, AuditLogEntry
from clubconnect.domain.common import Clock, new_id, utcnow
from clubconnect.domain.errors import Forbidden, InvalidState, NotFound, ValidationFailed
from clubconnect.domain.identity import policy, sessions
from clubconnect.domain.identity.models import Account, AccountStatus, Profile, Role
from clubconnect.domain.identity.service import apply_role_status
from clubconnect.domain.store import Store, UnitOfWork
from clubconnect.obs import metrics
from clubconnect.settings import settings

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2


@dataclass(slots=True)
class Dashboard:
	pending_alumni: Sequence[Account] = field(default_factory=list)
	pending_reports: Sequence[SafetyReport] = field(default_factory=list)
	recent_audit: Sequence[AuditLogEntry] = field(default_factory=list)
	announcements: Sequence[Announcement] = field(default_factory=list)
	account_counts: dict[str, dict[str, int]] = field(default_factory=dict)


@dataclass(slots=True)
class Resolution:
	report: SafetyReport
	suspended: Optional[Account] = None


def _guard_not_self(admin_id: str, target_id: str, reason: str) -> None:
	if admin_id == target_id:
		raise Forbidden(reason)


async def _load_target(uow: UnitOfWork, target_id: str) -> Account:
	target = await uow.get_account(target_id, for_update=True)
	if target is None:
		raise NotFound("account_not_found")
	return target


class AdminService:
	def __init__(
		self,
		store: Store,
		*,
		clock: Clock = utcnow,
		suspension_days: Optional[int] = None,
		search_limit: Optional[int] = None,
	) -> None:
		self._store = store
		self._clock = clock
		self._suspension = timedelta(days=suspension_days if suspension_days is not None else settings.suspension_days)
		self._search_limit = search_limit if search_limit is not None else settings.admin_search_limit

	async def approve_alumni(self, admin_id: str, target_id: str) -> Account:
		now = self._clock()
		async with self._store.transaction() as uow:
			admin = await policy.require_admin(uow, admin_id)
			target = await _load_target(uow, target_id)
			if target.role is not Role.ALUMNI:
				raise InvalidState("not_alumni", "Only alumni accounts can be approved.")
			if target.status is AccountStatus.ACTIVE:
				raise InvalidState("already_active", "This alumni account is already approved.")
			if target.status is AccountStatus.BLOCKED:
				raise InvalidState("account_blocked", "Blocked accounts cannot be approved.")
			return await apply_role_status(
				uow,
				actor=admin,
				target=target,
				action=AuditAction.APPROVE_ALUMNI,
				at=now,
				status=AccountStatus.ACTIVE,
			)

	async def reject_alumni(self, admin_id: str, target_id: str, reason: str) -> Account:
		now = self._clock()
		async with self._store.transaction() as uow:
			admin = await policy.require_admin(uow, admin_id)
			target = await _load_target(uow, target_id)
			if target.role is not Role.ALUMNI:
				raise InvalidState("not_alumni", "Only alumni accounts can be rejected.")
			if target.status in (AccountStatus.REJECTED, AccountStatus.BLOCKED):
				raise InvalidState(f"already_{target.status.value}")
			return await apply_role_status(
				uow,
				actor=admin,
				target=target,
				action=AuditAction.REJECT_ALUMNI,
				at=now,
				status=AccountStatus.REJECTED,
				reason=reason,
			)

	async def _suspend(
		self,
		uow: UnitOfWork,
		admin: Account,
		target_id: str,
		reason: str,
		at: datetime,
		metadata: Optional[dict] = None,
	) -> Account:
		_guard_not_self(admin.id, target_id, "cannot_suspend_self")
		target = await _load_target(uow, target_id)
		if target.status is AccountStatus.BLOCKED:
			raise InvalidState("account_blocked", "Blocked accounts cannot be suspended.")
		return await apply_role_status(
			uow,
			actor=admin,
			target=target,
			action=AuditAction.SUSPEND_USER,
			at=at,
			status=AccountStatus.SUSPENDED,
			reason=reason,
			suspension_end=at + self._suspension,
			metadata=metadata,
		)

	async def suspend_user(self, admin_id: str, target_id: str, reason: str) -> Account:
		_guard_not_self(admin_id, target_id, "cannot_suspend_self")
		now = self._clock()
		async with self._store.transaction() as uow:
			admin = await policy.require_admin(uow, admin_id)
			target = await self._suspend(uow, admin, target_id, reason, now)
		await self._invalidate_sessions(target.id, now)
		return target

	async def block_user(self, admin_id: str, target_id: str, reason: str) -> Account:
		_guard_not_self(admin_id, target_id, "cannot_block_self")
		now = self._clock()
		async with self._store.transaction() as uow:
			admin = await policy.require_admin(uow, admin_id)
			target = await _load_target(uow, target_id)
			if target.status is AccountStatus.BLOCKED:
				raise InvalidState("already_blocked")
			target = await apply_role_status(
				uow,
				actor=admin,
				target=target,
				action=AuditAction.BLOCK_USER,
				at=now,
				status=AccountStatus.BLOCKED,
				reason=reason,
			)
		await self._invalidate_sessions(target.id, now)
		return target

	async def promote_to_admin(self, admin_id: str, target_id: str) -> Account:
		now = self._clock()
		async with self._store.transaction() as uow:
			admin = await policy.require_admin(uow, admin_id)
			target = await _load_target(uow, target_id)
			if target.role is Role.ADMIN:
				raise InvalidState("already_admin")
			if target.status in (AccountStatus.SUSPENDED, AccountStatus.BLOCKED, AccountStatus.REJECTED):
				raise InvalidState("account_restricted", "Restricted accounts cannot be promoted.")
			return await apply_role_status(
				uow,
				actor=admin,
				target=target,
				action=AuditAction.PROMOTE_TO_ADMIN,
				at=now,
				role=Role.ADMIN,
				status=AccountStatus.ACTIVE,
			)

	async def resolve_safety_report(
		self,
		admin_id: str,
		report_id: str,
		resolution: str,
		action: ReportAction | str = ReportAction.NONE,
	) -> Resolution:
		try:
			admin_action = ReportAction(action)
		except ValueError:
			raise ValidationFailed("invalid_report_action") from None
		now = self._clock()
		suspended: Optional[Account] = None
		async with self._store.transaction() as uow:
			admin = await policy.require_admin(uow, admin_id)
			report = await uow.get_report(report_id, for_update=True)
			if report is None:
				raise NotFound("report_not_found")
			if report.status is ReportStatus.RESOLVED:
				raise InvalidState("report_resolved", "This report has already been resolved.")
			report.status = ReportStatus.RESOLVED
			report.resolution = resolution
			report.admin_action = admin_action
			report.resolved_by = admin.id
			report.resolved_at = now
			await uow.update_report(report)
			await audit.record(
				uow,
				actor_id=admin.id,
				action=AuditAction.RESOLVE_SAFETY_REPORT,
				target_id=report.id,
				tenant_id=admin.tenant_id,
				at=now,
				metadata={"student_id": report.student_id, "action": admin_action.value, "resolution": resolution},
			)
			metrics.inc_admin_action(AuditAction.RESOLVE_SAFETY_REPORT.value)
			if admin_action is ReportAction.SUSPEND:
				suspended = await self.cascade_suspension(uow, admin, report, now)
		if suspended is not None:
			await self._invalidate_sessions(suspended.id, now)
		return Resolution(report=report, suspended=suspended)

	async def cascade_suspension(self, uow: UnitOfWork, admin: Account, report: SafetyReport, at: datetime) -> Account:
		"""Suspend the reported student as part of resolving ``report``.

		Runs in the resolver's transaction and writes its own SUSPEND_USER audit entry.
		"""
		return await self._suspend(
			uow,
			admin,
			report.student_id,
			f"Safety report {report.id}: {report.resolution}",
			at,
			metadata={"report_id": report.id},
		)

	async def search_users(self, admin_id: str, query: str) -> Sequence[tuple[Account, Optional[Profile]]]:
		needle = (query or "").strip()
		if len(needle) < MIN_SEARCH_LENGTH:
			raise ValidationFailed("query_too_short", "Search queries need at least 2 characters.")
		async with self._store.reader() as uow:
			await policy.require_admin(uow, admin_id)
			return await uow.search_accounts(needle, limit=self._search_limit)

	async def create_announcement(self, admin_id: str, payload: AnnouncementCreate) -> Announcement:
		now = self._clock()
		async with self._store.transaction() as uow:
			admin = await policy.require_admin(uow, admin_id)
			announcement = Announcement(
				id=new_id(),
				author_id=admin.id,
				tenant_id=admin.tenant_id,
				title=payload.title.strip(),
				content=payload.content.strip(),
				type=payload.type,
				created_at=now,
			)
			await uow.insert_announcement(announcement)
			await audit.record(
				uow,
				actor_id=admin.id,
				action=AuditAction.CREATE_ANNOUNCEMENT,
				target_id=announcement.id,
				tenant_id=admin.tenant_id,
				at=now,
				metadata={"title": announcement.title, "type": announcement.type.value},
			)
		metrics.inc_admin_action(AuditAction.CREATE_ANNOUNCEMENT.value)
		return announcement

	async def list_announcements(self, caller_id: str, *, limit: int = 20) -> Sequence[Announcement]:
		async with self._store.reader() as uow:
			await policy.require_account(uow, caller_id)
			return await uow.list_announcements(limit=limit)

	async def list_audit_log(
		self, admin_id: str, *, limit: int = 50, target_id: Optional[str] = None
	) -> Sequence[AuditLogEntry]:
		async with self._store.reader() as uow:
			await policy.require_admin(uow, admin_id)
			return await uow.list_audit(limit=limit, target_id=target_id)

	async def list_reports(
		self, admin_id: str, *, status: Optional[ReportStatus] = ReportStatus.PENDING, limit: int = 50
	) -> Sequence[SafetyReport]:
		async with self._store.reader() as uow:
			await policy.require_admin(uow, admin_id)
			return await uow.list_reports(status=status, limit=limit)

	async def dashboard(self, admin_id: str) -> Dashboard:
		async with self._store.reader() as uow:
			await policy.require_admin(uow, admin_id)
			return Dashboard(
				pending_alumni=await uow.list_accounts(role=Role.ALUMNI, status=AccountStatus.PENDING, limit=50),
				pending_reports=await uow.list_reports(status=ReportStatus.PENDING, limit=50),
				recent_audit=await uow.list_audit(limit=10),
				announcements=await uow.list_announcements(limit=5),
				account_counts=await uow.count_accounts(),
			)

	async def _invalidate_sessions(self, account_id: str, at: datetime) -> None:
		# Post-commit: a failure leaves the status change in place
		try:
			await sessions.revoke_all_sessions(account_id, at=at)
		except Exception:
			metrics.inc_session_invalidation_failure()
			logger.error("session_invalidation_failed", exc_info=True, extra={"account_id": account_id})
