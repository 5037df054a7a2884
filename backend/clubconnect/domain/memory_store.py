"""Process-local store used for development and tests.

Transactions are serialised through a single ``asyncio.Lock`` and roll back by
restoring a deep-copied snapshot, so concurrent callers observe the same
first-writer-wins behaviour as the Postgres row locks.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from copy import deepcopy
from dataclasses import dataclass, field, fields
from typing import AsyncIterator, Optional, Sequence

from clubconnect.domain.activity.models import ActivityLogEntry
from clubconnect.domain.admin.models import Announcement, ReportStatus, SafetyReport
from clubconnect.domain.audit.models import AuditLogEntry
from clubconnect.domain.errors import StorageUnavailable
from clubconnect.domain.guidance.models import GuidanceRequest, GuidanceStatus
from clubconnect.domain.identity.models import (
	Account,
	AccountStatus,
	AlumniMeta,
	Profile,
	Role,
)
from clubconnect.domain.referrals.models import Referral, ReferralStatus


@dataclass
class _State:
	accounts: dict[str, Account] = field(default_factory=dict)
	profiles: dict[str, Profile] = field(default_factory=dict)
	alumni_meta: dict[str, AlumniMeta] = field(default_factory=dict)
	guidance: dict[str, GuidanceRequest] = field(default_factory=dict)
	referrals: dict[str, Referral] = field(default_factory=dict)
	reports: dict[str, SafetyReport] = field(default_factory=dict)
	announcements: list[Announcement] = field(default_factory=list)
	audit: list[AuditLogEntry] = field(default_factory=list)
	activity: list[ActivityLogEntry] = field(default_factory=list)

	def restore(self, snapshot: "_State") -> None:
		for item in fields(self):
			setattr(self, item.name, getattr(snapshot, item.name))


def _newest_first(items):
	return sorted(items, key=lambda item: (item.created_at, item.id), reverse=True)


class InMemoryUnitOfWork:
	def __init__(self, state: _State) -> None:
		self._state = state

	@asynccontextmanager
	async def savepoint(self) -> AsyncIterator[None]:
		snapshot = deepcopy(self._state)
		try:
			yield
		except BaseException:
			self._state.restore(snapshot)
			raise

	# Accounts
	async def get_account(self, account_id: str, *, for_update: bool = False) -> Optional[Account]:
		return deepcopy(self._state.accounts.get(account_id))

	async def find_account_by_email(self, email: str) -> Optional[Account]:
		needle = email.strip().lower()
		for account in self._state.accounts.values():
			if account.email.lower() == needle:
				return deepcopy(account)
		return None

	async def insert_account(self, account: Account) -> None:
		self._state.accounts[account.id] = deepcopy(account)

	async def update_account(self, account: Account) -> None:
		self._state.accounts[account.id] = deepcopy(account)

	async def list_accounts(
		self,
		*,
		role: Optional[Role] = None,
		status: Optional[AccountStatus] = None,
		limit: int = 100,
	) -> Sequence[Account]:
		matches = [
			account
			for account in self._state.accounts.values()
			if (role is None or account.role is role) and (status is None or account.status is status)
		]
		matches.sort(key=lambda account: (account.created_at, account.id))
		return deepcopy(matches[:limit])

	async def count_accounts(self) -> dict[str, dict[str, int]]:
		counts: dict[str, dict[str, int]] = {}
		for account in self._state.accounts.values():
			by_status = counts.setdefault(account.role.value, {})
			by_status[account.status.value] = by_status.get(account.status.value, 0) + 1
		return counts

	async def search_accounts(self, query: str, *, limit: int) -> Sequence[tuple[Account, Optional[Profile]]]:
		needle = query.strip().lower()
		hits: list[tuple[Account, Optional[Profile]]] = []
		for account in sorted(self._state.accounts.values(), key=lambda item: item.email):
			profile = self._state.profiles.get(account.id)
			name = profile.display_name.lower() if profile else ""
			if needle in account.email.lower() or needle in name:
				hits.append((account, profile))
			if len(hits) >= limit:
				break
		return deepcopy(hits)

	# Profiles and alumni metadata
	async def get_profile(self, account_id: str) -> Optional[Profile]:
		return deepcopy(self._state.profiles.get(account_id))

	async def upsert_profile(self, profile: Profile) -> None:
		self._state.profiles[profile.account_id] = deepcopy(profile)

	async def get_alumni_meta(self, account_id: str, *, for_update: bool = False) -> Optional[AlumniMeta]:
		return deepcopy(self._state.alumni_meta.get(account_id))

	async def upsert_alumni_meta(self, meta: AlumniMeta) -> None:
		self._state.alumni_meta[meta.account_id] = deepcopy(meta)

	async def list_alumni_pool(self) -> Sequence[tuple[Account, AlumniMeta, Optional[Profile]]]:
		pool = []
		for account_id in sorted(self._state.alumni_meta):
			account = self._state.accounts.get(account_id)
			if account is None or account.role is not Role.ALUMNI:
				continue
			pool.append((account, self._state.alumni_meta[account_id], self._state.profiles.get(account_id)))
		return deepcopy(pool)

	# Guidance
	async def get_guidance(self, request_id: str, *, for_update: bool = False) -> Optional[GuidanceRequest]:
		return deepcopy(self._state.guidance.get(request_id))

	async def insert_guidance(self, request: GuidanceRequest) -> None:
		self._state.guidance[request.id] = deepcopy(request)

	async def update_guidance(self, request: GuidanceRequest) -> None:
		self._state.guidance[request.id] = deepcopy(request)

	async def list_guidance_for_mentor(
		self, mentor_id: str, statuses: Optional[Sequence[GuidanceStatus]] = None
	) -> Sequence[GuidanceRequest]:
		wanted = set(statuses) if statuses else None
		matches = [
			request
			for request in self._state.guidance.values()
			if request.mentor_id == mentor_id and (wanted is None or request.status in wanted)
		]
		return deepcopy(_newest_first(matches))

	async def list_open_guidance(self) -> Sequence[GuidanceRequest]:
		matches = [
			request
			for request in self._state.guidance.values()
			if request.mentor_id is None and request.status is GuidanceStatus.PENDING
		]
		return deepcopy(_newest_first(matches))

	async def list_guidance_for_student(self, student_id: str) -> Sequence[GuidanceRequest]:
		matches = [request for request in self._state.guidance.values() if request.student_id == student_id]
		return deepcopy(_newest_first(matches))

	# Referrals
	async def get_referral(self, referral_id: str, *, for_update: bool = False) -> Optional[Referral]:
		return deepcopy(self._state.referrals.get(referral_id))

	async def insert_referral(self, referral: Referral) -> None:
		self._state.referrals[referral.id] = deepcopy(referral)

	async def update_referral(self, referral: Referral) -> None:
		self._state.referrals[referral.id] = deepcopy(referral)

	async def list_open_referrals(self) -> Sequence[Referral]:
		matches = [item for item in self._state.referrals.values() if item.status is ReferralStatus.OPEN]
		return deepcopy(_newest_first(matches))

	async def list_referrals_by_creator(self, creator_id: str) -> Sequence[Referral]:
		matches = [item for item in self._state.referrals.values() if item.created_by == creator_id]
		return deepcopy(_newest_first(matches))

	async def list_referrals_applied_by(self, student_id: str) -> Sequence[Referral]:
		matches = [item for item in self._state.referrals.values() if item.find_applicant(student_id)]
		return deepcopy(_newest_first(matches))

	# Safety reports and announcements
	async def get_report(self, report_id: str, *, for_update: bool = False) -> Optional[SafetyReport]:
		return deepcopy(self._state.reports.get(report_id))

	async def insert_report(self, report: SafetyReport) -> None:
		self._state.reports[report.id] = deepcopy(report)

	async def update_report(self, report: SafetyReport) -> None:
		self._state.reports[report.id] = deepcopy(report)

	async def list_reports(self, *, status: Optional[ReportStatus] = None, limit: int = 50) -> Sequence[SafetyReport]:
		matches = [item for item in self._state.reports.values() if status is None or item.status is status]
		return deepcopy(_newest_first(matches)[:limit])

	async def insert_announcement(self, announcement: Announcement) -> None:
		self._state.announcements.append(deepcopy(announcement))

	async def list_announcements(self, *, limit: int = 20) -> Sequence[Announcement]:
		return deepcopy(_newest_first(self._state.announcements)[:limit])

	# Append-only logs
	async def insert_audit(self, entry: AuditLogEntry) -> None:
		self._state.audit.append(deepcopy(entry))

	async def list_audit(self, *, limit: int = 50, target_id: Optional[str] = None) -> Sequence[AuditLogEntry]:
		matches = [entry for entry in self._state.audit if target_id is None or entry.target_id == target_id]
		return deepcopy(_newest_first(matches)[:limit])

	async def insert_activity(self, entry: ActivityLogEntry) -> None:
		self._state.activity.append(deepcopy(entry))

	async def list_activity(self, account_id: str, *, limit: int = 50) -> Sequence[ActivityLogEntry]:
		matches = [entry for entry in self._state.activity if entry.account_id == account_id]
		return deepcopy(_newest_first(matches)[:limit])


class InMemoryStore:
	def __init__(self, *, timeout_seconds: float = 10.0) -> None:
		self._state = _State()
		self._lock = asyncio.Lock()
		self._timeout = timeout_seconds

	async def _acquire(self) -> None:
		try:
			await asyncio.wait_for(self._lock.acquire(), timeout=self._timeout)
		except asyncio.TimeoutError:
			raise StorageUnavailable() from None

	@asynccontextmanager
	async def transaction(self) -> AsyncIterator[InMemoryUnitOfWork]:
		await self._acquire()
		try:
			snapshot = deepcopy(self._state)
			try:
				yield InMemoryUnitOfWork(self._state)
			except BaseException:
				self._state.restore(snapshot)
				raise
		finally:
			self._lock.release()

	@asynccontextmanager
	async def reader(self) -> AsyncIterator[InMemoryUnitOfWork]:
		await self._acquire()
		try:
			yield InMemoryUnitOfWork(self._state)
		finally:
			self._lock.release()
