"""Persistence contract shared by the in-memory and Postgres backends.

Every workflow opens either ``store.transaction()`` (atomic read-modify-write with
row locks requested through ``for_update=True``) or ``store.reader()`` (plain reads).
Non-critical writes such as audit and activity entries run inside
``uow.savepoint()`` so their failure leaves the surrounding transaction intact.
"""

from __future__ import annotations

from typing import AsyncContextManager, Optional, Protocol, Sequence

from clubconnect.domain.activity.models import ActivityLogEntry
from clubconnect.domain.admin.models import Announcement, ReportStatus, SafetyReport
from clubconnect.domain.audit.models import AuditLogEntry
from clubconnect.domain.guidance.models import GuidanceRequest, GuidanceStatus
from clubconnect.domain.identity.models import (
	Account,
	AccountStatus,
	AlumniMeta,
	Profile,
	Role,
)
from clubconnect.domain.referrals.models import Referral


class UnitOfWork(Protocol):
	def savepoint(self) -> AsyncContextManager[None]:
		...

	# Accounts
	async def get_account(self, account_id: str, *, for_update: bool = False) -> Optional[Account]:
		...

	async def find_account_by_email(self, email: str) -> Optional[Account]:
		...

	async def insert_account(self, account: Account) -> None:
		...

	async def update_account(self, account: Account) -> None:
		...

	async def list_accounts(
		self,
		*,
		role: Optional[Role] = None,
		status: Optional[AccountStatus] = None,
		limit: int = 100,
	) -> Sequence[Account]:
		...

	async def count_accounts(self) -> dict[str, dict[str, int]]:
		...

	async def search_accounts(self, query: str, *, limit: int) -> Sequence[tuple[Account, Optional[Profile]]]:
		...

	# Profiles and alumni metadata
	async def get_profile(self, account_id: str) -> Optional[Profile]:
		...

	async def upsert_profile(self, profile: Profile) -> None:
		...

	async def get_alumni_meta(self, account_id: str, *, for_update: bool = False) -> Optional[AlumniMeta]:
		...

	async def upsert_alumni_meta(self, meta: AlumniMeta) -> None:
		...

	async def list_alumni_pool(self) -> Sequence[tuple[Account, AlumniMeta, Optional[Profile]]]:
		"""Alumni accounts joined with their metadata, ordered by account id."""
		...

	# Guidance
	async def get_guidance(self, request_id: str, *, for_update: bool = False) -> Optional[GuidanceRequest]:
		...

	async def insert_guidance(self, request: GuidanceRequest) -> None:
		...

	async def update_guidance(self, request: GuidanceRequest) -> None:
		...

	async def list_guidance_for_mentor(
		self, mentor_id: str, statuses: Optional[Sequence[GuidanceStatus]] = None
	) -> Sequence[GuidanceRequest]:
		...

	async def list_open_guidance(self) -> Sequence[GuidanceRequest]:
		...

	async def list_guidance_for_student(self, student_id: str) -> Sequence[GuidanceRequest]:
		...

	# Referrals
	async def get_referral(self, referral_id: str, *, for_update: bool = False) -> Optional[Referral]:
		...

	async def insert_referral(self, referral: Referral) -> None:
		...

	async def update_referral(self, referral: Referral) -> None:
		...

	async def list_open_referrals(self) -> Sequence[Referral]:
		...

	async def list_referrals_by_creator(self, creator_id: str) -> Sequence[Referral]:
		...

	async def list_referrals_applied_by(self, student_id: str) -> Sequence[Referral]:
		...

	# Safety reports and announcements
	async def get_report(self, report_id: str, *, for_update: bool = False) -> Optional[SafetyReport]:
		...

	async def insert_report(self, report: SafetyReport) -> None:
		...

	async def update_report(self, report: SafetyReport) -> None:
		...

	async def list_reports(self, *, status: Optional[ReportStatus] = None, limit: int = 50) -> Sequence[SafetyReport]:
		...

	async def insert_announcement(self, announcement: Announcement) -> None:
		...

	async def list_announcements(self, *, limit: int = 20) -> Sequence[Announcement]:
		...

	# Append-only logs
	async def insert_audit(self, entry: AuditLogEntry) -> None:
		...

	async def list_audit(self, *, limit: int = 50, target_id: Optional[str] = None) -> Sequence[AuditLogEntry]:
		...

	async def insert_activity(self, entry: ActivityLogEntry) -> None:
		...

	async def list_activity(self, account_id: str, *, limit: int = 50) -> Sequence[ActivityLogEntry]:
		...


class Store(Protocol):
	def transaction(self) -> AsyncContextManager[UnitOfWork]:
		...

	def reader(self) -> AsyncContextManager[UnitOfWork]:
		...
