"""PostgreSQL-backed store using asyncpg.

Each unit of work pins one pooled connection inside ``conn.transaction()``.
``for_update=True`` reads take a ``SELECT ... FOR UPDATE`` row lock so a
concurrent transaction on the same row waits and then re-reads the committed
state. Savepoints are nested ``conn.transaction()`` blocks.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Sequence

import asyncpg

from clubconnect.domain.activity.models import ActivityLogEntry
from clubconnect.domain.admin.models import Announcement, ReportStatus, SafetyReport
from clubconnect.domain.audit.models import AuditLogEntry
from clubconnect.domain.errors import Conflict, StorageUnavailable
from clubconnect.domain.guidance.models import GuidanceRequest, GuidanceStatus
from clubconnect.domain.identity.models import (
	Account,
	AccountStatus,
	AlumniMeta,
	Profile,
	Role,
)
from clubconnect.domain.referrals.models import Referral

logger = logging.getLogger(__name__)

_UNAVAILABLE = (
	asyncio.TimeoutError,
	OSError,
	asyncpg.PostgresConnectionError,
	asyncpg.InterfaceError,
	asyncpg.exceptions.QueryCanceledError,
)

_ACCOUNT_COLUMNS = """
	id, role, status, tenant_id, email, created_at, updated_at,
	status_changed_at, status_changed_by, status_reason, suspension_end
"""

_GUIDANCE_COLUMNS = """
	id, student_id, mentor_id, topic, message, type, status, tenant_id, response,
	responder_id, created_at, updated_at, accepted_at, responded_at, completed_at
"""

_REFERRAL_COLUMNS = """
	id, created_by, tenant_id, company, role, description, requirements, salary_min,
	salary_max, status, applicants, accepted_applicant, created_at, updated_at, closed_at
"""

_REPORT_COLUMNS = """
	id, reporter_id, student_id, reason, related_request_id, tenant_id, status,
	resolution, admin_action, resolved_by, created_at, resolved_at
"""


def _lock(for_update: bool) -> str:
	return " FOR UPDATE" if for_update else ""


def _escape_like(value: str) -> str:
	return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostgresUnitOfWork:
	def __init__(self, conn: asyncpg.Connection) -> None:
		self._conn = conn

	@asynccontextmanager
	async def savepoint(self) -> AsyncIterator[None]:
		async with self._conn.transaction():
			yield

	# Accounts
	async def get_account(self, account_id: str, *, for_update: bool = False) -> Optional[Account]:
		record = await self._conn.fetchrow(
			f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE id = $1{_lock(for_update)}",
			account_id,
		)
		return Account.from_record(record) if record else None

	async def find_account_by_email(self, email: str) -> Optional[Account]:
		record = await self._conn.fetchrow(
			f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE lower(email) = lower($1)",
			email.strip(),
		)
		return Account.from_record(record) if record else None

	async def insert_account(self, account: Account) -> None:
		await self._conn.execute(
			"""
			INSERT INTO accounts (
				id, role, status, tenant_id, email, created_at, updated_at,
				status_changed_at, status_changed_by, status_reason, suspension_end
			)
			VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
			""",
			account.id,
			account.role.value,
			account.status.value,
			account.tenant_id,
			account.email,
			account.created_at,
			account.updated_at,
			account.status_changed_at,
			account.status_changed_by,
			account.status_reason,
			account.suspension_end,
		)

	async def update_account(self, account: Account) -> None:
		await self._conn.execute(
			"""
			UPDATE accounts
			SET role = $2, status = $3, updated_at = $4, status_changed_at = $5,
				status_changed_by = $6, status_reason = $7, suspension_end = $8
			WHERE id = $1
			""",
			account.id,
			account.role.value,
			account.status.value,
			account.updated_at,
			account.status_changed_at,
			account.status_changed_by,
			account.status_reason,
			account.suspension_end,
		)

	async def list_accounts(
		self,
		*,
		role: Optional[Role] = None,
		status: Optional[AccountStatus] = None,
		limit: int = 100,
	) -> Sequence[Account]:
		records = await self._conn.fetch(
			f"""
			SELECT {_ACCOUNT_COLUMNS} FROM accounts
			WHERE ($1::text IS NULL OR role = $1) AND ($2::text IS NULL OR status = $2)
			ORDER BY created_at, id
			LIMIT $3
			""",
			role.value if role else None,
			status.value if status else None,
			limit,
		)
		return [Account.from_record(record) for record in records]

	async def count_accounts(self) -> dict[str, dict[str, int]]:
		records = await self._conn.fetch("SELECT role, status, COUNT(*) AS n FROM accounts GROUP BY role, status")
		counts: dict[str, dict[str, int]] = {}
		for record in records:
			counts.setdefault(record["role"], {})[record["status"]] = int(record["n"])
		return counts

	async def search_accounts(self, query: str, *, limit: int) -> Sequence[tuple[Account, Optional[Profile]]]:
		pattern = f"%{_escape_like(query.strip().lower())}%"
		records = await self._conn.fetch(
			"""
			SELECT a.id, a.role, a.status, a.tenant_id, a.email, a.created_at, a.updated_at,
				a.status_changed_at, a.status_changed_by, a.status_reason, a.suspension_end,
				p.account_id, p.display_name, p.bio, p.skills, p.updated_at AS profile_updated_at
			FROM accounts a
			LEFT JOIN profiles p ON p.account_id = a.id
			WHERE lower(a.email) LIKE $1 OR lower(p.display_name) LIKE $1
			ORDER BY a.email
			LIMIT $2
			""",
			pattern,
			limit,
		)
		hits: list[tuple[Account, Optional[Profile]]] = []
		for record in records:
			profile = None
			if record["account_id"] is not None:
				profile = Profile(
					account_id=record["account_id"],
					display_name=record["display_name"],
					bio=record["bio"] or "",
					skills=list(record["skills"] or []),
					updated_at=record["profile_updated_at"],
				)
			hits.append((Account.from_record(record), profile))
		return hits

	# Profiles and alumni metadata
	async def get_profile(self, account_id: str) -> Optional[Profile]:
		record = await self._conn.fetchrow(
			"SELECT account_id, display_name, bio, skills, updated_at FROM profiles WHERE account_id = $1",
			account_id,
		)
		return Profile.from_record(record) if record else None

	async def upsert_profile(self, profile: Profile) -> None:
		await self._conn.execute(
			"""
			INSERT INTO profiles (account_id, display_name, bio, skills, updated_at)
			VALUES ($1, $2, $3, $4, $5)
			ON CONFLICT (account_id) DO UPDATE SET
				display_name = EXCLUDED.display_name,
				bio = EXCLUDED.bio,
				skills = EXCLUDED.skills,
				updated_at = EXCLUDED.updated_at
			""",
			profile.account_id,
			profile.display_name,
			profile.bio,
			list(profile.skills),
			profile.updated_at,
		)

	async def get_alumni_meta(self, account_id: str, *, for_update: bool = False) -> Optional[AlumniMeta]:
		record = await self._conn.fetchrow(
			f"SELECT * FROM alumni_meta WHERE account_id = $1{_lock(for_update)}",
			account_id,
		)
		return AlumniMeta.from_record(record) if record else None

	async def upsert_alumni_meta(self, meta: AlumniMeta) -> None:
		await self._conn.execute(
			"""
			INSERT INTO alumni_meta (
				account_id, company, job_title, grad_year, expertise, mentor_opt_in,
				referral_opt_in, average_rating, rating_count, updated_at
			)
			VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
			ON CONFLICT (account_id) DO UPDATE SET
				company = EXCLUDED.company,
				job_title = EXCLUDED.job_title,
				grad_year = EXCLUDED.grad_year,
				expertise = EXCLUDED.expertise,
				mentor_opt_in = EXCLUDED.mentor_opt_in,
				referral_opt_in = EXCLUDED.referral_opt_in,
				average_rating = EXCLUDED.average_rating,
				rating_count = EXCLUDED.rating_count,
				updated_at = EXCLUDED.updated_at
			""",
			meta.account_id,
			meta.company,
			meta.job_title,
			meta.grad_year,
			list(meta.expertise),
			meta.mentor_opt_in,
			meta.referral_opt_in,
			meta.average_rating,
			meta.rating_count,
			meta.updated_at,
		)

	async def list_alumni_pool(self) -> Sequence[tuple[Account, AlumniMeta, Optional[Profile]]]:
		records = await self._conn.fetch(
			"""
			SELECT a.id, a.role, a.status, a.tenant_id, a.email, a.created_at, a.updated_at,
				a.status_changed_at, a.status_changed_by, a.status_reason, a.suspension_end,
				m.account_id, m.company, m.job_title, m.grad_year, m.expertise, m.mentor_opt_in,
				m.referral_opt_in, m.average_rating, m.rating_count, m.updated_at AS meta_updated_at,
				p.display_name, p.bio, p.skills
			FROM accounts a
			JOIN alumni_meta m ON m.account_id = a.id
			LEFT JOIN profiles p ON p.account_id = a.id
			WHERE a.role = 'alumni'
			ORDER BY a.id
			"""
		)
		pool = []
		for record in records:
			meta = AlumniMeta(
				account_id=record["account_id"],
				company=record["company"],
				job_title=record["job_title"],
				grad_year=record["grad_year"],
				expertise=list(record["expertise"] or []),
				mentor_opt_in=record["mentor_opt_in"],
				referral_opt_in=record["referral_opt_in"],
				average_rating=float(record["average_rating"] or 0.0),
				rating_count=int(record["rating_count"] or 0),
				updated_at=record["meta_updated_at"],
			)
			profile = None
			if record["display_name"] is not None:
				profile = Profile(
					account_id=record["id"],
					display_name=record["display_name"],
					bio=record["bio"] or "",
					skills=list(record["skills"] or []),
				)
			pool.append((Account.from_record(record), meta, profile))
		return pool

	# Guidance
	async def get_guidance(self, request_id: str, *, for_update: bool = False) -> Optional[GuidanceRequest]:
		record = await self._conn.fetchrow(
			f"SELECT {_GUIDANCE_COLUMNS} FROM guidance_requests WHERE id = $1{_lock(for_update)}",
			request_id,
		)
		return GuidanceRequest.from_record(record) if record else None

	async def insert_guidance(self, request: GuidanceRequest) -> None:
		await self._conn.execute(
			"""
			INSERT INTO guidance_requests (
				id, student_id, mentor_id, topic, message, type, status, tenant_id, response,
				responder_id, created_at, updated_at, accepted_at, responded_at, completed_at
			)
			VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15)
			""",
			request.id,
			request.student_id,
			request.mentor_id,
			request.topic,
			request.message,
			request.type.value,
			request.status.value,
			request.tenant_id,
			request.response,
			request.responder_id,
			request.created_at,
			request.updated_at,
			request.accepted_at,
			request.responded_at,
			request.completed_at,
		)

	async def update_guidance(self, request: GuidanceRequest) -> None:
		await self._conn.execute(
			"""
			UPDATE guidance_requests
			SET mentor_id = $2, status = $3, response = $4, responder_id = $5, updated_at = $6,
				accepted_at = $7, responded_at = $8, completed_at = $9
			WHERE id = $1
			""",
			request.id,
			request.mentor_id,
			request.status.value,
			request.response,
			request.responder_id,
			request.updated_at,
			request.accepted_at,
			request.responded_at,
			request.completed_at,
		)

	async def list_guidance_for_mentor(
		self, mentor_id: str, statuses: Optional[Sequence[GuidanceStatus]] = None
	) -> Sequence[GuidanceRequest]:
		wanted = [status.value for status in statuses] if statuses else None
		records = await self._conn.fetch(
			f"""
			SELECT {_GUIDANCE_COLUMNS} FROM guidance_requests
			WHERE mentor_id = $1 AND ($2::text[] IS NULL OR status = ANY($2::text[]))
			ORDER BY created_at DESC, id DESC
			""",
			mentor_id,
			wanted,
		)
		return [GuidanceRequest.from_record(record) for record in records]

	async def list_open_guidance(self) -> Sequence[GuidanceRequest]:
		records = await self._conn.fetch(
			f"""
			SELECT {_GUIDANCE_COLUMNS} FROM guidance_requests
			WHERE mentor_id IS NULL AND status = 'pending'
			ORDER BY created_at DESC, id DESC
			"""
		)
		return [GuidanceRequest.from_record(record) for record in records]

	async def list_guidance_for_student(self, student_id: str) -> Sequence[GuidanceRequest]:
		records = await self._conn.fetch(
			f"""
			SELECT {_GUIDANCE_COLUMNS} FROM guidance_requests
			WHERE student_id = $1
			ORDER BY created_at DESC, id DESC
			""",
			student_id,
		)
		return [GuidanceRequest.from_record(record) for record in records]

	# Referrals
	async def get_referral(self, referral_id: str, *, for_update: bool = False) -> Optional[Referral]:
		record = await self._conn.fetchrow(
			f"SELECT {_REFERRAL_COLUMNS} FROM referrals WHERE id = $1{_lock(for_update)}",
			referral_id,
		)
		return Referral.from_record(record) if record else None

	async def insert_referral(self, referral: Referral) -> None:
		await self._conn.execute(
			"""
			INSERT INTO referrals (
				id, created_by, tenant_id, company, role, description, requirements, salary_min,
				salary_max, status, applicants, accepted_applicant, created_at, updated_at, closed_at
			)
			VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15)
			""",
			referral.id,
			referral.created_by,
			referral.tenant_id,
			referral.company,
			referral.role,
			referral.description,
			referral.requirements,
			referral.salary_min,
			referral.salary_max,
			referral.status.value,
			referral.applicants_json(),
			referral.accepted_applicant,
			referral.created_at,
			referral.updated_at,
			referral.closed_at,
		)

	async def update_referral(self, referral: Referral) -> None:
		await self._conn.execute(
			"""
			UPDATE referrals
			SET status = $2, applicants = $3, accepted_applicant = $4, updated_at = $5, closed_at = $6
			WHERE id = $1
			""",
			referral.id,
			referral.status.value,
			referral.applicants_json(),
			referral.accepted_applicant,
			referral.updated_at,
			referral.closed_at,
		)

	async def list_open_referrals(self) -> Sequence[Referral]:
		records = await self._conn.fetch(
			f"SELECT {_REFERRAL_COLUMNS} FROM referrals WHERE status = 'open' ORDER BY created_at DESC, id DESC"
		)
		return [Referral.from_record(record) for record in records]

	async def list_referrals_by_creator(self, creator_id: str) -> Sequence[Referral]:
		records = await self._conn.fetch(
			f"SELECT {_REFERRAL_COLUMNS} FROM referrals WHERE created_by = $1 ORDER BY created_at DESC, id DESC",
			creator_id,
		)
		return [Referral.from_record(record) for record in records]

	async def list_referrals_applied_by(self, student_id: str) -> Sequence[Referral]:
		records = await self._conn.fetch(
			f"""
			SELECT {_REFERRAL_COLUMNS} FROM referrals
			WHERE applicants @> $1::jsonb
			ORDER BY created_at DESC, id DESC
			""",
			[{"student_id": student_id}],
		)
		return [Referral.from_record(record) for record in records]

	# Safety reports and announcements
	async def get_report(self, report_id: str, *, for_update: bool = False) -> Optional[SafetyReport]:
		record = await self._conn.fetchrow(
			f"SELECT {_REPORT_COLUMNS} FROM safety_reports WHERE id = $1{_lock(for_update)}",
			report_id,
		)
		return SafetyReport.from_record(record) if record else None

	async def insert_report(self, report: SafetyReport) -> None:
		await self._conn.execute(
			"""
			INSERT INTO safety_reports (
				id, reporter_id, student_id, reason, related_request_id, tenant_id, status,
				resolution, admin_action, resolved_by, created_at, resolved_at
			)
			VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
			""",
			report.id,
			report.reporter_id,
			report.student_id,
			report.reason,
			report.related_request_id,
			report.tenant_id,
			report.status.value,
			report.resolution,
			report.admin_action.value if report.admin_action else None,
			report.resolved_by,
			report.created_at,
			report.resolved_at,
		)

	async def update_report(self, report: SafetyReport) -> None:
		await self._conn.execute(
			"""
			UPDATE safety_reports
			SET status = $2, resolution = $3, admin_action = $4, resolved_by = $5, resolved_at = $6
			WHERE id = $1
			""",
			report.id,
			report.status.value,
			report.resolution,
			report.admin_action.value if report.admin_action else None,
			report.resolved_by,
			report.resolved_at,
		)

	async def list_reports(self, *, status: Optional[ReportStatus] = None, limit: int = 50) -> Sequence[SafetyReport]:
		records = await self._conn.fetch(
			f"""
			SELECT {_REPORT_COLUMNS} FROM safety_reports
			WHERE ($1::text IS NULL OR status = $1)
			ORDER BY created_at DESC, id DESC
			LIMIT $2
			""",
			status.value if status else None,
			limit,
		)
		return [SafetyReport.from_record(record) for record in records]

	async def insert_announcement(self, announcement: Announcement) -> None:
		await self._conn.execute(
			"""
			INSERT INTO announcements (id, author_id, tenant_id, title, content, type, created_at)
			VALUES ($1, $2, $3, $4, $5, $6, $7)
			""",
			announcement.id,
			announcement.author_id,
			announcement.tenant_id,
			announcement.title,
			announcement.content,
			announcement.type.value,
			announcement.created_at,
		)

	async def list_announcements(self, *, limit: int = 20) -> Sequence[Announcement]:
		records = await self._conn.fetch(
			"SELECT * FROM announcements ORDER BY created_at DESC, id DESC LIMIT $1",
			limit,
		)
		return [Announcement.from_record(record) for record in records]

	# Append-only logs
	async def insert_audit(self, entry: AuditLogEntry) -> None:
		await self._conn.execute(
			"""
			INSERT INTO audit_log (id, actor_id, action, target_id, metadata, tenant_id, created_at)
			VALUES ($1, $2, $3, $4, $5, $6, $7)
			""",
			entry.id,
			entry.actor_id,
			entry.action.value,
			entry.target_id,
			entry.metadata,
			entry.tenant_id,
			entry.created_at,
		)

	async def list_audit(self, *, limit: int = 50, target_id: Optional[str] = None) -> Sequence[AuditLogEntry]:
		records = await self._conn.fetch(
			"""
			SELECT * FROM audit_log
			WHERE ($1::text IS NULL OR target_id = $1)
			ORDER BY created_at DESC, id DESC
			LIMIT $2
			""",
			target_id,
			limit,
		)
		return [AuditLogEntry.from_record(record) for record in records]

	async def insert_activity(self, entry: ActivityLogEntry) -> None:
		await self._conn.execute(
			"""
			INSERT INTO activity_log (id, account_id, type, details, created_at)
			VALUES ($1, $2, $3, $4, $5)
			""",
			entry.id,
			entry.account_id,
			entry.type.value,
			entry.details,
			entry.created_at,
		)

	async def list_activity(self, account_id: str, *, limit: int = 50) -> Sequence[ActivityLogEntry]:
		records = await self._conn.fetch(
			"""
			SELECT * FROM activity_log
			WHERE account_id = $1
			ORDER BY created_at DESC, id DESC
			LIMIT $2
			""",
			account_id,
			limit,
		)
		return [ActivityLogEntry.from_record(record) for record in records]


class PostgresStore:
	"""Persists workflow state using asyncpg."""

	def __init__(self, pool: asyncpg.Pool, *, timeout_seconds: float = 10.0) -> None:
		self.pool = pool
		self._timeout = timeout_seconds

	@asynccontextmanager
	async def _connection(self) -> AsyncIterator[asyncpg.Connection]:
		try:
			conn = await self.pool.acquire(timeout=self._timeout)
		except _UNAVAILABLE as exc:
			logger.error("postgres_acquire_failed", exc_info=True)
			raise StorageUnavailable() from exc
		try:
			yield conn
		except asyncpg.UniqueViolationError as exc:
			raise Conflict("duplicate_record") from exc
		except _UNAVAILABLE as exc:
			logger.error("postgres_operation_failed", exc_info=True)
			raise StorageUnavailable() from exc
		finally:
			await self.pool.release(conn)

	@asynccontextmanager
	async def transaction(self) -> AsyncIterator[PostgresUnitOfWork]:
		async with self._connection() as conn:
			async with conn.transaction():
				yield PostgresUnitOfWork(conn)

	@asynccontextmanager
	async def reader(self) -> AsyncIterator[PostgresUnitOfWork]:
		async with self._connection() as conn:
			yield PostgresUnitOfWork(conn)
