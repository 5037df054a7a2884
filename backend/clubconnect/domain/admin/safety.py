"""Safety report submission by mentors and admins."""

from __future__ import annotations

import logging

from clubconnect.domain.activity import service as activity
from clubconnect.domain.activity.models import ActivityType
from clubconnect.domain.admin.models import ReportStatus, SafetyReport
from clubconnect.domain.admin.schemas import ReportCreate
from clubconnect.domain.audit import service as audit
from clubconnect.domain.audit.models import AuditAction
from clubconnect.domain.common import Clock, new_id, utcnow
from clubconnect.domain.errors import NotFound, ValidationFailed
from clubconnect.domain.identity import policy
from clubconnect.domain.identity.models import AccountStatus, Role
from clubconnect.domain.store import Store

logger = logging.getLogger(__name__)


class SafetyService:
	def __init__(self, store: Store, *, clock: Clock = utcnow) -> None:
		self._store = store
		self._clock = clock

	async def report_student(self, reporter_id: str, payload: ReportCreate) -> SafetyReport:
		now = self._clock()
		async with self._store.transaction() as uow:
			reporter = await policy.require_account(
				uow,
				reporter_id,
				roles=(Role.ALUMNI, Role.ADMIN),
				statuses=(AccountStatus.ACTIVE,),
				reason="reporter_not_permitted",
			)
			student = await uow.get_account(payload.student_id)
			if student is None:
				raise NotFound("student_not_found")
			if student.role is not Role.STUDENT:
				raise ValidationFailed("not_a_student", "Only student accounts can be reported.")
			if payload.related_request_id is not None:
				related = await uow.get_guidance(payload.related_request_id)
				if related is None:
					raise NotFound("request_not_found")
				if related.student_id != student.id:
					raise ValidationFailed("request_mismatch", "The related request belongs to another student.")
			report = SafetyReport(
				id=new_id(),
				reporter_id=reporter.id,
				student_id=student.id,
				reason=payload.reason.strip(),
				tenant_id=reporter.tenant_id,
				status=ReportStatus.PENDING,
				created_at=now,
				related_request_id=payload.related_request_id,
			)
			await uow.insert_report(report)
			await audit.record(
				uow,
				actor_id=reporter.id,
				action=AuditAction.STUDENT_REPORTED,
				target_id=student.id,
				tenant_id=reporter.tenant_id,
				at=now,
				metadata={"report_id": report.id, "related_request_id": report.related_request_id},
			)
			await activity.record(
				uow,
				reporter.id,
				ActivityType.STUDENT_REPORTED,
				at=now,
				details={"report_id": report.id, "student_id": student.id},
			)
		logger.warning("student_reported", extra={"report_id": report.id, "reporter_id": reporter.id})
		return report
