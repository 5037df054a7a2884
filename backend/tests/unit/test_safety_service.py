import pytest
import pytest_asyncio

from clubconnect.domain import container
from clubconnect.domain.admin.models import ReportStatus
from clubconnect.domain.admin.schemas import ReportCreate
from clubconnect.domain.audit.models import AuditAction
from clubconnect.domain.errors import Forbidden, NotFound, ValidationFailed
from clubconnect.domain.guidance.schemas import GuidanceCreate
from clubconnect.domain.identity.models import AccountStatus, Role

REASON = "Repeatedly ignored session boundaries."


@pytest_asyncio.fixture
async def people(seed):
    await seed("mentor", role=Role.ALUMNI)
    await seed("pending-mentor", role=Role.ALUMNI, status=AccountStatus.PENDING)
    await seed("student")
    await seed("other-student")


@pytest.mark.asyncio
async def test_active_mentor_reports_student(people, store):
    report = await container.get_safety_service().report_student("mentor", ReportCreate(student_id="student", reason=REASON))
    assert report.status is ReportStatus.PENDING
    assert report.reporter_id == "mentor"
    async with store.reader() as uow:
        entries = await uow.list_audit()
    assert [entry.action for entry in entries] == [AuditAction.STUDENT_REPORTED]
    assert entries[0].target_id == "student"


@pytest.mark.asyncio
async def test_reporter_must_be_active_alumni_or_admin(people):
    service = container.get_safety_service()
    with pytest.raises(Forbidden):
        await service.report_student("pending-mentor", ReportCreate(student_id="student", reason=REASON))
    with pytest.raises(Forbidden):
        await service.report_student("other-student", ReportCreate(student_id="student", reason=REASON))


@pytest.mark.asyncio
async def test_target_must_be_a_known_student(people):
    service = container.get_safety_service()
    with pytest.raises(NotFound):
        await service.report_student("mentor", ReportCreate(student_id="ghost", reason=REASON))
    with pytest.raises(ValidationFailed):
        await service.report_student("mentor", ReportCreate(student_id="pending-mentor", reason=REASON))


@pytest.mark.asyncio
async def test_related_request_must_belong_to_student(people):
    request = await container.get_guidance_service().request_guidance(
        "other-student", GuidanceCreate(topic="Interview prep", message="Need help with system design.")
    )
    service = container.get_safety_service()
    with pytest.raises(ValidationFailed):
        await service.report_student(
            "mentor", ReportCreate(student_id="student", reason=REASON, related_request_id=request.id)
        )
    with pytest.raises(NotFound):
        await service.report_student(
            "mentor", ReportCreate(student_id="student", reason=REASON, related_request_id="missing")
        )
    report = await service.report_student(
        "mentor", ReportCreate(student_id="other-student", reason=REASON, related_request_id=request.id)
    )
    assert report.related_request_id == request.id
