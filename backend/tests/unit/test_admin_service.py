from datetime import timedelta

import pytest
import pytest_asyncio

from clubconnect.domain import container
from clubconnect.domain.admin.models import ReportAction, ReportStatus
from clubconnect.domain.admin.schemas import AnnouncementCreate, ReportCreate
from clubconnect.domain.audit.models import AuditAction
from clubconnect.domain.errors import Forbidden, InvalidState, ValidationFailed
from clubconnect.domain.identity import sessions
from clubconnect.domain.identity.models import AccountStatus, Role


@pytest_asyncio.fixture
async def accounts(seed):
    await seed("admin", role=Role.ADMIN)
    await seed("alum", role=Role.ALUMNI, status=AccountStatus.PENDING, display_name="Grace Hopper")
    await seed("student", display_name="Ada Student")


async def _audit(store):
    async with store.reader() as uow:
        return await uow.list_audit(limit=100)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "operation,args,action,target",
    [
        ("approve_alumni", ("alum",), AuditAction.APPROVE_ALUMNI, "alum"),
        ("reject_alumni", ("alum", "Could not verify employer"), AuditAction.REJECT_ALUMNI, "alum"),
        ("suspend_user", ("student", "Spamming mentors"), AuditAction.SUSPEND_USER, "student"),
        ("block_user", ("student", "Repeated harassment"), AuditAction.BLOCK_USER, "student"),
        ("promote_to_admin", ("student",), AuditAction.PROMOTE_TO_ADMIN, "student"),
    ],
)
async def test_each_admin_action_writes_exactly_one_audit_entry(accounts, store, clock, operation, args, action, target):
    before = clock()
    await getattr(container.get_admin_service(), operation)("admin", *args)
    entries = await _audit(store)
    assert len(entries) == 1
    entry = entries[0]
    assert entry.action is action
    assert entry.actor_id == "admin"
    assert entry.target_id == target
    assert entry.created_at >= before


@pytest.mark.asyncio
async def test_non_admin_is_refused_before_any_write(accounts, store):
    service = container.get_admin_service()
    with pytest.raises(Forbidden):
        await service.approve_alumni("student", "alum")
    with pytest.raises(Forbidden):
        await service.suspend_user("alum", "student", "No reason at all")
    assert await _audit(store) == []


@pytest.mark.asyncio
async def test_admin_cannot_suspend_or_block_self(accounts, store):
    service = container.get_admin_service()
    with pytest.raises(Forbidden) as excinfo:
        await service.suspend_user("admin", "admin", "Testing myself")
    assert excinfo.value.reason == "cannot_suspend_self"
    with pytest.raises(Forbidden):
        await service.block_user("admin", "admin", "Testing myself")
    assert await _audit(store) == []


@pytest.mark.asyncio
async def test_approve_rejects_wrong_role_and_repeat(accounts):
    service = container.get_admin_service()
    with pytest.raises(InvalidState):
        await service.approve_alumni("admin", "student")
    approved = await service.approve_alumni("admin", "alum")
    assert approved.status is AccountStatus.ACTIVE
    with pytest.raises(InvalidState) as excinfo:
        await service.approve_alumni("admin", "alum")
    assert excinfo.value.reason == "already_active"


@pytest.mark.asyncio
async def test_suspend_sets_end_date_and_revokes_sessions(accounts, clock):
    target = await container.get_admin_service().suspend_user("admin", "student", "Spamming mentors")
    assert target.status is AccountStatus.SUSPENDED
    assert target.suspension_end == clock() + timedelta(days=30)
    assert target.status_changed_by == "admin"
    assert await sessions.revoked_before("student") == int(clock().timestamp())


@pytest.mark.asyncio
async def test_blocked_account_cannot_be_suspended_or_reblocked(accounts):
    service = container.get_admin_service()
    await service.block_user("admin", "student", "Repeated harassment")
    with pytest.raises(InvalidState):
        await service.suspend_user("admin", "student", "Spamming mentors")
    with pytest.raises(InvalidState):
        await service.block_user("admin", "student", "Repeated harassment")


@pytest.mark.asyncio
async def test_resolve_with_suspend_cascades_to_reported_student(accounts, seed, store, clock):
    await seed("mentor", role=Role.ALUMNI)
    report = await container.get_safety_service().report_student(
        "mentor", ReportCreate(student_id="student", reason="Sent abusive messages after a session.")
    )
    before = len(await _audit(store))
    clock.advance(minutes=5)

    result = await container.get_admin_service().resolve_safety_report(
        "admin", report.id, "Confirmed by chat logs", ReportAction.SUSPEND
    )
    assert result.report.status is ReportStatus.RESOLVED
    assert result.report.resolved_by == "admin"
    assert result.suspended is not None
    assert result.suspended.id == "student"
    assert result.suspended.status is AccountStatus.SUSPENDED

    entries = await _audit(store)
    new = entries[: len(entries) - before]
    assert {entry.action for entry in new} == {AuditAction.RESOLVE_SAFETY_REPORT, AuditAction.SUSPEND_USER}

    with pytest.raises(InvalidState):
        await container.get_admin_service().resolve_safety_report("admin", report.id, "Again please", "none")


@pytest.mark.asyncio
async def test_resolve_without_action_leaves_student_alone(accounts, seed, store):
    await seed("mentor", role=Role.ALUMNI)
    report = await container.get_safety_service().report_student(
        "mentor", ReportCreate(student_id="student", reason="Missed three sessions without notice.")
    )
    result = await container.get_admin_service().resolve_safety_report("admin", report.id, "Warned verbally", "warning")
    assert result.suspended is None
    async with store.reader() as uow:
        assert (await uow.get_account("student")).status is AccountStatus.ACTIVE


@pytest.mark.asyncio
async def test_search_requires_two_characters_and_matches_name_or_email(accounts):
    service = container.get_admin_service()
    with pytest.raises(ValidationFailed):
        await service.search_users("admin", "a")
    hits = await service.search_users("admin", "grace")
    assert [account.id for account, _ in hits] == ["alum"]
    hits = await service.search_users("admin", "student@example")
    assert [account.id for account, _ in hits] == ["student"]


@pytest.mark.asyncio
async def test_announcement_and_dashboard(accounts, store):
    service = container.get_admin_service()
    announcement = await service.create_announcement(
        "admin", AnnouncementCreate(title="Hack night", content="Friday at 6pm in the lab.")
    )
    listed = await service.list_announcements("student")
    assert [item.id for item in listed] == [announcement.id]

    dashboard = await service.dashboard("admin")
    assert [account.id for account in dashboard.pending_alumni] == ["alum"]
    assert dashboard.account_counts["student"]["active"] == 1
    assert dashboard.recent_audit[0].action is AuditAction.CREATE_ANNOUNCEMENT
