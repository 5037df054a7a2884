import asyncio

import pytest
import pytest_asyncio

from clubconnect.domain import container
from clubconnect.domain.activity.models import ActivityType
from clubconnect.domain.errors import (
    Forbidden,
    InvalidStateTransition,
    NotFound,
    RateLimitExceeded,
    ValidationFailed,
)
from clubconnect.domain.guidance.models import GuidanceStatus, GuidanceType
from clubconnect.domain.guidance.schemas import GuidanceCreate
from clubconnect.domain.identity.models import AccountStatus, Role


def _payload(**overrides):
    data = {"topic": "Career advice", "message": "How do I get into backend work?"}
    data.update(overrides)
    return GuidanceCreate(**data)


@pytest_asyncio.fixture
async def people(seed):
    await seed("student")
    await seed("mentor", role=Role.ALUMNI, expertise=["backend", "python"])
    await seed("other-mentor", role=Role.ALUMNI, expertise=["design"])
    await seed("admin", role=Role.ADMIN)


@pytest.mark.asyncio
async def test_request_then_accept_sets_mentor_and_logs_both_sides(people, store):
    service = container.get_guidance_service()
    request = await service.request_guidance("student", _payload())
    assert request.status is GuidanceStatus.PENDING
    assert request.mentor_id is None

    accepted = await service.accept_guidance_request("mentor", request.id)
    assert accepted.status is GuidanceStatus.ACCEPTED
    assert accepted.mentor_id == "mentor"
    assert accepted.accepted_at is not None

    async with store.reader() as uow:
        mentor_log = await uow.list_activity("mentor")
        student_log = await uow.list_activity("student")
    assert mentor_log[0].type is ActivityType.GUIDANCE_JOINED
    assert {entry.type for entry in student_log} == {ActivityType.GUIDANCE_REQUESTED, ActivityType.GUIDANCE_ACCEPTED}


@pytest.mark.asyncio
async def test_concurrent_accepts_have_exactly_one_winner(people):
    service = container.get_guidance_service()
    request = await service.request_guidance("student", _payload())

    results = await asyncio.gather(
        service.accept_guidance_request("mentor", request.id),
        service.accept_guidance_request("other-mentor", request.id),
        return_exceptions=True,
    )
    winners = [item for item in results if not isinstance(item, Exception)]
    losers = [item for item in results if isinstance(item, Exception)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0], InvalidStateTransition)
    assert losers[0].reason == "request_not_pending"


@pytest.mark.asyncio
async def test_accept_requires_active_alumni(people, seed):
    await seed("pending-mentor", role=Role.ALUMNI, status=AccountStatus.PENDING)
    service = container.get_guidance_service()
    request = await service.request_guidance("student", _payload())
    with pytest.raises(Forbidden):
        await service.accept_guidance_request("pending-mentor", request.id)
    with pytest.raises(Forbidden):
        await service.accept_guidance_request("student", request.id)


@pytest.mark.asyncio
async def test_targeted_request_can_only_be_accepted_by_its_mentor(people):
    service = container.get_guidance_service()
    request = await service.request_guidance("student", _payload(target_mentor_id="mentor"))
    with pytest.raises(Forbidden) as excinfo:
        await service.accept_guidance_request("other-mentor", request.id)
    assert excinfo.value.reason == "request_targeted_elsewhere"
    accepted = await service.accept_guidance_request("mentor", request.id)
    assert accepted.mentor_id == "mentor"


@pytest.mark.asyncio
async def test_target_mentor_must_exist_and_be_available(people, seed):
    await seed("busy", role=Role.ALUMNI, mentor_opt_in=False)
    service = container.get_guidance_service()
    with pytest.raises(NotFound):
        await service.request_guidance("student", _payload(target_mentor_id="ghost"))
    with pytest.raises(ValidationFailed):
        await service.request_guidance("student", _payload(target_mentor_id="busy"))


@pytest.mark.asyncio
async def test_second_request_inside_cooldown_is_rate_limited(people, clock):
    service = container.get_guidance_service()
    await service.request_guidance("student", _payload())
    with pytest.raises(RateLimitExceeded) as excinfo:
        await service.request_guidance("student", _payload())
    assert excinfo.value.retry_after_seconds > 0

    clock.advance(seconds=301)
    await service.request_guidance("student", _payload())


@pytest.mark.asyncio
async def test_referral_type_uses_its_own_cooldown(people, clock):
    service = container.get_guidance_service()
    await service.request_guidance("student", _payload(type=GuidanceType.REFERRAL))
    await service.request_guidance("student", _payload())
    clock.advance(days=29)
    with pytest.raises(RateLimitExceeded):
        await service.request_guidance("student", _payload(type=GuidanceType.REFERRAL))


@pytest.mark.asyncio
async def test_only_assigned_mentor_or_admin_may_reply(people):
    service = container.get_guidance_service()
    request = await service.request_guidance("student", _payload())
    await service.accept_guidance_request("mentor", request.id)

    with pytest.raises(Forbidden) as excinfo:
        await service.reply_to_guidance("other-mentor", request.id, "Let me weigh in here.")
    assert excinfo.value.reason == "not_assigned_mentor"

    replied = await service.reply_to_guidance("mentor", request.id, "Start with small APIs.", "replied")
    assert replied.status is GuidanceStatus.REPLIED
    assert replied.responder_id == "mentor"

    completed = await service.reply_to_guidance("admin", request.id, "Closing this thread now.", "completed")
    assert completed.status is GuidanceStatus.COMPLETED
    assert completed.completed_at is not None


@pytest.mark.asyncio
async def test_completed_request_cannot_move_again(people):
    service = container.get_guidance_service()
    request = await service.request_guidance("student", _payload())
    await service.accept_guidance_request("mentor", request.id)
    await service.complete_guidance("student", request.id)
    with pytest.raises(InvalidStateTransition):
        await service.reply_to_guidance("mentor", request.id, "One more thought here.", "replied")
    with pytest.raises(InvalidStateTransition):
        await service.complete_guidance("mentor", request.id)


@pytest.mark.asyncio
async def test_pending_request_cannot_be_completed_directly(people):
    service = container.get_guidance_service()
    request = await service.request_guidance("student", _payload())
    with pytest.raises(Forbidden):
        await service.complete_guidance("mentor", request.id)
    with pytest.raises(InvalidStateTransition):
        await service.complete_guidance("student", request.id)


@pytest.mark.asyncio
async def test_inbox_lists_assigned_and_open_with_expertise_flag(people, clock):
    service = container.get_guidance_service()
    mine = await service.request_guidance("student", _payload(topic="Python internships", target_mentor_id="mentor"))
    clock.advance(seconds=301)
    await service.request_guidance("student", _payload(topic="Portfolio review", message="Could someone look over my resume?"))

    inbox = await service.get_filtered_requests("mentor")
    by_source = {entry.source: entry for entry in inbox}
    assert set(by_source) == {"assigned", "open"}
    assert by_source["assigned"].request.id == mine.id
    assert by_source["assigned"].expertise_match is True
    assert by_source["open"].expertise_match is False

    other = await service.get_filtered_requests("other-mentor")
    assert [entry.source for entry in other] == ["open"]


@pytest.mark.asyncio
async def test_mentor_stats_counts_by_status(people, clock):
    service = container.get_guidance_service()
    first = await service.request_guidance("student", _payload())
    clock.advance(seconds=301)
    second = await service.request_guidance("student", _payload())
    clock.advance(seconds=301)
    await service.request_guidance("student", _payload(target_mentor_id="mentor"))
    await service.accept_guidance_request("mentor", first.id)
    await service.accept_guidance_request("mentor", second.id)
    await service.reply_to_guidance("mentor", second.id, "Here is my full answer.")

    stats = await service.mentor_stats("mentor")
    assert stats.active_engagements == 1
    assert stats.completed == 1
    assert stats.pending == 1
    assert stats.total == 3

    mine = await service.list_student_requests("student")
    assert len(mine) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("caller", ["mentor", "admin"])
async def test_only_students_may_request_guidance(people, caller):
    with pytest.raises(Forbidden):
        await container.get_guidance_service().request_guidance(caller, _payload())


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [AccountStatus.SUSPENDED, AccountStatus.BLOCKED])
async def test_restricted_student_cannot_request_guidance(seed, status):
    await seed("restricted", status=status)
    with pytest.raises(Forbidden):
        await container.get_guidance_service().request_guidance("restricted", _payload())


class _HeldRedis:
    """Redis stand-in whose reads wait until released."""

    def __init__(self):
        self.reading = asyncio.Event()
        self.release = asyncio.Event()

    async def get(self, key):
        self.reading.set()
        await self.release.wait()
        return None

    async def set(self, key, value, ex=None):
        return True


@pytest.mark.asyncio
async def test_slow_cooldown_read_does_not_block_other_writes(people, seed, store, clock):
    from clubconnect.domain.admin.service import AdminService
    from clubconnect.domain.guidance.service import GuidanceService
    from clubconnect.infra.rate_limit import CooldownLimiter

    await seed("alum", role=Role.ALUMNI, status=AccountStatus.PENDING)
    redis = _HeldRedis()
    guidance = GuidanceService(store, CooldownLimiter(redis, clock=clock), clock=clock)
    admin = AdminService(store, clock=clock)

    pending = asyncio.create_task(guidance.request_guidance("student", _payload()))
    await asyncio.wait_for(redis.reading.wait(), timeout=1)

    approved = await asyncio.wait_for(admin.approve_alumni("admin", "alum"), timeout=1)
    assert approved.status is AccountStatus.ACTIVE

    redis.release.set()
    request = await pending
    assert request.status is GuidanceStatus.PENDING
