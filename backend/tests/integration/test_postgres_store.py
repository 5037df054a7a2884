from __future__ import annotations

import asyncio
from typing import AsyncIterator, Iterator

import asyncpg
import pytest
import pytest_asyncio

from clubconnect.domain import container
from clubconnect.domain.errors import Conflict, InvalidStateTransition
from clubconnect.domain.guidance.models import GuidanceStatus
from clubconnect.domain.guidance.schemas import GuidanceCreate
from clubconnect.domain.identity.models import Account, AccountStatus, Role
from clubconnect.domain.referrals.schemas import ReferralCreate
from clubconnect.infra import postgres
from clubconnect.infra.postgres_store import PostgresStore, PostgresUnitOfWork
from clubconnect.migrate import apply_migrations

pytestmark = [pytest.mark.asyncio, pytest.mark.integration]


@pytest.fixture(scope="module")
def postgres_container() -> Iterator["PostgresContainer"]:
    testcontainers = pytest.importorskip(
        "testcontainers.postgres",
        reason="testcontainers.postgres is required for integration tests",
    )
    PostgresContainer = testcontainers.PostgresContainer
    container = PostgresContainer("postgres:16-alpine", driver=None)
    try:
        container.start()
    except Exception as exc:  # pragma: no cover - environment without docker
        pytest.skip(f"unable to start postgres container: {exc}")
    try:
        yield container
    finally:
        container.stop()


async def _reset_schema(pool: asyncpg.Pool) -> None:
    async with pool.acquire() as conn:
        await conn.execute("DROP SCHEMA IF EXISTS public CASCADE")
        await conn.execute("CREATE SCHEMA public")
        await conn.execute("GRANT ALL ON SCHEMA public TO PUBLIC")
        await apply_migrations(conn)


@pytest_asyncio.fixture(scope="function")
async def postgres_pool(postgres_container) -> AsyncIterator[asyncpg.Pool]:
    url = postgres_container.get_connection_url()
    pool = await asyncpg.create_pool(dsn=url, min_size=1, max_size=4, init=postgres.init_connection)
    await _reset_schema(pool)
    postgres.set_pool(pool)
    try:
        yield pool
    finally:
        postgres.set_pool(None)
        await pool.close()


@pytest_asyncio.fixture
async def store(postgres_pool) -> PostgresStore:
    # Overrides the in-memory store so `seed` and the container run against Postgres
    return PostgresStore(postgres_pool, timeout_seconds=5.0)


def _payload() -> GuidanceCreate:
    return GuidanceCreate(topic="Career advice", message="How should I prepare for interviews?")


async def test_concurrent_accepts_have_exactly_one_winner(seed, store):
    await seed("student")
    await seed("mentor", role=Role.ALUMNI)
    await seed("other-mentor", role=Role.ALUMNI)
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

    async with store.reader() as uow:
        stored = await uow.get_guidance(request.id)
    assert stored.status is GuidanceStatus.ACCEPTED
    assert stored.mentor_id == winners[0].mentor_id


async def test_duplicate_application_conflicts_and_applied_lookup(seed, store):
    await seed("alum", role=Role.ALUMNI)
    await seed("s1")
    await seed("s2")
    service = container.get_referral_service()
    referral = await service.create_referral(
        "alum", ReferralCreate(company="Acme", role="Backend Intern", description="Build internal APIs in Python.")
    )

    await service.apply_to_referral("s1", referral.id)
    with pytest.raises(Conflict):
        await service.apply_to_referral("s1", referral.id)

    async with store.reader() as uow:
        applied = await uow.list_referrals_applied_by("s1")
        untouched = await uow.list_referrals_applied_by("s2")
        stored = await uow.get_referral(referral.id)
    assert [item.id for item in applied] == [referral.id]
    assert untouched == []
    assert stored.applicant_count == 1


async def test_unique_violation_maps_to_conflict(seed, store, clock):
    await seed("s1")
    now = clock()
    clash = Account(
        id="s1-copy",
        role=Role.STUDENT,
        status=AccountStatus.ACTIVE,
        tenant_id="club",
        email="S1@example.edu",
        created_at=now,
        updated_at=now,
    )
    with pytest.raises(Conflict) as excinfo:
        async with store.transaction() as uow:
            await uow.insert_account(clash)
    assert excinfo.value.reason == "duplicate_record"

    async with store.reader() as uow:
        assert await uow.get_account("s1-copy") is None


async def test_failed_audit_write_keeps_the_admin_action(seed, store, monkeypatch):
    await seed("admin", role=Role.ADMIN)
    await seed("alum", role=Role.ALUMNI, status=AccountStatus.PENDING)

    async def _broken_insert(self, entry):
        await self._conn.execute("INSERT INTO missing_audit_table VALUES (1)")

    monkeypatch.setattr(PostgresUnitOfWork, "insert_audit", _broken_insert)
    approved = await container.get_admin_service().approve_alumni("admin", "alum")
    assert approved.status is AccountStatus.ACTIVE

    async with store.reader() as uow:
        assert (await uow.get_account("alum")).status is AccountStatus.ACTIVE
        assert await uow.list_audit() == []
