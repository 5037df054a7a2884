import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-entropy-0123456789")
os.environ.setdefault("ENV", "dev")
os.environ.setdefault("STORAGE_BACKEND", "memory")

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient

from clubconnect.domain import container
from clubconnect.domain.identity.models import (
	Account,
	AccountStatus,
	AlumniMeta,
	Profile,
	Role,
)
from clubconnect.domain.memory_store import InMemoryStore
from clubconnect.infra.rate_limit import CooldownLimiter
from clubconnect.settings import settings

T0 = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
	"""Manually advanced clock shared by services and the rate limiter."""

	def __init__(self, start: datetime = T0) -> None:
		self.now = start

	def __call__(self) -> datetime:
		return self.now

	def advance(self, **kwargs) -> None:
		self.now = self.now + timedelta(**kwargs)


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from clubconnect.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Dev mode so API tests can authenticate with X-User-Id headers."""
	original_env = settings.environment
	original_backend = settings.storage_backend
	settings.environment = "dev"
	settings.storage_backend = "memory"
	try:
		yield
	finally:
		settings.environment = original_env
		settings.storage_backend = original_backend


@pytest.fixture
def clock() -> FakeClock:
	return FakeClock()


@pytest.fixture
def store() -> InMemoryStore:
	return InMemoryStore(timeout_seconds=2.0)


@pytest.fixture
def limiter(clock) -> CooldownLimiter:
	return CooldownLimiter(clock=clock)


@pytest.fixture(autouse=True)
def wired_container(store, limiter, clock):
	container.configure(store=store, limiter=limiter, clock=clock)
	yield
	container.configure(store=InMemoryStore(), limiter=CooldownLimiter(), clock=clock)


@pytest.fixture
def seed(store, clock):
	"""Insert accounts directly, bypassing registration."""

	async def _seed(
		account_id: str,
		*,
		role: Role = Role.STUDENT,
		status: AccountStatus = AccountStatus.ACTIVE,
		skills=(),
		expertise=(),
		grad_year: int = 2015,
		mentor_opt_in: bool = True,
		referral_opt_in: bool = True,
		average_rating: float = 0.0,
		display_name: str | None = None,
	) -> Account:
		now = clock()
		account = Account(
			id=account_id,
			role=role,
			status=status,
			tenant_id="club",
			email=f"{account_id}@example.edu",
			created_at=now,
			updated_at=now,
		)
		async with store.transaction() as uow:
			await uow.insert_account(account)
			await uow.upsert_profile(
				Profile(account_id=account_id, display_name=display_name or account_id.title(), skills=list(skills))
			)
			if role is Role.ALUMNI:
				await uow.upsert_alumni_meta(
					AlumniMeta(
						account_id=account_id,
						company="Acme",
						job_title="Engineer",
						grad_year=grad_year,
						expertise=list(expertise),
						mentor_opt_in=mentor_opt_in,
						referral_opt_in=referral_opt_in,
						average_rating=average_rating,
					)
				)
		return account

	return _seed


@pytest_asyncio.fixture
async def api_client():
	from clubconnect.main import app
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
