"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clubconnect.api import admin, guidance, identity, matching, ops, referrals, safety
from clubconnect.api.errors import install_error_handlers
from clubconnect.domain import container
from clubconnect.domain.memory_store import InMemoryStore
from clubconnect.infra import postgres
from clubconnect.infra.postgres_store import PostgresStore
from clubconnect.obs import init as obs_init
from clubconnect.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	if settings.uses_postgres():
		pool = await postgres.init_pool()
		container.configure(store=PostgresStore(pool, timeout_seconds=settings.operation_timeout_seconds))
	elif not isinstance(container.get_store(), InMemoryStore):
		container.configure(store=InMemoryStore(timeout_seconds=settings.operation_timeout_seconds))
	logger.info("startup", extra={"storage_backend": settings.storage_backend, "env": settings.environment})
	try:
		yield
	finally:
		if settings.uses_postgres():
			await postgres.close_pool()


app = FastAPI(title="ClubConnect Guidance API", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True
if "*" in allow_origins:
	allow_origins = ["http://localhost:3000", "http://127.0.0.1:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)
obs_init(app)

app.include_router(identity.router)
app.include_router(matching.router)
app.include_router(guidance.router)
app.include_router(referrals.router)
app.include_router(safety.router)
app.include_router(admin.router)
app.include_router(admin.announcements_router)
app.include_router(ops.router)
