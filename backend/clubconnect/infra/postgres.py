"""AsyncPG pool management for the backend."""

from __future__ import annotations

import json
from typing import Optional

import asyncpg

from clubconnect.settings import settings

_pool: Optional[asyncpg.pool.Pool] = None


async def init_connection(conn: asyncpg.Connection) -> None:
	# JSON columns round-trip as python dicts/lists
	for typename in ("json", "jsonb"):
		await conn.set_type_codec(
			typename,
			encoder=json.dumps,
			decoder=json.loads,
			schema="pg_catalog",
		)


async def init_pool() -> asyncpg.pool.Pool:
	global _pool
	if _pool is None:
		_pool = await asyncpg.create_pool(
			dsn=settings.postgres_url,
			min_size=settings.postgres_min_pool_size,
			max_size=settings.postgres_max_pool_size,
			ssl="require" if settings.postgres_ssl else "disable",
			command_timeout=settings.operation_timeout_seconds,
			init=init_connection,
		)
	return _pool


def set_pool(pool: Optional[asyncpg.pool.Pool]) -> None:
	global _pool
	_pool = pool


async def get_pool() -> asyncpg.pool.Pool:
	if _pool is None:
		await init_pool()
	assert _pool is not None
	return _pool


async def close_pool() -> None:
	global _pool
	if _pool is not None:
		await _pool.close()
		_pool = None
