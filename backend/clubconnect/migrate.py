"""Apply SQL migrations from ``infra/migrations`` in version order."""

from __future__ import annotations

import asyncio
import logging
import pathlib

import asyncpg

from clubconnect.obs import logging as obs_logging
from clubconnect.settings import settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = pathlib.Path(__file__).resolve().parent / "infra" / "migrations"


async def _connect(retries: int = 30, delay: float = 2.0) -> asyncpg.Connection:
	for attempt in range(1, retries + 1):
		try:
			return await asyncpg.connect(
				dsn=settings.postgres_url,
				ssl="require" if settings.postgres_ssl else "disable",
			)
		except (OSError, asyncpg.CannotConnectNowError):
			logger.warning("database_not_ready", extra={"attempt": attempt, "retries": retries})
			await asyncio.sleep(delay)
	raise SystemExit("Could not connect to database after multiple retries")


async def apply_migrations(conn: asyncpg.Connection, directory: pathlib.Path = MIGRATIONS_DIR) -> list[str]:
	"""Apply pending migrations, each in its own transaction. Returns the applied file names."""
	paths = sorted(directory.glob("*.sql"))
	if not paths:
		raise SystemExit("no migration files found")
	await conn.execute(
		"""
		CREATE TABLE IF NOT EXISTS schema_migrations (
			version TEXT PRIMARY KEY,
			applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
		)
		"""
	)
	applied = {row["version"] for row in await conn.fetch("SELECT version FROM schema_migrations")}
	done: list[str] = []
	for path in paths:
		version = path.name.split("_", 1)[0]
		if version in applied:
			continue
		async with conn.transaction():
			await conn.execute(path.read_text())
			await conn.execute("INSERT INTO schema_migrations (version) VALUES ($1)", version)
		logger.info("migration_applied", extra={"migration": path.name})
		done.append(path.name)
	return done


async def _run() -> None:
	conn = await _connect()
	try:
		await apply_migrations(conn)
	finally:
		await conn.close()


def main() -> None:
	obs_logging.configure_logging()
	asyncio.run(_run())


if __name__ == "__main__":
	main()
