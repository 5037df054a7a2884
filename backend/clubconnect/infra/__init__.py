"""Infrastructure adapters: Postgres, Redis, auth and rate limiting."""
