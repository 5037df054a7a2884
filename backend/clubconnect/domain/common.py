"""Small helpers shared by the domain services."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable
from uuid import uuid4

Clock = Callable[[], datetime]


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


def new_id() -> str:
	return str(uuid4())


def normalise_terms(values) -> list[str]:
	"""Lower-case, strip and de-duplicate free-form tags while keeping order."""
	if not values:
		return []
	normed: list[str] = []
	for value in values:
		if not value:
			continue
		norm = str(value).strip().lower()
		if norm:
			normed.append(norm)
	return list(dict.fromkeys(normed))
