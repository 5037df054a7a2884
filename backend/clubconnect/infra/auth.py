"""Authentication helpers for FastAPI endpoints.

Only the identity claims of a verified token are trusted (subject, tenant,
session id, issue time). Role and status always come from the account store.
Dev headers are respected only in development.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from clubconnect.domain.errors import Unauthenticated
from clubconnect.domain.identity import sessions
from clubconnect.infra import jwt as jwt_helper
from clubconnect.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	tenant_id: str
	session_id: Optional[str] = None
	issued_at: Optional[int] = None


_bearer_scheme = HTTPBearer(auto_error=False)


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return an AuthenticatedUser.

	Requirements:
	- issuer/audience from settings
	- required claims: sub, tenant_id, exp, iat
	- role claims are ignored
	"""
	try:
		payload = jwt_helper.decode_access(token)
	except Exception:
		raise Unauthenticated("invalid_token") from None

	sub = str(payload.get("sub") or "").strip()
	tenant_id = str(payload.get("tenant_id") or "").strip()
	if not sub or not tenant_id:
		raise Unauthenticated("invalid_token")
	session_id = payload.get("sid")
	issued_at = payload.get("iat")
	return AuthenticatedUser(
		id=sub,
		tenant_id=tenant_id,
		session_id=str(session_id).strip() if session_id is not None else None,
		issued_at=int(issued_at) if issued_at is not None else None,
	)


async def _ensure_not_revoked(user: AuthenticatedUser) -> None:
	if user.issued_at is None:
		return
	marker = await sessions.revoked_before(user.id)
	if marker is not None and user.issued_at < marker:
		raise Unauthenticated("session_revoked")


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_tenant_id: Optional[str] = Header(default=None, alias="X-Tenant-Id"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	"""Resolve the authenticated user.

	In development we allow simple headers. In all other environments, headers are
	ignored and a valid Bearer JWT is required.
	"""
	if credentials and credentials.scheme.lower() == "bearer":
		user = verify_access_jwt(credentials.credentials)
		await _ensure_not_revoked(user)
		return user

	if settings.is_dev() and x_user_id:
		return AuthenticatedUser(id=x_user_id, tenant_id=x_tenant_id or "default")

	raise Unauthenticated("invalid_token")
