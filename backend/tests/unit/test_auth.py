from datetime import datetime, timezone

import pytest

from clubconnect.domain.errors import Unauthenticated
from clubconnect.domain.identity import sessions
from clubconnect.infra import auth
from clubconnect.infra import jwt as jwt_helper
from clubconnect.settings import settings


def test_verify_access_jwt_reads_identity_claims_only():
    token = jwt_helper.encode_access({"sub": "u1", "tenant_id": "club", "sid": "s-1", "role": "admin"})
    user = auth.verify_access_jwt(token)
    assert user.id == "u1"
    assert user.tenant_id == "club"
    assert user.session_id == "s-1"
    assert not hasattr(user, "role")


def test_verify_access_jwt_rejects_garbage_and_missing_tenant():
    with pytest.raises(Unauthenticated):
        auth.verify_access_jwt("not-a-token")
    with pytest.raises(Unauthenticated):
        auth.verify_access_jwt(jwt_helper.encode_access({"sub": "u1"}))


@pytest.mark.asyncio
async def test_revoked_session_is_refused():
    token = jwt_helper.encode_access({"sub": "u1", "tenant_id": "club"})
    user = auth.verify_access_jwt(token)
    await sessions.revoke_all_sessions("u1", at=datetime.fromtimestamp(user.issued_at + 5, tz=timezone.utc))
    with pytest.raises(Unauthenticated) as excinfo:
        await auth._ensure_not_revoked(user)
    assert excinfo.value.reason == "session_revoked"


@pytest.mark.asyncio
async def test_revocation_marker_only_moves_forward():
    later = datetime(2025, 3, 1, tzinfo=timezone.utc)
    earlier = datetime(2025, 2, 1, tzinfo=timezone.utc)
    await sessions.revoke_all_sessions("u1", at=later)
    await sessions.revoke_all_sessions("u1", at=earlier)
    assert await sessions.revoked_before("u1") == int(later.timestamp())


@pytest.mark.asyncio
async def test_dev_headers_only_outside_production():
    user = await auth.get_current_user(x_user_id="u1", x_tenant_id=None, credentials=None)
    assert user.tenant_id == "default"
    settings.environment = "production"
    with pytest.raises(Unauthenticated):
        await auth.get_current_user(x_user_id="u1", x_tenant_id="club", credentials=None)
