import pytest

from clubconnect.domain.identity.models import Role
from clubconnect.settings import settings


def headers(user_id):
    return {"X-User-Id": user_id, "X-Tenant-Id": "club"}


@pytest.mark.asyncio
async def test_recommendations_rank_and_hint(api_client, seed):
    await seed("ada", skills=["react", "node"])
    await seed("no-skills")
    await seed("a", role=Role.ALUMNI, expertise=["react", "node", "aws"], grad_year=2015, average_rating=4.5)
    await seed("b", role=Role.ALUMNI, expertise=["react"], grad_year=2022, average_rating=5.0)

    resp = await api_client.get("/mentors/recommendations", headers=headers("ada"))
    assert resp.status_code == 200
    body = resp.json()
    assert [item["mentor"]["account_id"] for item in body["recommendations"]] == ["a", "b"]
    assert body["total_matches"] == 2

    empty = await api_client.get("/mentors/recommendations", headers=headers("no-skills"))
    assert empty.json()["recommendations"] == []
    assert empty.json()["hint"]

    browse = await api_client.get("/mentors", headers=headers("ada"))
    assert [item["account_id"] for item in browse.json()["mentors"]] == ["b", "a"]


@pytest.mark.asyncio
async def test_health_and_request_id(api_client):
    resp = await api_client.get("/health/live", headers={"X-Request-Id": "req-123"})
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers["X-Request-Id"] == "req-123"


@pytest.mark.asyncio
async def test_metrics_require_token(api_client, monkeypatch):
    monkeypatch.setattr(settings, "obs_metrics_public", False)
    monkeypatch.setattr(settings, "obs_admin_token", "ops-token")
    assert (await api_client.get("/metrics")).status_code == 403
    resp = await api_client.get("/metrics", headers={"X-Admin-Token": "ops-token"})
    assert resp.status_code == 200
    assert "clubconnect" in resp.text
