import pytest

from clubconnect.domain.identity.models import Role


def headers(user_id):
    return {"X-User-Id": user_id, "X-Tenant-Id": "club"}

POSTING = {"company": "Acme", "role": "Backend Intern", "description": "Build internal APIs in Python."}


@pytest.mark.asyncio
async def test_referral_flow_over_http(api_client, seed):
    await seed("alum", role=Role.ALUMNI)
    await seed("s1")
    await seed("s2")

    created = await api_client.post("/referrals", json=POSTING, headers=headers("alum"))
    assert created.status_code == 201, created.text
    referral_id = created.json()["id"]

    assert (await api_client.post(f"/referrals/{referral_id}/apply", headers=headers("s1"))).status_code == 200
    assert (await api_client.post(f"/referrals/{referral_id}/apply", headers=headers("s2"))).status_code == 200
    duplicate = await api_client.post(f"/referrals/{referral_id}/apply", headers=headers("s1"))
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"] == "already_applied"

    listed = await api_client.get("/referrals", headers=headers("s1"))
    assert listed.json()[0]["applicant_count"] == 2
    assert [item["student_id"] for item in listed.json()[0]["applicants"]] == ["s1"]

    decided = await api_client.patch(
        f"/referrals/{referral_id}/applicants/s1", json={"status": "accepted"}, headers=headers("alum")
    )
    assert decided.json()["accepted_applicant"] == "s1"

    assert (await api_client.post(f"/referrals/{referral_id}/close", headers=headers("alum"))).status_code == 200
    again = await api_client.post(f"/referrals/{referral_id}/close", headers=headers("alum"))
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_salary_range_is_validated(api_client, seed):
    await seed("alum", role=Role.ALUMNI)
    resp = await api_client.post(
        "/referrals", json={**POSTING, "salary_min": 90000, "salary_max": 50000}, headers=headers("alum")
    )
    assert resp.status_code == 422
