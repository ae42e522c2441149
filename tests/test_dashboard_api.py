import pytest
from httpx import AsyncClient


async def issue(client: AsyncClient, headers, name: str, cert_type: str = "volunteer"):
    response = await client.post(
        "/api/certificates/create",
        json={"cert_type": cert_type, "participant_name": name, "award_type": cert_type.title()},
        headers=headers,
    )
    return response.json()["certificate"]


@pytest.mark.asyncio
async def test_events_list_and_create(client: AsyncClient, admin_headers, default_event, notifier):
    response = await client.post(
        "/api/events",
        json={"event_code": "Summit 2026", "event_name": "Summit", "year": 2026, "month": 3},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["event"]["event_code"] == "summit-2026"
    assert notifier.sent[-1].title == "📅 New Event Created"

    await issue(client, admin_headers, "Someone")
    events = (await client.get("/api/events", headers=admin_headers)).json()["events"]
    counts = {e["event_code"]: e["certificate_count"] for e in events}
    assert counts == {"mun-2025": 1, "summit-2026": 0}


@pytest.mark.asyncio
async def test_duplicate_event_conflicts(client: AsyncClient, admin_headers, default_event):
    response = await client.post(
        "/api/events",
        json={"event_code": "mun-2025", "event_name": "Again"},
        headers=admin_headers,
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_stats(client: AsyncClient, admin_headers, default_event):
    first = await issue(client, admin_headers, "One")
    await issue(client, admin_headers, "Two", cert_type="speaker")
    await client.patch(f"/api/certificates/{first['id']}", json={"action": "revoke"}, headers=admin_headers)
    await client.get(f"/api/verify/{first['certificate_id']}")

    response = await client.get("/api/stats", headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["stats"] == {
        "totalCertificates": 2,
        "activeCertificates": 1,
        "revokedCertificates": 1,
        "totalVerifications": 1,
        "totalEvents": 1,
    }
    assert body["typeBreakdown"] == {"Volunteer": 1, "Speaker": 1}
    assert len(body["recentCertificates"]) == 2
    assert body["events"][0]["certificate_count"] == 2


@pytest.mark.asyncio
async def test_verify_records_lookup(client: AsyncClient, admin_headers, mod_headers, default_event, notifier):
    created = await issue(client, admin_headers, "Verified Person")

    response = await client.get(f"/api/verify/{created['certificate_id']}", headers={"user-agent": "pytest"})

    assert response.status_code == 200
    body = response.json()
    assert body["valid"] is True
    assert body["participant_name"] == "Verified Person"
    assert body["event"]["event_code"] == "mun-2025"
    assert notifier.sent[-1].title == "✅ Certificate Verified Successfully"

    logs = (await client.get("/api/logs/verifications", headers=mod_headers)).json()
    assert len(logs) == 1
    assert logs[0]["participant_name"] == "Verified Person"
    assert logs[0]["user_agent"] == "pytest"

    detail = (await client.get(f"/api/certificates/{created['id']}", headers=admin_headers)).json()
    assert detail["verification_count"] == 1
    assert detail["last_verified_at"] is not None


@pytest.mark.asyncio
async def test_verify_revoked_and_unknown(client: AsyncClient, admin_headers, default_event):
    created = await issue(client, admin_headers, "Revoked Person")
    await client.patch(f"/api/certificates/{created['id']}", json={"action": "revoke"}, headers=admin_headers)

    revoked = (await client.get(f"/api/verify/{created['certificate_id']}")).json()
    assert revoked["valid"] is False
    assert revoked["status"] == "revoked"

    unknown = (await client.get("/api/verify/nope000")).json()
    assert unknown["valid"] is False
    assert unknown["message"] == "Certificate not found"
