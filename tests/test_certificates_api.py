import csv
import io

import pytest
from httpx import AsyncClient

from app.schemas.sheet import SheetColumns
from app.utils.cache import BATCH_KEYS, CACHE_KEYS


async def create(client: AsyncClient, headers, **overrides):
    payload = {
        "cert_type": "delegate",
        "participant_name": "Jane Doe",
        "email": "jane@example.com",
        "institution": "Hill School",
        "award_type": "Best Delegate",
        "committee": "UNSC",
        "country": "France",
    }
    payload.update(overrides)
    return await client.post("/api/certificates/create", json=payload, headers=headers)


@pytest.mark.asyncio
async def test_create_certificate(client: AsyncClient, admin_headers, default_event, notifier):
    response = await create(client, admin_headers)

    assert response.status_code == 200
    created = response.json()["certificate"]
    assert created["participant_name"] == "Jane Doe"
    assert created["verification_url"].endswith("/" + created["certificate_id"])
    assert notifier.sent[-1].title == "🎓 New Certificate Created"

    detail = await client.get(f"/api/certificates/{created['id']}", headers=admin_headers)
    assert detail.status_code == 200
    body = detail.json()
    assert body["certificate_type"] == "Best Delegate"
    assert body["event"]["event_code"] == "mun-2025"
    metadata = {m["field_name"]: m["field_value"] for m in body["metadata_entries"]}
    assert metadata == {"cert_type": "delegate", "email": "jane@example.com", "committee": "UNSC", "country": "France"}


@pytest.mark.asyncio
async def test_create_uses_category_when_award_is_blank(client: AsyncClient, admin_headers, default_event):
    response = await create(client, admin_headers, cert_type="volunteer", award_type="", committee=None, country=None)
    assert response.status_code == 200

    detail = await client.get(f"/api/certificates/{response.json()['certificate']['id']}", headers=admin_headers)
    assert detail.json()["certificate_type"] == "volunteer"


@pytest.mark.asyncio
async def test_create_rejects_missing_fields(client: AsyncClient, admin_headers, default_event):
    response = await create(client, admin_headers, country="")
    assert response.status_code == 400
    assert response.json()["detail"] == "Missing required fields: Country"


@pytest.mark.asyncio
async def test_create_without_event_is_not_found(client: AsyncClient, admin_headers):
    response = await create(client, admin_headers)
    assert response.status_code == 404
    assert response.json()["error_code"] == "EVENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_create_adds_sheet_row(client: AsyncClient, admin_headers, default_event, sheet_store):
    response = await create(
        client,
        admin_headers,
        cert_type="secretariat",
        award_type="Secretariat",
        department="Logistics",
        designation="Head",
        add_to_sheet=True,
    )
    assert response.status_code == 200

    [row] = sheet_store.rows
    assert row[SheetColumns.UNIQUE_ID] == response.json()["certificate"]["certificate_id"]
    assert row[SheetColumns.COMMITTEE] == "Logistics"
    assert row[SheetColumns.COUNTRY] == "Head"


@pytest.mark.asyncio
async def test_create_survives_sheet_failure(client: AsyncClient, admin_headers, default_event, sheet_store):
    sheet_store.rate_limited = 100
    response = await create(client, admin_headers, add_to_sheet=True)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_revoke_and_restore_queue_sheet_updates(client: AsyncClient, admin_headers, default_event, services):
    created = (await create(client, admin_headers)).json()["certificate"]

    revoked = await client.patch(
        f"/api/certificates/{created['id']}",
        json={"action": "revoke", "reason": "Duplicate"},
        headers=admin_headers,
    )
    assert revoked.status_code == 200
    assert revoked.json()["status"] == "revoked"

    detail = (await client.get(f"/api/certificates/{created['id']}", headers=admin_headers)).json()
    assert detail["revoked_reason"] == "Duplicate"

    restored = await client.patch(
        f"/api/certificates/{created['id']}", json={"action": "restore"}, headers=admin_headers
    )
    assert restored.json()["status"] == "active"
    assert services.cache.pending_count(BATCH_KEYS.SHEET_UPDATES) == 2


@pytest.mark.asyncio
async def test_queued_sheet_update_flush_drops_cached_sheet_rows(client: AsyncClient, admin_headers, default_event, services, sheet_store):
    created = (await create(client, admin_headers, add_to_sheet=True)).json()["certificate"]
    overview = await client.get("/api/sheet", headers=admin_headers)
    assert overview.status_code == 200
    assert services.cache.get(CACHE_KEYS.SHEET_DATA) is not None

    await client.patch(f"/api/certificates/{created['id']}", json={"action": "revoke"}, headers=admin_headers)
    await services.cache.flush_updates(BATCH_KEYS.SHEET_UPDATES, services.push_sheet_updates)

    assert services.cache.get(CACHE_KEYS.SHEET_DATA) is None
    assert sheet_store.rows[0][SheetColumns.VERIFIED_STATUS] == "revoked"


@pytest.mark.asyncio
async def test_revoke_default_reason(client: AsyncClient, admin_headers, default_event):
    created = (await create(client, admin_headers)).json()["certificate"]
    await client.patch(f"/api/certificates/{created['id']}", json={"action": "revoke"}, headers=admin_headers)
    detail = (await client.get(f"/api/certificates/{created['id']}", headers=admin_headers)).json()
    assert detail["revoked_reason"] == "Revoked by admin"


@pytest.mark.asyncio
async def test_invalid_action(client: AsyncClient, admin_headers, default_event):
    created = (await create(client, admin_headers)).json()["certificate"]
    response = await client.patch(
        f"/api/certificates/{created['id']}", json={"action": "archive"}, headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_ACTION"


@pytest.mark.asyncio
async def test_update_replaces_metadata(client: AsyncClient, admin_headers, default_event):
    created = (await create(client, admin_headers)).json()["certificate"]

    response = await client.put(
        f"/api/certificates/{created['id']}",
        json={"participant_name": "Jane Q. Doe", "metadata": {"committee": "DISEC"}},
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["participant_name"] == "Jane Q. Doe"
    assert [(m["field_name"], m["field_value"]) for m in body["metadata_entries"]] == [("committee", "DISEC")]


@pytest.mark.asyncio
async def test_delete_blanks_sheet_row(client: AsyncClient, admin_headers, default_event, services, sheet_store):
    created = (await create(client, admin_headers, add_to_sheet=True)).json()["certificate"]
    await client.get(f"/api/verify/{created['certificate_id']}")

    response = await client.delete(f"/api/certificates/{created['id']}", headers=admin_headers)
    assert response.status_code == 200

    missing = await client.get(f"/api/certificates/{created['id']}", headers=admin_headers)
    assert missing.status_code == 404

    await services.cache.flush_all()
    row = sheet_store.rows[0]
    assert row[SheetColumns.UNIQUE_ID] == ""
    assert row[SheetColumns.VERIFICATION_URL] == ""
    assert row[SheetColumns.VERIFIED_STATUS] == "deleted"


@pytest.mark.asyncio
async def test_list_search_and_pagination(client: AsyncClient, admin_headers, default_event):
    for name in ["Alice", "Bob", "Alicia"]:
        await create(client, admin_headers, participant_name=name)

    response = await client.get("/api/certificates", params={"search": "ali", "limit": 1}, headers=admin_headers)
    body = response.json()
    assert body["total"] == 2
    assert body["totalPages"] == 2
    assert len(body["certificates"]) == 1


@pytest.mark.asyncio
async def test_bulk_import_collects_failures(client: AsyncClient, admin_headers, default_event):
    response = await client.post(
        "/api/certificates/import",
        json={"certificates": [
            {"participant_name": "One", "certificate_type": "volunteer"},
            {"participant_name": "", "certificate_type": "volunteer"},
            {"participant_name": "Three", "certificate_type": "delegate", "event_name": "unknown-event"},
        ]},
        headers=admin_headers,
    )

    body = response.json()
    assert body["success"] == 1
    assert body["failed"] == 2
    assert len(body["errors"]) == 2


@pytest.mark.asyncio
async def test_bulk_import_keeps_category_fields(client: AsyncClient, admin_headers, default_event):
    response = await client.post(
        "/api/certificates/import",
        json={"certificates": [
            {"participant_name": "Del", "certificate_type": "Delegate", "committee": "UNSC", "country": "France", "award": "Best Delegate"},
            {"participant_name": "Sec", "certificate_type": "Secretariat", "committee": "Logistics", "award": "Gold", "secretariat_role": "Head"},
        ]},
        headers=admin_headers,
    )
    assert response.json()["success"] == 2

    listed = (await client.get("/api/certificates", headers=admin_headers)).json()["certificates"]
    metadata = {
        c["participant_name"]: {m["field_name"]: m["field_value"] for m in c["metadata_entries"]}
        for c in listed
    }
    assert metadata["Del"] == {"committee": "UNSC", "country": "France", "award": "Best Delegate"}
    assert metadata["Sec"] == {"secretariat_role": "Head"}


@pytest.mark.asyncio
async def test_export_csv(client: AsyncClient, admin_headers, default_event):
    await create(client, admin_headers, participant_name='Jane "JD" Doe, Jr.')

    response = await client.get("/api/certificates/export", params={"format": "csv"}, headers=admin_headers)

    assert response.status_code == 200
    assert "certificates-" in response.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0][0] == "Certificate ID"
    assert rows[1][1] == 'Jane "JD" Doe, Jr.'
    assert rows[1][4] == "Model UN 2025"


@pytest.mark.asyncio
async def test_export_json_filters_by_status(client: AsyncClient, admin_headers, default_event):
    kept = (await create(client, admin_headers, participant_name="Kept")).json()["certificate"]
    revoked = (await create(client, admin_headers, participant_name="Gone")).json()["certificate"]
    await client.patch(f"/api/certificates/{revoked['id']}", json={"action": "revoke"}, headers=admin_headers)

    response = await client.get(
        "/api/certificates/export", params={"format": "json", "status": "active"}, headers=admin_headers
    )

    assert [c["certificate_id"] for c in response.json()] == [kept["certificate_id"]]
