import json

import pytest

from bandsheets.imports.models import NO_SHEETS_MESSAGE, UNKNOWN_FORMAT_MESSAGE

IMPORT_URL = "/api/import-export/import"


async def _import(client, headers, *sheets):
    response = await client.post(IMPORT_URL, json={"sheets": list(sheets)}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


class TestImportEndpoint:
    @pytest.mark.asyncio
    async def test_requires_authentication(self, client):
        response = await client.post(IMPORT_URL, json={"sheets": [{"id": "s1", "title": "A"}]})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_import_new_sheets(self, client, register_user):
        headers = await register_user()

        response = await client.post(
            IMPORT_URL,
            json={"sheets": [{"id": "s1", "title": "A"}, {"id": "s2", "title": "B"}]},
            headers=headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Import complete. 2 sheets imported, 0 skipped."
        assert body["results"]["total"] == 2
        assert body["results"]["errors"] == []
        assert body["results"]["imported_ids"] == ["s1", "s2"]

        sheet = (await client.get("/api/sheets/s1", headers=headers)).json()
        assert sheet["is_public"] is False
        assert sheet["shared_with"] == []
        assert sheet["date_imported"] is not None

    @pytest.mark.asyncio
    async def test_server_managed_fields_are_ignored(self, client, register_user):
        headers = await register_user()
        record = {
            "id": "s9",
            "title": "X",
            "owner": "someone-else",
            "isPublic": True,
            "sharedWith": [{"user": "someone-else", "permission": "edit"}],
            "_id": "507f1f77bcf86cd799439011",
        }

        await client.post(IMPORT_URL, json={"sheets": [record]}, headers=headers)

        me = (await client.get("/api/auth/me", headers=headers)).json()
        sheet = (await client.get("/api/sheets/s9", headers=headers)).json()
        assert sheet["owner_id"] == me["id"]
        assert sheet["is_public"] is False
        assert sheet["content"] == {"id": "s9", "title": "X"}

    @pytest.mark.asyncio
    async def test_duplicates_skipped_without_options(self, client, register_user):
        headers = await register_user()
        await _import(client, headers, {"id": "s1", "title": "Old"})

        response = await client.post(
            IMPORT_URL, json={"sheets": [{"id": "s1", "title": "A"}]}, headers=headers
        )

        results = response.json()["results"]
        assert (results["imported"], results["skipped"]) == (0, 1)
        sheet = (await client.get("/api/sheets/s1", headers=headers)).json()
        assert sheet["title"] == "Old"

    @pytest.mark.asyncio
    async def test_import_options_flags(self, client, register_user):
        headers = await register_user()
        await _import(client, headers, {"id": "s1", "title": "Old"})

        response = await client.post(
            IMPORT_URL,
            json={
                "sheets": [{"id": "s1", "title": "A"}],
                "importOptions": {
                    "generateNewIds": False,
                    "skipDuplicates": False,
                    "overwriteDuplicates": True,
                },
            },
            headers=headers,
        )

        assert response.json()["message"] == "Import complete. 1 sheets imported, 0 skipped."
        sheet = (await client.get("/api/sheets/s1", headers=headers)).json()
        assert sheet["title"] == "A"

    @pytest.mark.asyncio
    async def test_records_key_and_policy_name(self, client, register_user):
        headers = await register_user()
        await _import(client, headers, {"id": "s1", "title": "Old"})

        response = await client.post(
            IMPORT_URL,
            json={"records": [{"id": "s1", "title": "A"}], "policy": "rename"},
            headers=headers,
        )

        results = response.json()["results"]
        assert results["imported"] == 1
        assert results["imported_ids"][0] != "s1"
        listed = (await client.get("/api/sheets/", headers=headers)).json()
        assert len(listed) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"sheets": []}, {"sheets": {"id": "s1"}}])
    async def test_structural_error(self, client, register_user, payload):
        headers = await register_user()

        response = await client.post(IMPORT_URL, json=payload, headers=headers)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": NO_SHEETS_MESSAGE}

    @pytest.mark.asyncio
    async def test_per_record_errors_reported(self, client, register_user):
        headers = await register_user()

        response = await client.post(
            IMPORT_URL,
            json={"sheets": [{"id": "s1"}, {"id": "s2", "title": "B"}]},
            headers=headers,
        )

        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Import complete. 1 sheets imported, 0 skipped."
        assert body["results"]["errors"][0]["identifier"] == "s1"
        assert body["results"]["errors"][0]["title"] == "unknown"


class TestImportFileEndpoint:
    @pytest.mark.asyncio
    async def test_upload_bundle(self, client, register_user):
        headers = await register_user()
        content = json.dumps({"sheets": [{"id": "f1", "title": "From File"}]}).encode()

        response = await client.post(
            "/api/import-export/import/file",
            files={"file": ("sheets.json", content, "application/json")},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["results"]["imported_ids"] == ["f1"]

    @pytest.mark.asyncio
    async def test_upload_with_policy(self, client, register_user):
        headers = await register_user()
        await _import(client, headers, {"id": "f1", "title": "Old"})
        content = json.dumps({"id": "f1", "title": "New", "sections": []}).encode()

        response = await client.post(
            "/api/import-export/import/file",
            params={"policy": "overwrite"},
            files={"file": ("one.json", content, "application/json")},
            headers=headers,
        )

        assert response.json()["results"]["imported"] == 1
        sheet = (await client.get("/api/sheets/f1", headers=headers)).json()
        assert sheet["title"] == "New"

    @pytest.mark.asyncio
    async def test_unknown_file_format(self, client, register_user):
        headers = await register_user()

        response = await client.post(
            "/api/import-export/import/file",
            files={"file": ("odd.json", b'{"name": "x"}', "application/json")},
            headers=headers,
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": UNKNOWN_FORMAT_MESSAGE}


class TestCheckDuplicates:
    @pytest.mark.asyncio
    async def test_does_not_store_anything(self, client, register_user):
        headers = await register_user()
        await _import(client, headers, {"id": "s1", "title": "A"})

        response = await client.post(
            "/api/import-export/check-duplicates",
            json={"sheets": [{"id": "s1", "title": "A"}, {"id": "s2", "title": "B"}]},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json() == {"identifiers": ["s1"], "has_duplicates": True}
        missing = await client.get("/api/sheets/s2", headers=headers)
        assert missing.status_code == 404


class TestExport:
    @pytest.mark.asyncio
    async def test_nothing_to_export(self, client, register_user):
        headers = await register_user()

        response = await client.get("/api/import-export/export", headers=headers)

        assert response.status_code == 404
        assert response.json()["message"] == "No sheets found for export"

    @pytest.mark.asyncio
    async def test_export_then_reimport_skips_everything(self, client, register_user):
        headers = await register_user()
        sheets = [{"id": "s1", "title": "A", "bpm": 96}, {"id": "s2", "title": "B"}]
        await client.post(IMPORT_URL, json={"sheets": sheets}, headers=headers)

        exported = await client.get("/api/import-export/export", headers=headers)

        body = exported.json()
        assert body["success"] is True
        assert body["data"]["exportedBy"] == "alice"
        assert body["data"]["sheetsCount"] == 2
        assert {sheet["id"] for sheet in body["data"]["sheets"]} == {"s1", "s2"}

        reimport = await client.post(
            "/api/import-export/import/file",
            files={"file": ("export.json", exported.content, "application/json")},
            headers=headers,
        )
        assert reimport.json()["message"] == "Import complete. 0 sheets imported, 2 skipped."
