"""
Tests for the REST API.
The application runs on the in-memory index through FastAPI's TestClient.
"""
import json

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from api.routes.progress import progress_events
from core.context import AppContext
from domain.models import ParseProgress, ProgressStatus
from ingestion.ids import file_id
from ingestion.progress import ProgressBroadcaster


@pytest.fixture
def client(memory_settings):
    app = create_app(AppContext(settings=memory_settings))
    with TestClient(app) as test_client:
        yield test_client


class TestHealth:
    """Tests para el endpoint de salud"""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "service": "document-mirror"}


class TestDocumentRoutes:
    """Tests para /api/documents"""

    def test_ingest_and_list(self, client, text_files):
        response = client.post("/api/documents", json={"filePaths": text_files})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert sorted(body["data"]["success"]) == ["alpha.txt", "beta.md"]
        assert body["data"]["failed"] == []

        records = client.get("/api/documents/records").json()["data"]
        assert {r["fileName"] for r in records} == {"alpha.txt", "beta.md"}
        assert all(len(r["fileId"]) == 16 for r in records)

    def test_ingest_failure_entries(self, client, tmp_path):
        response = client.post("/api/documents", json={"filePaths": [str(tmp_path / "a.docx")]})
        assert response.json()["data"]["failed"] == [
            {"fileName": "a.docx", "error": "Unsupported file type: a.docx"}
        ]

    def test_ingest_requires_paths(self, client):
        assert client.post("/api/documents", json={"filePaths": []}).status_code == 422

    def test_supported_types(self, client):
        body = client.get("/api/documents/supported-types").json()
        assert body == {"success": True, "data": [".md", ".pdf", ".txt"]}

    def test_get_record(self, client, text_files):
        client.post("/api/documents", json={"filePaths": text_files[:1]})
        fid = file_id(text_files[0])

        body = client.get(f"/api/documents/records/{fid}").json()

        assert body["data"]["filePath"] == text_files[0]

    def test_delete(self, client, text_files):
        client.post("/api/documents", json={"filePaths": text_files})
        fid = file_id(text_files[0])

        body = client.delete(f"/api/documents/{fid}").json()

        assert body == {"success": True, "data": {"fileId": fid, "deletedChunks": 1}}
        again = client.delete(f"/api/documents/{fid}").json()
        assert again["success"] is False
        assert "Record does not exist" in again["error"]


class TestSearchRoutes:
    """Tests para /api/search"""

    def test_search(self, client, text_files):
        client.post("/api/documents", json={"filePaths": text_files})

        body = client.post("/api/search", json={"query": "aardvark"}).json()

        assert body["success"] is True
        assert body["data"]["estimatedTotalHits"] == 1
        assert body["data"]["hits"][0]["fileName"] == "alpha.txt"
        assert "<mark>aardvark</mark>" in body["data"]["hits"][0]["_formatted"]["content"]

    def test_search_with_options(self, client, text_files):
        client.post("/api/documents", json={"filePaths": text_files})
        body = client.post(
            "/api/search",
            json={"query": "", "filter": 'fileType = "md"', "includeContent": True},
        ).json()

        hits = body["data"]["hits"]
        assert [h["fileName"] for h in hits] == ["beta.md"]
        assert "content" in hits[0]

    def test_invalid_filter_is_an_envelope(self, client):
        response = client.post("/api/search", json={"query": "x", "filter": "createdAt > 1"})
        assert response.status_code == 200
        assert response.json()["success"] is False

    def test_stats_init_clear(self, client, text_files):
        assert client.post("/api/search/init").json() == {"success": True, "data": None}
        client.post("/api/documents", json={"filePaths": text_files})
        assert client.get("/api/search/stats").json()["data"]["numberOfDocuments"] == 2

        cleared = client.delete("/api/search/index").json()

        assert cleared["success"] is True
        assert client.get("/api/search/stats").json()["data"]["numberOfDocuments"] == 0


class TestEngineRoutes:
    """Tests para /api/engine y /api/config"""

    def test_engine_status(self, client):
        body = client.get("/api/engine/status").json()
        assert body["data"]["isRunning"] is False

    def test_config_round_trip(self, client, tmp_path):
        assert client.get("/api/config").json()["data"]["isComplete"] is False

        client.put("/api/config", json={"key": "dataPath", "value": str(tmp_path / "data")})
        body = client.put("/api/config", json={"key": "meilisearchPath", "value": "/opt/ms"}).json()

        assert body["data"]["isComplete"] is True
        assert body["data"]["config"]["meilisearchPath"] == "/opt/ms"

    def test_config_unknown_key(self, client):
        body = client.put("/api/config", json={"key": "nope", "value": 1}).json()
        assert body["success"] is False


class TestProgressStream:
    """Tests para el flujo de eventos de progreso"""

    async def test_progress_events(self):
        broadcaster = ProgressBroadcaster()
        events = progress_events(broadcaster, max_events=1, keepalive=0.01)

        assert await events.__anext__() == ": keep-alive\n\n"
        assert broadcaster.subscriber_count == 1

        broadcaster.on_progress(ParseProgress(
            file_name="a.pdf", current=1, total=2, percentage=50,
            status=ProgressStatus.PARSING, message="Parsed page 1/2",
        ))
        frame = await events.__anext__()

        assert frame.startswith("event: progress\ndata: ")
        payload = json.loads(frame.split("data: ", 1)[1])
        assert payload == {
            "fileName": "a.pdf",
            "current": 1,
            "total": 2,
            "percentage": 50,
            "status": "parsing",
            "message": "Parsed page 1/2",
        }
        with pytest.raises(StopAsyncIteration):
            await events.__anext__()
        assert broadcaster.subscriber_count == 0
