"""
Tests for the docrag HTTP API.

The service dependency is overridden with stores backed by a fake
embedding generator and a temporary learning file.
"""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch

from docrag.api.main import app
from docrag.api.routes import service_dependency
from docrag.api.services import DocsService
from docrag.config import Settings, StorageConfig
from docrag.learning import LearningStore
from docrag.rag.models import SectionType
from docrag.rag.store import ChunkStore


@pytest.fixture
def service(tmp_path, fake_generator_cls, chunk_factory, unit_vector):
    store = ChunkStore(fake_generator_cls(
        {"how to use the logs command": [1.0, 0.0]},
        fail_on="explode",
    ))
    store.store(chunk_factory("## Usage\nk8stool logs POD", unit_vector(0.6),
                              command="logs", section_type=SectionType.USAGE))
    store.store(chunk_factory("## Examples\nk8stool logs web-1", unit_vector(0.5),
                              command="logs", section_type=SectionType.EXAMPLE, start_line=5, end_line=9))
    store.store(chunk_factory("## Usage\nk8stool pods", unit_vector(0.9),
                              command="pods", section_type=SectionType.USAGE))
    learning = LearningStore(str(tmp_path / "learning.json"))
    return DocsService(store, learning, default_limit=5)


@pytest.fixture
def client(service):
    app.dependency_overrides[service_dependency] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestSearchEndpoint:

    def test_ranked_results(self, client):
        response = client.post("/api/docs/search", json={"query": "how to use the logs command"})

        assert response.status_code == 200
        body = response.json()
        assert [(r["command"], r["type"]) for r in body["results"]] == [
            ("logs", "usage"),
            ("logs", "example"),
        ]
        assert body["results"][0]["chunk_id"] == "logs.md:0-5"
        assert body["results"][0]["score"] == pytest.approx(0.6 * 2.0 * 1.5)
        assert body["results"][0]["similarity"] == pytest.approx(0.6)
        assert "[Source 1] (logs/usage)" in body["formatted_context"]

    def test_k_limits_results(self, client):
        response = client.post("/api/docs/search", json={"query": "how to use the logs command", "k": 1})

        assert len(response.json()["results"]) == 1

    def test_empty_query_rejected(self, client):
        response = client.post("/api/docs/search", json={"query": ""})

        assert response.status_code == 422

    def test_embedding_failure_is_bad_gateway(self, client):
        response = client.post("/api/docs/search", json={"query": "explode"})

        assert response.status_code == 502
        assert "failed to generate query embedding" in response.json()["detail"]


class TestFeedbackEndpoint:

    def test_records_and_scores(self, client):
        response = client.post("/api/docs/feedback", json={
            "query": "how to use the logs command",
            "response": "Use k8stool logs POD",
            "chunks_used": ["logs.md:0-5"],
            "successful": True,
        })

        assert response.status_code == 200
        assert response.json() == {"applied": {"logs.md:0-5": pytest.approx(1.01)}, "interactions": 1}

        score = client.get("/api/docs/scores/logs.md:0-5")
        assert score.status_code == 200
        assert score.json()["score"] == pytest.approx(1.01)

    def test_failed_answer_lowers_score(self, client):
        client.post("/api/docs/feedback", json={
            "query": "q", "chunks_used": ["logs.md:5-9"], "successful": False,
        })

        assert client.get("/api/docs/scores/logs.md:5-9").json()["score"] == pytest.approx(0.99)

    def test_unknown_chunk_scores_one(self, client):
        assert client.get("/api/docs/scores/commands/pods.md:0-3").json() == {
            "chunk_id": "commands/pods.md:0-3",
            "score": 1.0,
        }

    def test_persist_failure_is_server_error(self, client, service):
        with patch.object(service.learning, "save", side_effect=OSError("disk full")):
            response = client.post("/api/docs/feedback", json={
                "query": "q", "chunks_used": ["a"], "successful": True,
            })

        assert response.status_code == 500


class TestServiceUnavailable:

    def test_configuration_error_is_503(self):
        with patch("docrag.api.routes.get_service", side_effect=ValueError("OpenAI API key is required")):
            response = TestClient(app).post("/api/docs/search", json={"query": "logs"})

        assert response.status_code == 503
        assert "OpenAI API key" in response.json()["detail"]


class TestHealth:

    def test_health(self, tmp_path):
        store_path = tmp_path / "embeddings.json"
        store_path.write_text("[]")
        settings = Settings(storage=StorageConfig(store_path=str(store_path), learning_path=str(tmp_path / "l.json")))

        with patch("docrag.api.main.get_settings", return_value=settings):
            response = TestClient(app).get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["store_present"] is True
