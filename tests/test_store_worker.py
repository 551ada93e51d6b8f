"""Request handling of the vector-store worker process."""

from __future__ import annotations

import io
import json
from datetime import datetime

import pytest

from ambient.scripts import store_worker
from ambient.src.database import vector_store


class CannedStore:
    def __init__(self, embedder, db_path, distance_type="l2") -> None:
        self.db_path = str(db_path)
        self.distance_type = distance_type

    def query(self, collection: str, text: str, k: int) -> list:
        if collection == "broken":
            raise RuntimeError("table corrupted")
        if collection == "dated":
            return [{"document": text, "distance": 0.1, "metadata": {"created_at": datetime(2026, 1, 2, 3, 4, 5)}}]
        return [{"document": f"{collection}:{text}", "distance": 0.25, "metadata": {"source": self.db_path, "metric": self.distance_type}}][:k]


def _run(monkeypatch: pytest.MonkeyPatch, payload: str) -> dict:
    stdout = io.StringIO()
    monkeypatch.setattr("sys.stdin", io.StringIO(payload))
    monkeypatch.setattr("sys.stdout", stdout)
    assert store_worker.main() == 0
    lines = stdout.getvalue().splitlines()
    assert len(lines) == 1
    return json.loads(lines[0])


@pytest.fixture(autouse=True)
def embedder_configs(monkeypatch: pytest.MonkeyPatch) -> list:
    seen: list = []

    def fake_build_embedder(config):
        seen.append(config)
        return object()

    monkeypatch.setattr(vector_store, "LanceVectorStore", CannedStore)
    monkeypatch.setattr(vector_store, "build_embedder", fake_build_embedder)
    return seen


def test_successful_query(monkeypatch: pytest.MonkeyPatch) -> None:
    response = _run(monkeypatch, json.dumps({"collection": "memory_summaries", "text": "deploy", "k": 15, "db_path": "/data/db"}))
    assert response == {"ok": True, "result": [{"document": "memory_summaries:deploy", "distance": 0.25, "metadata": {"source": "/data/db", "metric": "l2"}}]}


def test_request_and_environment_configure_the_embedder(monkeypatch: pytest.MonkeyPatch, embedder_configs: list) -> None:
    monkeypatch.setenv("GOOGLE_API_KEY", "explicit-key")
    request = {"collection": "memory_summaries", "text": "deploy", "k": 15, "db_path": "/data/db", "distance_type": "cosine", "embedding_model": "text-embedding-004"}
    response = _run(monkeypatch, json.dumps(request))

    assert response["ok"] is True
    assert response["result"][0]["metadata"]["metric"] == "cosine"
    (config,) = embedder_configs
    assert config.EMBEDDING_MODEL == "text-embedding-004"
    assert config.GOOGLE_API_KEY.get_secret_value() == "explicit-key"
    assert str(config.VECTOR_DB_PATH) == "/data/db"


def test_non_json_metadata_still_answers(monkeypatch: pytest.MonkeyPatch) -> None:
    response = _run(monkeypatch, json.dumps({"collection": "dated", "text": "deploy", "k": 15}))
    assert response["ok"] is True
    assert response["result"][0]["metadata"]["created_at"] == "2026-01-02 03:04:05"


def test_store_error_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    response = _run(monkeypatch, json.dumps({"collection": "broken", "text": "deploy", "k": 15}))
    assert response == {"ok": False, "error": "table corrupted"}


def test_invalid_distance_type_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    response = _run(monkeypatch, json.dumps({"collection": "memory_summaries", "text": "deploy", "k": 15, "distance_type": "hamming"}))
    assert response["ok"] is False
    assert "DISTANCE_TYPE" in response["error"]


@pytest.mark.parametrize("payload", ["", "not json", json.dumps({"text": "deploy", "k": 3}), json.dumps({"collection": "c", "text": "t", "k": "many"})])
def test_bad_request_reported(monkeypatch: pytest.MonkeyPatch, payload: str) -> None:
    response = _run(monkeypatch, payload)
    assert response["ok"] is False
    assert response["error"].startswith("bad request")
