"""Tests for the HTTP routes, with application state wired by hand."""

import pytest
from fastapi.testclient import TestClient

from feedenrich.api import middleware
from feedenrich.api.app import create_app
from feedenrich.diffing.diff_engine import DiffEngine
from feedenrich.models.domain import StoredRun
from feedenrich.validation.hard_rules import HardRuleValidator

ORACLE_RESPONSE = {
    "score": 0.5,
    "proposals": [
        {
            "field": "title",
            "after": "Nike Basket Homme Toile Semelle Caoutchouc",
            "source": ["feed:brand"],
            "confidence": 0.92,
        }
    ],
}


class MemoryRunStore:
    def __init__(self):
        self.runs = {}

    async def save_run(self, result):
        self.runs[result.run_id] = StoredRun(
            run_id=result.run_id,
            record_id=result.record_id,
            scope=result.scope,
            status=result.status,
            started_at=result.started_at,
            duration_ms=result.summary.duration_ms,
            accepted=len(result.accepted),
            rejected=len(result.rejected),
            human_review=len(result.human_review),
            result=result.to_dict(),
        )

    async def get_run(self, run_id):
        return self.runs.get(run_id)

    async def get_recent_runs(self, limit=100):
        runs = sorted(self.runs.values(), key=lambda r: r.started_at, reverse=True)
        return runs[:limit]

    async def get_runs_for_record(self, record_id):
        return [r for r in self.runs.values() if r.record_id == record_id]


@pytest.fixture
def client(settings, fake_oracle, make_pipeline):
    # No context manager: the lifespan would build real oracle clients
    app = create_app(settings)
    store = MemoryRunStore()
    app.state.run_store = store
    app.state.validator = HardRuleValidator()
    app.state.diff_engine = DiffEngine()
    app.state.pipeline = make_pipeline(fake_oracle(ORACLE_RESPONSE), run_store=store)
    return TestClient(app)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["web_search_enabled"] is False


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
    assert "X-Duration-MS" in response.headers


class RecordingLogger:
    def __init__(self):
        self.calls = []

    def debug(self, event, **kw):
        self.calls.append(("debug", event, kw))

    def info(self, event, **kw):
        self.calls.append(("info", event, kw))

    def error(self, event, **kw):
        self.calls.append(("error", event, kw))


def test_health_checks_are_logged_at_debug(client, monkeypatch):
    recorder = RecordingLogger()
    monkeypatch.setattr(middleware, "logger", recorder)

    client.get("/health")
    client.post("/diff", json={"field": "title", "before": "a", "after": "b"})

    assert [(level, event) for level, event, _ in recorder.calls] == [
        ("debug", "request_completed"),
        ("info", "request_completed"),
    ]
    assert recorder.calls[1][2]["status"] == 200


def test_validate(client, complete_fields):
    response = client.post("/validate", json={"fields": complete_fields})
    body = response.json()
    assert body["valid"] is False
    assert [v["rule_id"] for v in body["violations"]] == ["gmc_title_min"]


def test_diff(client):
    response = client.post(
        "/diff",
        json={"field": "title", "before": "chaussure de sport", "after": "chaussure de sport premium"},
    )
    body = response.json()
    assert body["change_type"] == "modified"
    assert body["added_words"] == ["premium"]
    assert body["similarity"] == 0.75


def test_enrich_and_fetch_run(client, complete_fields):
    response = client.post("/enrich", json={"record_id": "SKU-1", "fields": complete_fields})
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert body["record"]["raw"]["title"] == "basket nike"
    assert body["record"]["current"]["title"] == "Nike Basket Homme Toile Semelle Caoutchouc"

    stored = client.get(f"/runs/{body['run_id']}")
    assert stored.status_code == 200
    assert stored.json()["run_id"] == body["run_id"]


def test_enrich_rejects_unknown_scope(client, complete_fields):
    response = client.post(
        "/enrich", json={"record_id": "SKU-1", "fields": complete_fields, "scope": "everything"}
    )
    assert response.status_code == 422


def test_unknown_run_is_404(client):
    assert client.get("/runs/does-not-exist").status_code == 404


def test_enrich_stream(client, complete_fields):
    response = client.post("/enrich/stream", json={"record_id": "SKU-1", "fields": complete_fields})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = [line[len("event: "):] for line in response.text.splitlines() if line.startswith("event: ")]
    assert events[0] == "stage_started"
    assert "proposal_accepted" in events
    assert events[-1] == "completed"


def test_run_listings(client, complete_fields):
    run_id = client.post("/enrich", json={"record_id": "SKU-1", "fields": complete_fields}).json()["run_id"]

    recent = client.get("/runs", params={"limit": 10}).json()
    assert [r["run_id"] for r in recent] == [run_id]
    assert recent[0]["status"] == "completed"
    assert "result" not in recent[0]

    assert [r["run_id"] for r in client.get("/records/SKU-1/runs").json()] == [run_id]
    assert client.get("/records/SKU-2/runs").json() == []
    assert client.get("/runs", params={"limit": 0}).status_code == 422
