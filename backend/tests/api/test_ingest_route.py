from fastapi.testclient import TestClient

from backend.app.api.main import app
from backend.app.services import pipeline
from backend.app.services.provider_client import ProviderAuthError


client = TestClient(app)


def test_invalid_stage_returns_400():
    response = client.get("/ingest", params={"stage": "everything"})
    assert response.status_code == 400
    body = response.json()
    assert body["ok"] is False
    assert "catalog" in body["error"]


def test_default_stage_is_catalog(monkeypatch):
    seen = []

    async def fake_run_stage(stage, stats, **kwargs):
        seen.append(stage)
        stats.makes_processed = 3
        stats.trims_processed = 12
        return stats

    monkeypatch.setattr(pipeline, "run_stage", fake_run_stage)
    response = client.get("/ingest")
    assert response.status_code == 200
    body = response.json()
    assert seen == ["catalog"]
    assert body["ok"] is True
    assert body["stage"] == "catalog"
    assert body["stats"]["makes_processed"] == 3
    assert body["stats"]["trims_processed"] == 12
    assert body["timestamp"]


def test_failure_returns_500_with_partial_stats(monkeypatch):
    async def fake_run_stage(stage, stats, **kwargs):
        stats.listings_fetched = 7
        stats.record_error("Listing search failed for query 'x': timeout")
        raise ProviderAuthError("eBay returned HTTP 401", provider="ebay")

    monkeypatch.setattr(pipeline, "run_stage", fake_run_stage)
    response = client.get("/ingest", params={"stage": "listings"})
    assert response.status_code == 500
    body = response.json()
    assert body["ok"] is False
    assert body["stage"] == "listings"
    assert body["error"] == "eBay returned HTTP 401"
    assert body["stats"]["listings_fetched"] == 7
    assert len(body["stats"]["errors"]) == 1
