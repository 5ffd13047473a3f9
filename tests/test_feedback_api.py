"""
API tests for the feedback router, using dependency overrides for the
store, the LLM and the clock.
"""

import json

import pytest
from fastapi.testclient import TestClient

from feedlens.config import settings
from feedlens.main import app
from feedlens.models.feedback import Sentiment
from feedlens.routers.feedback import get_aggregation_engine, get_feedback_store, get_llm_service
from feedlens.services.aggregation_service import AggregationEngine
from feedlens.services.llm_providers.base import ProviderNotConfiguredError, RateLimitError


def _reply(sentiment="positive", score=9, themes=("ui",)):
    return json.dumps({"sentiment": sentiment, "score": score, "themes": list(themes)})


@pytest.fixture
def client(store, fake_llm, now):
    app.dependency_overrides[get_feedback_store] = lambda: store
    app.dependency_overrides[get_llm_service] = lambda: fake_llm
    app.dependency_overrides[get_aggregation_engine] = lambda: AggregationEngine(store, now=lambda: now)
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# POST /api/ingest
# ---------------------------------------------------------------------------

class TestIngest:

    def test_ingest_batch(self, client, store, fake_llm):
        fake_llm.generate.return_value = _reply()
        response = client.post("/api/ingest", json={"feedback": [
            {"source": "app_store", "content": "Love this app!", "timestamp": "2026-03-14T09:00:00Z"},
            {"source": "email", "content": "Great support", "timestamp": "2026-03-14T10:00:00Z"},
        ]})

        assert response.status_code == 200
        assert response.json() == {"success": True, "processed": 2}
        assert store.count() == 2

    def test_failed_classification_stores_fallback(self, client, store, fake_llm):
        fake_llm.generate.return_value = "I'm not sure."
        response = client.post("/api/ingest", json={"feedback": [
            {"source": "app_store", "content": "Love this app!", "timestamp": "2026-01-29T09:00:00Z"},
        ]})

        assert response.status_code == 200
        [item] = store.recent(1)
        assert (item.sentiment, item.score, item.themes) == (Sentiment.NEUTRAL, 5, [])

    def test_unconfigured_llm_still_ingests_with_fallback(self, client, store, fake_llm):
        fake_llm.generate.side_effect = ProviderNotConfiguredError("no key", provider="workers_ai")
        response = client.post("/api/ingest", json={"feedback": [
            {"source": "web", "content": "hi", "timestamp": "2026-03-01"},
        ]})
        assert response.status_code == 200
        assert store.recent(1)[0].sentiment is Sentiment.NEUTRAL

    def test_partial_batch_stores_valid_items(self, client, store, fake_llm):
        fake_llm.generate.return_value = _reply()
        response = client.post("/api/ingest", json={"feedback": [
            {"source": "web", "content": "ok", "timestamp": "2026-03-01"},
            {"source": "web", "content": "", "timestamp": "2026-03-01"},
            {"source": "web", "content": "also ok", "timestamp": "2026-03-02"},
        ]})

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "FL-ING-001"
        assert isinstance(body["error"], str)
        assert body["processed"] == 2
        assert [r["index"] for r in body["rejected"]] == [1]
        assert store.count() == 2

    @pytest.mark.parametrize("payload", [[], {"items": []}, {"feedback": "nope"}, "text"])
    def test_malformed_body(self, client, payload):
        response = client.post("/api/ingest", json=payload)
        assert response.status_code == 400
        assert response.json()["code"] == "FL-ING-003"

    def test_invalid_json(self, client):
        response = client.post(
            "/api/ingest", content=b"{not json", headers={"content-type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "FL-ING-003"

    def test_batch_too_large(self, client, monkeypatch, fake_llm):
        monkeypatch.setattr(settings, "ingest_max_batch_size", 2)
        item = {"source": "web", "content": "x", "timestamp": "2026-03-01"}
        response = client.post("/api/ingest", json={"feedback": [item] * 3})

        assert response.status_code == 413
        assert response.json()["code"] == "FL-ING-002"
        fake_llm.generate.assert_not_awaited()

    def test_empty_batch(self, client):
        response = client.post("/api/ingest", json={"feedback": []})
        assert response.json() == {"success": True, "processed": 0}


# ---------------------------------------------------------------------------
# Read endpoints
# ---------------------------------------------------------------------------

class TestReads:

    def test_dashboard_empty(self, client):
        response = client.get("/api/dashboard")

        assert response.status_code == 200
        body = response.json()
        assert body["totalFeedback"] == 0
        assert body["averageScore"] == 0
        assert body["sentimentCounts"] == {"positive": 0, "neutral": 0, "negative": 0}
        assert body["topThemes"] == []
        assert body["recentFeedback"] == []

    def test_dashboard_after_ingest(self, client, fake_llm):
        fake_llm.generate.return_value = _reply("negative", 2, ["pricing"])
        client.post("/api/ingest", json={"feedback": [
            {"source": "web", "content": "Too expensive", "timestamp": "2026-03-14T09:00:00Z"},
        ]})

        body = client.get("/api/dashboard").json()

        assert body["totalFeedback"] == 1
        assert body["sentimentCounts"]["negative"] == 1
        assert body["topThemes"] == [{"theme": "pricing", "count": 1}]
        assert body["themeHealth"][0]["status"] == "needs_attention"
        assert body["sentimentTrend"][0]["avgScore"] == 2.0
        assert body["sourceBreakdown"] == [{"source": "web", "count": 1}]
        assert body["recentFeedback"][0]["content"] == "Too expensive"

    def test_feedback_list_limit(self, client, add_items, make_item):
        add_items(*[make_item(timestamp=f"2026-03-0{d}T00:00:00Z", content=str(d)) for d in range(1, 6)])

        response = client.get("/api/feedback", params={"limit": 2})

        assert response.status_code == 200
        assert [f["content"] for f in response.json()["feedback"]] == ["5", "4"]

    def test_feedback_list_default_limit(self, client, add_items, make_item, monkeypatch):
        monkeypatch.setattr(settings, "default_feedback_limit", 3)
        add_items(*[make_item() for _ in range(5)])
        assert len(client.get("/api/feedback").json()["feedback"]) == 3

    @pytest.mark.parametrize("limit", [0, -1, 10_000])
    def test_feedback_list_limit_out_of_range(self, client, limit):
        response = client.get("/api/feedback", params={"limit": limit})
        assert response.status_code == 422
        assert response.json()["code"] == "FL-API-001"

    def test_trends(self, client, add_items, make_item):
        add_items(
            make_item(timestamp="2026-03-10T09:00:00Z", sentiment=Sentiment.POSITIVE, score=9),
            make_item(timestamp="2026-03-12T09:00:00Z", sentiment=Sentiment.NEGATIVE, score=1),
        )
        response = client.get("/api/trends", params={"days": 30})

        assert response.status_code == 200
        assert response.json() == {"trends": [
            {"date": "2026-03-10", "total": 1, "positive": 1, "negative": 0, "avgScore": 9.0},
            {"date": "2026-03-12", "total": 1, "positive": 0, "negative": 1, "avgScore": 1.0},
        ]}

    def test_trends_rejects_zero_days(self, client):
        assert client.get("/api/trends", params={"days": 0}).status_code == 422

    def test_trends_very_large_window(self, client, add_items, make_item):
        add_items(make_item(timestamp="1999-12-31T00:00:00Z"))

        response = client.get("/api/trends", params={"days": 1_000_000})

        assert response.status_code == 200
        assert [p["date"] for p in response.json()["trends"]] == ["1999-12-31"]


# ---------------------------------------------------------------------------
# Insight endpoints
# ---------------------------------------------------------------------------

class TestInsights:

    def test_ask(self, client, fake_llm, add_items, make_item):
        add_items(make_item(content="Checkout is slow"))
        fake_llm.generate.return_value = "Checkout speed is the main complaint."

        response = client.post("/api/ask", json={"question": "What is the top complaint?"})

        assert response.status_code == 200
        assert response.json() == {"answer": "Checkout speed is the main complaint."}

    @pytest.mark.parametrize("body", [{}, {"question": ""}, {"question": "   "}])
    def test_ask_requires_question(self, client, body):
        response = client.post("/api/ask", json=body)
        assert response.status_code == 422
        assert response.json()["code"] == "FL-API-001"

    def test_ask_provider_not_configured(self, client, fake_llm):
        fake_llm.generate.side_effect = ProviderNotConfiguredError("no key", provider="workers_ai")

        response = client.post("/api/ask", json={"question": "Hi?"})

        assert response.status_code == 503
        assert response.json()["code"] == "FL-LLM-002"

    def test_ask_rate_limited(self, client, fake_llm):
        fake_llm.generate.side_effect = RateLimitError("429", provider="openai")

        response = client.post("/api/ask", json={"question": "Hi?"})

        assert response.status_code == 429
        body = response.json()
        assert body["code"] == "FL-LLM-003"
        assert body["retryable"] is True

    def test_summary_empty_store(self, client, fake_llm):
        response = client.get("/api/summary")

        assert response.status_code == 200
        assert response.json() == {"summary": "No feedback received in the last 7 days."}
        fake_llm.generate.assert_not_awaited()

    def test_summary_days_must_be_positive(self, client):
        assert client.get("/api/summary", params={"days": 0}).status_code == 422

    def test_summary_very_large_window(self, client, fake_llm, add_items, make_item):
        add_items(make_item(timestamp="1999-12-31T00:00:00Z"))
        fake_llm.generate.return_value = "Quiet decades."

        response = client.get("/api/summary", params={"days": 1_000_000})

        assert response.status_code == 200
        assert response.json() == {"summary": "Quiet decades."}
