"""HTTP surface tests: the real app with dependency overrides, no lifespan."""

import os
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from riskchat.app import app
from riskchat.core.chat import ChatService, SessionStore, get_chat_service
from riskchat.infra.db import (
    DashboardSummary,
    InvalidAuthor,
    NamedRef,
    RiskNotFound,
    RiskRepository,
    ScoreRecord,
    TopRisk,
    get_risk_repository,
)

REPLY = (
    "Seven risks are rated High.\n"
    "---SUGGESTIONS---\n"
    "[icon:warning] Which are the worst?\n"
    "[icon:dollar] What is the financial exposure?\n"
    "---END_SUGGESTIONS---"
)


@pytest.fixture
def repository() -> AsyncMock:
    return AsyncMock(spec=RiskRepository)


@pytest.fixture
def client(chat_service, repository):
    app.dependency_overrides[get_chat_service] = lambda: chat_service
    app.dependency_overrides[get_risk_repository] = lambda: repository
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_metrics_exposed(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "riskchat_chat_sessions_active" in response.text


class TestChatEndpoint:
    def test_camel_case_round_trip(self, client, llm):
        llm.replies = [REPLY, "Second answer."]

        first = client.post("/api/v1/chat", json={"message": "How bad is it?"})
        assert first.status_code == 200
        body = first.json()
        assert body["success"] is True
        assert body["replyText"] == "Seven risks are rated High."
        assert body["messageId"] > 0
        assert body["error"] is None
        assert body["suggestions"] == [
            {"text": "Which are the worst?", "icon": "warning", "category": "warning"},
            {
                "text": "What is the financial exposure?",
                "icon": "attach_money",
                "category": "dollar",
            },
        ]

        second = client.post(
            "/api/v1/chat",
            json={"message": "And now?", "sessionId": body["sessionId"], "userId": "u1"},
        )
        assert second.json()["sessionId"] == body["sessionId"]
        assert len(llm.calls[1]) == 4

    def test_failure_is_reported_in_body(self, client, llm):
        llm.error = RuntimeError("socket closed")

        response = client.post("/api/v1/chat", json={"message": "hello"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Failed to process your request. Please try again."
        assert body["sessionId"]
        assert body["replyText"] is None

    def test_scope_is_forwarded(self, client, llm, fake_repository):
        llm.replies = ["ok"]

        client.post("/api/v1/chat", json={"message": "hi", "siteId": 3, "serviceId": 8})

        assert ("get_watchlist", {"site_id": 3, "service_id": 8}) in fake_repository.calls

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"message": ""},
            {"message": "x" * 4001},
            {"message": "hi", "sessionId": "not-a-uuid"},
        ],
    )
    def test_invalid_requests(self, client, payload):
        assert client.post("/api/v1/chat", json=payload).status_code == 422

    def test_feedback_is_acknowledged(self, client):
        response = client.post(
            "/api/v1/chat/feedback",
            json={"messageId": 1, "rating": 5, "feedbackText": "Helpful"},
        )
        assert response.status_code == 200
        assert response.json() == {"acknowledged": True}

    def test_feedback_is_passed_to_service(self, client):
        service = MagicMock(spec=ChatService)
        app.dependency_overrides[get_chat_service] = lambda: service

        client.post(
            "/api/v1/chat/feedback",
            json={"messageId": 7, "rating": -1, "category": "accuracy"},
        )

        feedback = service.submit_feedback.call_args.args[0]
        assert feedback.message_id == 7
        assert feedback.rating == -1
        assert feedback.category == "accuracy"


class TestDashboardEndpoints:
    def test_summary(self, client, repository):
        repository.get_dashboard_summary.return_value = DashboardSummary(
            total_risks=4, high_risk_count=1
        )

        response = client.get("/api/v1/dashboard/summary", params={"site_id": 2})

        assert response.status_code == 200
        assert response.json()["totalRisks"] == 4
        repository.get_dashboard_summary.assert_awaited_once_with(2, None)

    def test_top_risks(self, client, repository):
        repository.get_top_risks.return_value = [
            TopRisk(risk_id=1, name="Flood", score=8.5, variance=1.5, trend_direction="up")
        ]

        response = client.get("/api/v1/dashboard/top-risks", params={"count": 5})

        assert response.json()[0]["trendDirection"] == "up"
        repository.get_top_risks.assert_awaited_once_with(5, None, None)

    def test_top_risks_count_bounds(self, client):
        assert client.get("/api/v1/dashboard/top-risks?count=0").status_code == 422
        assert client.get("/api/v1/dashboard/top-risks?count=101").status_code == 422

    def test_reference_lists(self, client, repository):
        repository.get_sites.return_value = [NamedRef(id=1, name="Leeds")]

        response = client.get("/api/v1/reference/sites")

        assert response.json() == [{"id": 1, "name": "Leeds"}]


class TestRiskScoreEndpoints:
    _PAYLOAD = {"ratingDate": "2025-03-10", "numericScore": 6.5, "enteredBy": 2}

    def test_created(self, client, repository):
        repository.add_risk_score.return_value = ScoreRecord(
            id=10,
            risk_id=3,
            rating_date=date(2025, 3, 10),
            rating_value="Amber",
            numeric_score=6.5,
            entered_by=2,
            entered_at=datetime(2025, 3, 10, tzinfo=timezone.utc),
        )

        response = client.post("/api/v1/risks/3/scores", json=self._PAYLOAD)

        assert response.status_code == 201
        assert response.json()["ratingValue"] == "Amber"
        risk_id, score = repository.add_risk_score.await_args.args
        assert risk_id == 3
        assert score.entered_by == 2

    def test_invalid_author(self, client, repository):
        repository.add_risk_score.side_effect = InvalidAuthor(2)

        response = client.post("/api/v1/risks/3/scores", json=self._PAYLOAD)

        assert response.status_code == 422
        assert response.json()["code"] == "INVALID_AUTHOR"

    def test_missing_author_fails_validation(self, client):
        payload = {k: v for k, v in self._PAYLOAD.items() if k != "enteredBy"}
        assert client.post("/api/v1/risks/3/scores", json=payload).status_code == 422

    def test_score_out_of_range(self, client):
        payload = {**self._PAYLOAD, "numericScore": 11}
        assert client.post("/api/v1/risks/3/scores", json=payload).status_code == 422

    def test_unknown_risk(self, client, repository):
        repository.get_risk_scores.side_effect = RiskNotFound(99)

        response = client.get("/api/v1/risks/99/scores")

        assert response.status_code == 404
        assert response.json()["code"] == "RISK_NOT_FOUND"

    def test_database_unavailable(self, client, repository):
        repository.list_risks.side_effect = OperationalError(
            "SELECT 1", {}, Exception("connection refused")
        )

        response = client.get("/api/v1/risks")

        assert response.status_code == 503
        assert response.json()["code"] == "DATA_STORE_UNAVAILABLE"


class TestLifespan:
    def test_startup_builds_shared_state(self, tmp_path):
        env = {
            "RISKCHAT_THIRD_PARTY__DATABASE_URI": (
                f"sqlite+aiosqlite:///{tmp_path / 'risks.db'}"
            ),
            "RISKCHAT_SESSION__MAX_SESSIONS": "5",
        }
        with patch.dict(os.environ, env, clear=False):
            with TestClient(app):
                store = app.state.session_store
                assert isinstance(store, SessionStore)
                assert store._max_sessions == 5
                assert app.state.session_factory is not None
