"""HTTP flows through the assembled application with the in-memory store."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from app.api.v1.dependency import set_live_queue_service
from app.domain.live.live_queue_domain import LiveQueueService
from app.main import app, build_granian_kwargs


@pytest.fixture
def client(service: LiveQueueService) -> Iterator[TestClient]:
    set_live_queue_service(service)
    with TestClient(app) as test_client:
        yield test_client
    set_live_queue_service(None)


def _ok(response) -> dict:
    assert response.status_code == 200, response.text
    data = response.json()
    assert data["success"] is True
    return data["results"]


class TestApplication:
    def test_health(self, client: TestClient):
        assert _ok(client.get("/health")) == "OK"

    def test_request_id_header(self, client: TestClient):
        generated = client.get("/health")
        echoed = client.get("/health", headers={"X-Request-ID": "req-123"})

        assert len(generated.headers["X-Request-ID"]) == 8
        assert echoed.headers["X-Request-ID"] == "req-123"

    def test_lifespan_exposes_service(self, client: TestClient, service: LiveQueueService):
        assert app.state.live_queue_service is service

    def test_validation_error_envelope(self, client: TestClient):
        response = client.post("/api/v1/live-queue/join", json={"sessionId": "ls_1"})

        assert response.status_code == 422
        data = response.json()
        assert data["success"] is False
        assert data["errcode"] == "E_INVALID_PARAMS"

    def test_granian_kwargs(self):
        kwargs = build_granian_kwargs()

        assert kwargs["interface"] == "asgi"
        assert isinstance(kwargs["port"], int)


class TestLiveQueueFlow:
    def test_go_live_join_advance_complete(self, client: TestClient):
        # Go live
        session = _ok(
            client.post(
                "/api/v1/live-queue/go-live",
                json={"reviewerId": "u.reviewer", "durationMinutes": 60},
            )
        )
        session_id = session["session_id"]

        # Two applicants join
        first = _ok(
            client.post(
                "/api/v1/live-queue/join", json={"sessionId": session_id, "applicantId": "u.a1"}
            )
        )
        _ok(
            client.post(
                "/api/v1/live-queue/join", json={"sessionId": session_id, "applicantId": "u.a2"}
            )
        )
        assert first["position"] == 1

        roasters = _ok(client.get("/api/v1/live-queue/active-roasters"))["roasters"]
        assert [r["session"]["current_queue_size"] for r in roasters] == [2]

        # Reviewer starts the next turn
        advanced = _ok(
            client.post(
                "/api/v1/live-queue/process-next",
                json={"sessionId": session_id, "reviewerId": "u.reviewer"},
            )
        )
        entry_id = advanced["entry"]["entry_id"]
        assert entry_id == first["entry"]["entry_id"]
        assert advanced["meeting_link"].startswith("https://meet.test/")

        position = _ok(
            client.get(
                "/api/v1/live-queue/position",
                params={"sessionId": session_id, "applicantId": "u.a2"},
            )
        )
        assert position["position"] == 2

        _ok(
            client.post(
                "/api/v1/live-queue/confirm-join", json={"entryId": entry_id, "applicantId": "u.a1"}
            )
        )
        completed = _ok(
            client.post(
                "/api/v1/live-queue/complete", json={"entryId": entry_id, "reviewerId": "u.reviewer"}
            )
        )
        assert completed["status"] == "completed"

        queue = _ok(client.get(f"/api/v1/live-queue/sessions/{session_id}/queue"))["entries"]
        assert [e["entry"]["applicant_id"] for e in queue] == ["u.a2"]
        assert queue[0]["position"] == 1

        ended = _ok(
            client.post(
                "/api/v1/live-queue/end-session",
                json={"sessionId": session_id, "reviewerId": "u.reviewer"},
            )
        )
        assert ended["flushed_count"] == 1
        assert ended["session"]["current_queue_size"] == 0

        current = _ok(
            client.get("/api/v1/live-queue/current-session", params={"reviewerId": "u.reviewer"})
        )
        assert current["session"] is None

    def test_join_unknown_session_is_404(self, client: TestClient):
        response = client.post(
            "/api/v1/live-queue/join", json={"sessionId": "ls_nope", "applicantId": "u.a1"}
        )

        assert response.status_code == 404
        assert response.json()["errcode"] == "E_SESSION_NOT_FOUND"
