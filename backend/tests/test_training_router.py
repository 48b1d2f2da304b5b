"""
Tests for the training API endpoints.

The client is entered once per module so the app lifespan creates the
database tables and the training service on the client's event loop.
"""

import pytest
from fastapi.testclient import TestClient

from ba_training.main import app

STAGE = "problem_exploration"

FULL_MEETING = [
    ("user", "Hello, I'm the business analyst on this project."),
    ("stakeholder", "Nice to meet you."),
    ("user", "What is the biggest problem you deal with each week?"),
    ("stakeholder", "The biggest problem is that approvals get stuck waiting for sign-off."),
    ("user", "Why do approvals get stuck?"),
    ("stakeholder", "Finance reviews every request by hand and the handoff to procurement takes days."),
    ("user", "How does the handoff to procurement work?"),
    ("stakeholder", "Procurement has a small budget for tooling, so everything is done in spreadsheets."),
    ("user", "What budget limits does procurement work within?"),
    ("stakeholder", "Suppliers complain, and some customers wait two weeks for their orders."),
    ("user", "How are customers affected when orders wait two weeks?"),
    ("stakeholder", "They get frustrated and some of them cancel their orders entirely."),
]


@pytest.fixture(scope="module")
def client():
    with TestClient(app) as test_client:
        yield test_client


def _create(client, mode="assess"):
    response = client.post("/api/training/sessions", json={"stageId": STAGE, "mode": mode})
    assert response.status_code == 201
    return response.json()


def _run_meeting(client, turns=FULL_MEETING, mode="assess"):
    session = _create(client, mode)
    assert client.post(f"/api/training/sessions/{session['id']}/start").status_code == 200
    for speaker, text in turns:
        response = client.post(
            f"/api/training/sessions/{session['id']}/messages",
            json={"speaker": speaker, "text": text},
        )
        assert response.status_code == 201
    return session


# =============================================================================
# Stages
# =============================================================================

class TestStages:
    """Tests for the stage catalog endpoints."""

    @pytest.mark.integration
    def test_list_stages(self, client):
        response = client.get("/api/training/stages")
        assert response.status_code == 200

        stages = {s["stageId"]: s for s in response.json()}
        assert STAGE in stages
        assert stages[STAGE]["areaIds"] == [
            "pain_points",
            "blockers",
            "handoffs",
            "constraints",
            "customer_impact",
        ]

    @pytest.mark.integration
    def test_stage_detail(self, client):
        response = client.get(f"/api/training/stages/{STAGE}")
        assert response.status_code == 200

        data = response.json()
        assert data["passThreshold"] == pytest.approx(0.65)
        assert len(data["areas"]) == 5
        assert data["areas"][0]["sampleQuestions"]

    @pytest.mark.integration
    def test_unknown_stage(self, client):
        assert client.get("/api/training/stages/nope").status_code == 404


# =============================================================================
# Sessions
# =============================================================================

class TestSessionFlow:
    """Tests for the session lifecycle over HTTP."""

    @pytest.mark.integration
    def test_create_session(self, client):
        session = _create(client, mode="practice")

        assert session["stageId"] == STAGE
        assert session["mode"] == "practice"
        assert session["status"] == "pre_brief"
        assert session["attempt"] == 1
        assert session["hasReport"] is False

    @pytest.mark.integration
    def test_create_with_unknown_stage(self, client):
        response = client.post("/api/training/sessions", json={"stageId": "nope"})
        assert response.status_code == 404

    @pytest.mark.integration
    def test_full_flow(self, client):
        session = _run_meeting(client)
        session_id = session["id"]

        hint = client.post(
            f"/api/training/sessions/{session_id}/hints",
            json={"eventType": "shown", "areaId": "blockers"},
        )
        assert hint.status_code == 201
        assert hint.json()["sessionId"] == session_id

        ended = client.post(f"/api/training/sessions/{session_id}/end")
        assert ended.status_code == 200
        report = ended.json()
        assert report["sessionId"] == session_id
        assert report["source"] == "local"
        assert report["passed"] is True
        assert report["missedAreas"] == []
        assert set(report["coverageScores"]) == set(report["independence"])

        feedback = client.get(f"/api/training/sessions/{session_id}/feedback")
        assert feedback.json() == report

        current = client.get(f"/api/training/sessions/{session_id}").json()
        assert current["status"] == "post_brief"
        assert current["hasReport"] is True
        assert current["hintCount"] == 1
        assert len(current["turns"]) == len(FULL_MEETING)

        completed = client.post(f"/api/training/sessions/{session_id}/complete")
        assert completed.json()["status"] == "completed"

    @pytest.mark.integration
    def test_end_twice_conflicts(self, client):
        session = _run_meeting(client, FULL_MEETING[:5])
        assert client.post(f"/api/training/sessions/{session['id']}/end").status_code == 200
        assert client.post(f"/api/training/sessions/{session['id']}/end").status_code == 409

    @pytest.mark.integration
    def test_message_before_start_conflicts(self, client):
        session = _create(client)
        response = client.post(
            f"/api/training/sessions/{session['id']}/messages",
            json={"text": "Too early"},
        )
        assert response.status_code == 409

    @pytest.mark.integration
    def test_feedback_before_end_conflicts(self, client):
        session = _create(client)
        assert client.get(f"/api/training/sessions/{session['id']}/feedback").status_code == 409

    @pytest.mark.integration
    def test_unknown_session(self, client):
        assert client.get("/api/training/sessions/missing").status_code == 404
        assert client.post("/api/training/sessions/missing/end").status_code == 404

    @pytest.mark.integration
    def test_retake(self, client):
        session = _run_meeting(client, FULL_MEETING[:5])
        client.post(f"/api/training/sessions/{session['id']}/end")

        response = client.post(f"/api/training/sessions/{session['id']}/retake")
        assert response.status_code == 201
        retake = response.json()
        assert retake["attempt"] == 2
        assert retake["retakeOf"] == session["id"]
        assert retake["status"] == "pre_brief"

    @pytest.mark.integration
    def test_history(self, client):
        session = _run_meeting(client, FULL_MEETING[:5])
        report = client.post(f"/api/training/sessions/{session['id']}/end").json()

        history = client.get(f"/api/training/sessions/{session['id']}/history")
        assert history.status_code == 200
        assert history.json() == [report]


# =============================================================================
# Stateless analysis
# =============================================================================

class TestAnalyze:
    """Tests for analyzing a transcript without a session."""

    @pytest.mark.integration
    def test_analyze(self, client):
        payload = {
            "sessionId": "external-1",
            "stageId": STAGE,
            "mode": "assess",
            "turns": [
                {"index": i, "speaker": "user", "text": text}
                for i, text in enumerate([
                    "Hi, thanks for your time",
                    "What are the biggest pain points in your process?",
                    "How does that affect your customers?",
                ])
            ],
            "hints": [],
        }
        response = client.post("/api/training/analyze", json=payload)
        assert response.status_code == 200

        report = response.json()
        assert report["sessionId"] == "external-1"
        assert report["coveredAreas"] == ["pain_points", "customer_impact"]
        assert report["passed"] is False
        assert "openRatio" in report["technique"]

    @pytest.mark.integration
    def test_analyze_unknown_stage(self, client):
        response = client.post("/api/training/analyze", json={"stageId": "nope", "turns": []})
        assert response.status_code == 404

    @pytest.mark.integration
    def test_analyze_rejects_bad_payload(self, client):
        response = client.post("/api/training/analyze", json={"turns": []})
        assert response.status_code == 422


class TestHealth:
    """Tests for the service health endpoint."""

    @pytest.mark.integration
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
