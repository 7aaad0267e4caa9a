import pytest
from fastapi.testclient import TestClient

from api.submissions import get_dispatcher
from main import app
from services.llm_client import LLMClient
from services.orchestrator import TextAnalysisOrchestrator, default_analyzers
from services.result_cache import ResultCache
from workers.analysis_worker import AnalysisDispatcher


class WaitableDispatcher(AnalysisDispatcher):
    """Keeps the futures so tests can wait for background analysis."""

    def __init__(self):
        super().__init__(
            max_workers=1,
            queue_limit=10,
            orchestrator_factory=lambda: TextAnalysisOrchestrator(
                analyzers=default_analyzers(LLMClient(api_key="")),
                cache=ResultCache(ttl_seconds=3600),
            ),
        )
        self.futures = []

    def dispatch(self, submission_id):
        future = super().dispatch(submission_id)
        if future is not None:
            self.futures.append(future)
        return future

    def wait(self):
        for future in self.futures:
            future.result(timeout=30)


@pytest.fixture
def dispatcher():
    d = WaitableDispatcher()
    app.dependency_overrides[get_dispatcher] = lambda: d
    yield d
    app.dependency_overrides.pop(get_dispatcher, None)
    d.shutdown(wait=True)


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_requests_need_a_token(client):
    assert client.get("/api/submissions/").status_code == 401
    r = client.get("/api/submissions/", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401


def test_full_editorial_flow(client, dispatcher, users, auth_headers, story):
    student = auth_headers(users["student"])
    reviewer = auth_headers(users["reviewer"])
    admin = auth_headers(users["admin"])
    editor = auth_headers(users["editor"])

    r = client.post("/api/submissions/", json={"title": "The Lighthouse", "content": story}, headers=student)
    assert r.status_code == 201, r.text
    submission_id = r.json()["id"]
    assert r.json()["current_stage"] == "ANALYSIS"

    dispatcher.wait()

    r = client.get(f"/api/submissions/{submission_id}/analysis", headers=student)
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "completed"
    assert body["degraded"] is True
    assert 0 <= body["analysis"]["metrics"]["overallScore"] <= 100

    r = client.get("/api/reviews/pending", headers=reviewer)
    assert [s["id"] for s in r.json()] == [submission_id]

    r = client.post(
        f"/api/reviews/{submission_id}",
        json={"plagiarism_score": 3, "plagiarism_notes": "No significant matches.", "passed": True},
        headers=reviewer,
    )
    assert r.status_code == 200, r.text
    assert r.json()["current_stage"] == "EDITOR_MEETING"

    r = client.put(f"/api/submissions/{submission_id}/stage", json={"stage": "APPROVAL_PROCESS"}, headers=editor)
    assert r.status_code == 403

    r = client.put(f"/api/submissions/{submission_id}/editor", json={"editor_id": users["editor"].id}, headers=admin)
    assert r.status_code == 200
    assert r.json()["editor_id"] == users["editor"].id

    r = client.put(
        f"/api/submissions/{submission_id}/stage",
        json={"stage": "APPROVAL_PROCESS", "notes": "Met with the student"},
        headers=editor,
    )
    assert r.status_code == 200
    assert r.json()["current_stage"] == "APPROVAL_PROCESS"

    r = client.get(f"/api/submissions/{submission_id}", headers=student)
    assert r.status_code == 200
    stages = r.json()["stages"]
    assert [s["stage_number"] for s in stages] == [1, 2, 3, 4]
    assert [s["stage_name"] for s in stages] == [
        "ANALYSIS", "PLAGIARISM_REVIEW", "EDITOR_MEETING", "APPROVAL_PROCESS",
    ]

    r = client.get("/api/submissions/_meta/analysis-stats", headers=admin)
    assert r.status_code == 200


def test_validation_errors(client, dispatcher, users, auth_headers):
    student = auth_headers(users["student"])
    r = client.post("/api/submissions/", json={"title": "", "content": "x" * 60}, headers=student)
    assert r.status_code == 422
    r = client.post("/api/submissions/", json={"title": "Short", "content": "too short"}, headers=student)
    assert r.status_code == 422


def test_role_and_state_errors(client, dispatcher, users, auth_headers, story):
    student = auth_headers(users["student"])
    reviewer = auth_headers(users["reviewer"])

    r = client.post("/api/submissions/", json={"title": "T", "content": story}, headers=reviewer)
    assert r.status_code == 403

    r = client.post("/api/submissions/", json={"title": "T", "content": story}, headers=student)
    submission_id = r.json()["id"]
    dispatcher.wait()

    review = {"plagiarism_score": 3, "plagiarism_notes": "No significant matches.", "passed": True}
    assert client.post(f"/api/reviews/{submission_id}", json=review, headers=student).status_code == 403
    assert client.post("/api/reviews/unknown-id", json=review, headers=reviewer).status_code == 404

    client.post(f"/api/reviews/{submission_id}", json=review, headers=reviewer)
    r = client.post(f"/api/reviews/{submission_id}", json=review, headers=reviewer)
    assert r.status_code == 400

    bad_score = dict(review, plagiarism_score=101)
    assert client.post(f"/api/reviews/{submission_id}", json=bad_score, headers=reviewer).status_code == 422
    short_notes = dict(review, plagiarism_notes="short")
    assert client.post(f"/api/reviews/{submission_id}", json=short_notes, headers=reviewer).status_code == 422


def test_archive(client, dispatcher, users, auth_headers, story):
    student = auth_headers(users["student"])
    r = client.post("/api/submissions/", json={"title": "T", "content": story}, headers=student)
    submission_id = r.json()["id"]
    dispatcher.wait()

    other = auth_headers(users["other_student"])
    assert client.delete(f"/api/submissions/{submission_id}", headers=other).status_code == 403
    assert client.delete(f"/api/submissions/{submission_id}", headers=student).status_code == 200
    assert client.get("/api/submissions/", headers=student).json() == []


def test_rerun_analysis_is_staff_only(client, dispatcher, users, auth_headers, story):
    student = auth_headers(users["student"])
    r = client.post("/api/submissions/", json={"title": "T", "content": story}, headers=student)
    submission_id = r.json()["id"]
    dispatcher.wait()

    assert client.post(f"/api/submissions/{submission_id}/analysis", headers=student).status_code == 403

    r = client.post(f"/api/submissions/{submission_id}/analysis", headers=auth_headers(users["operations"]))
    assert r.status_code == 200, r.text
    assert r.json()["analysisComplete"] is True
    assert r.json()["analysis"]["basicMetrics"]["wordCount"] > 0

    detail = client.get(f"/api/submissions/{submission_id}", headers=student).json()
    assert len(detail["stages"]) == 2
