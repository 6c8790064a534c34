from datetime import datetime

import httplib2
import pytest
from fastapi.testclient import TestClient
from googleapiclient.errors import HttpError
from prometheus_client import REGISTRY

from api import state
from api.dependencies import get_backend, get_chat_store, get_push_notifier
from api.main import app
from integration.calendar_integration import CalendarEventResult
from integration.push_notifications import PushNotifier
from llm.schemas import ChatCriteria, ChatIntent, ExamEvent, ExamExtraction
from storage.chat_transcript_store import ChatTranscriptStore
from student_sync.models import CombinedItem, DetectedEvent

AUTH = {"Authorization": "Bearer test-token"}

EXAM = {
    "event_title": "Chemistry Final",
    "date": "2025-12-15",
    "start_time": "09:00",
    "end_time": "11:00",
    "event_type": "exam",
    "confidence_score": 0.92,
}


class FakeBackend:
    def __init__(self):
        self.confirmed = []
        self.exam_result = ExamExtraction(success=True, event=ExamEvent(**EXAM))
        self.calendar_result = CalendarEventResult(success=True, event_id="evt1", calendar_link="https://cal/evt1")
        self.intent = ChatIntent(intent="search", criteria=ChatCriteria(keywords=["titration"]))
        self.items = []
        self.items_by_token = {}
        self.dashboard_error = None

    def detect_exam(self, text):
        return self.exam_result

    def confirm_exam(self, access_token, event, timezone=None):
        self.confirmed.append((access_token, event, timezone))
        return self.calendar_result

    def parse_announcement(self, text, reference_date=None):
        return [DetectedEvent(title="Unit Test 5", type="TEST", date=datetime(2025, 11, 7, 20, 0))]

    def classify_intent(self, message):
        return self.intent

    async def dashboard_items(self, access_token):
        if self.dashboard_error is not None:
            raise self.dashboard_error
        return self.items_by_token.get(access_token, self.items)


class Recorder:
    def __init__(self):
        self.sent = []

    def __call__(self, **kwargs):
        self.sent.append(kwargs)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def client(backend, tmp_path, monkeypatch):
    store = ChatTranscriptStore(str(tmp_path / "chat.json"))
    notifier = PushNotifier(private_key="key", send=Recorder())
    monkeypatch.setattr(state, "latest_items", {})
    app.dependency_overrides[get_backend] = lambda: backend
    app.dependency_overrides[get_chat_store] = lambda: store
    app.dependency_overrides[get_push_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


def test_metrics_endpoint(client):
    client.post("/parse-announcement", json={"text": "Unit test 5 on Friday"})
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "student_sync_requests_total" in r.text


def test_parse_requires_bearer_token(client):
    r = client.post("/exam-detection/parse", json={"input": "Final exam on Dec 15"})
    assert r.status_code == 401
    assert r.json()["success"] is False
    assert r.json()["reason"] == "UNAUTHORIZED"


def test_parse_rejects_non_string_input(client):
    r = client.post("/exam-detection/parse", json={"input": 42}, headers=AUTH)
    assert r.status_code == 400
    assert r.json()["reason"] == "INVALID_INPUT"


def test_parse_returns_detected_event(client):
    r = client.post(
        "/exam-detection/parse",
        json={"input": "Chem final Dec 15 at 9", "user_timezone": "Asia/Kolkata"},
        headers=AUTH,
    )
    body = r.json()
    assert r.status_code == 200
    assert body["success"] is True
    assert body["event"]["event_title"] == "Chemistry Final"
    assert body["user_timezone"] == "Asia/Kolkata"


def test_parse_with_nothing_detected_is_not_an_error(client, backend):
    backend.exam_result = ExamExtraction(success=False, reason="NO_EVENT_DETECTED")
    r = client.post("/exam-detection/parse", json={"input": "hello there"}, headers=AUTH)
    assert r.status_code == 200
    assert r.json() == {
        "success": False,
        "reason": "NO_EVENT_DETECTED",
        "message": "Could not detect an exam/test event in the provided input",
    }


def test_parse_without_ai_configuration(client, backend):
    backend.exam_result = ExamExtraction(success=False, reason="AI_NOT_CONFIGURED")
    r = client.post("/exam-detection/parse", json={"input": "exam"}, headers=AUTH)
    assert r.status_code == 500
    assert r.json()["reason"] == "SERVER_ERROR"


def test_confirm_missing_start_time_never_reaches_calendar(client, backend):
    event = {k: v for k, v in EXAM.items() if k != "start_time"}
    r = client.post("/exam-detection/confirm", json={"event": event}, headers=AUTH)

    assert r.status_code == 400
    assert r.json()["missing"] == ["start_time"]
    assert backend.confirmed == []


def test_confirm_invalid_date_format(client, backend):
    r = client.post("/exam-detection/confirm", json={"event": {**EXAM, "date": "15/12/2025"}}, headers=AUTH)
    assert r.status_code == 400
    assert backend.confirmed == []


def test_confirm_creates_calendar_event(client, backend):
    event = {k: v for k, v in EXAM.items() if k != "confidence_score"}
    r = client.post(
        "/exam-detection/confirm",
        json={"event": event, "user_timezone": "Europe/Berlin"},
        headers=AUTH,
    )

    assert r.status_code == 201
    assert r.json()["event_id"] == "evt1"
    token, confirmed, tz = backend.confirmed[0]
    assert token == "test-token"
    assert confirmed.confidence_score == 1.0
    assert tz == "Europe/Berlin"


def test_confirm_calendar_failure(client, backend):
    backend.calendar_result = CalendarEventResult(success=False, error="quota exceeded")
    r = client.post("/exam-detection/confirm", json={"event": EXAM}, headers=AUTH)
    assert r.status_code == 500
    assert r.json()["error"] == "quota exceeded"


def test_parse_announcement(client):
    r = client.post("/parse-announcement", json={"text": "Unit test 5 on Friday at 8pm"})
    body = r.json()
    assert body["success"] is True
    assert body["events"][0]["type"] == "TEST"
    assert body["events"][0]["date"] == "2025-11-07T20:00:00"


def test_parse_announcement_requires_text(client):
    assert client.post("/parse-announcement", json={}).status_code == 400


def test_malformed_body_is_a_400(client):
    r = client.post("/chat-intent", content=b"not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.json()["success"] is False


def test_chat_intent(client):
    r = client.post("/chat-intent", json={"message": "titration notes"})
    body = r.json()
    assert body["intent"] == "search"
    assert body["criteria"]["keywords"] == ["titration"]


def test_dashboard_then_chat_search(client, backend):
    now = datetime(2025, 11, 1)
    backend.items = [
        CombinedItem.build(now=now, id="m1", title="Titration lab notes", type="MATERIAL", course_id="c1", course_name="Chemistry"),
        CombinedItem.build(now=now, id="m2", title="Optics slides", type="MATERIAL", course_id="c2", course_name="Physics"),
    ]

    r = client.get("/dashboard/items", headers=AUTH)
    assert r.json()["total"] == 2

    r = client.post("/chat/search", json={"message": "titration notes"}, headers=AUTH)
    body = r.json()
    assert [i["id"] for i in body["results"]] == ["m1"]

    history = client.get("/chat/history", headers=AUTH).json()["messages"]
    assert [m["role"] for m in history] == ["assistant", "user", "assistant"]
    assert len(client.delete("/chat/history", headers=AUTH).json()["messages"]) == 1


def test_dashboard_requires_bearer_token(client):
    assert client.get("/dashboard/items").status_code == 401


def test_chat_search_and_history_require_bearer_token(client):
    assert client.post("/chat/search", json={"message": "notes"}).status_code == 401
    assert client.get("/chat/history").status_code == 401
    assert client.delete("/chat/history").status_code == 401


def test_each_token_searches_only_its_own_items(client, backend):
    now = datetime(2025, 11, 1)
    backend.items_by_token = {
        "alice-token": [
            CombinedItem.build(now=now, id="alice-notes", title="Titration notes", type="MATERIAL", course_id="c1")
        ],
        "bob-token": [
            CombinedItem.build(now=now, id="bob-notes", title="Titration worksheet", type="MATERIAL", course_id="c9")
        ],
    }
    alice = {"Authorization": "Bearer alice-token"}
    bob = {"Authorization": "Bearer bob-token"}

    client.get("/dashboard/items", headers=alice)
    client.get("/dashboard/items", headers=bob)

    alice_results = client.post("/chat/search", json={"message": "titration"}, headers=alice).json()["results"]
    bob_results = client.post("/chat/search", json={"message": "titration"}, headers=bob).json()["results"]
    assert [i["id"] for i in alice_results] == ["alice-notes"]
    assert [i["id"] for i in bob_results] == ["bob-notes"]

    stranger = {"Authorization": "Bearer someone-else"}
    assert client.post("/chat/search", json={"message": "titration"}, headers=stranger).json()["results"] == []
    assert len(client.get("/chat/history", headers=stranger).json()["messages"]) == 3
    assert len(client.get("/chat/history", headers=alice).json()["messages"]) == 3


def test_dashboard_maps_revoked_access_to_401(client, backend):
    backend.dashboard_error = HttpError(httplib2.Response({"status": 403}), b"{}")
    r = client.get("/dashboard/items", headers=AUTH)
    assert r.status_code == 401


def test_dashboard_failure_is_500(client, backend):
    backend.dashboard_error = RuntimeError("boom")
    assert client.get("/dashboard/items", headers=AUTH).status_code == 500


def test_dashboard_failures_record_latency(client, backend):
    labels = {"endpoint": "/dashboard/items"}
    before = REGISTRY.get_sample_value("student_sync_request_latency_seconds_count", labels) or 0
    backend.dashboard_error = RuntimeError("boom")

    client.get("/dashboard/items", headers=AUTH)

    assert REGISTRY.get_sample_value("student_sync_request_latency_seconds_count", labels) == before + 1


def test_push_subscribe_and_send(client):
    r = client.post("/web-push/subscribe", json={"endpoint": "https://push.example.com/1", "keys": {}})
    assert r.json()["subscriptions"] == 1

    r = client.post("/web-push/send", json={"message": "Quiz tomorrow"})
    assert r.json() == {"success": True, "message": "Notification sent successfully", "sent": 1}


def test_push_subscribe_requires_endpoint(client):
    assert client.post("/web-push/subscribe", json={"keys": {}}).status_code == 400
