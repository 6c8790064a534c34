import os
import tempfile

# Route tests import api.state, which opens the default stores: keep them out of the repo.
_tmp = tempfile.mkdtemp(prefix="student-sync-test-")
os.environ.setdefault("EXTRACTION_CACHE_PATH", os.path.join(_tmp, "extraction_cache.json"))
os.environ.setdefault("CHAT_TRANSCRIPT_PATH", os.path.join(_tmp, "chat_history.json"))
os.environ.setdefault("LLM_PROVIDER", "mock")

import pytest


class FakeProvider:
    def __init__(self, response_text: str):
        self._response_text = response_text
        self.calls = []

    def generate(self, *, system: str, user: str) -> str:
        self.calls.append({"system": system, "user": user})
        return self._response_text


class _Request:
    """Mimics a googleapiclient HttpRequest."""

    def __init__(self, result=None, error=None):
        self._result = result
        self._error = error

    def execute(self):
        if self._error is not None:
            raise self._error
        return self._result


class FakeClassroomService:
    """Just enough of the classroom v1 discovery client for ClassroomClient."""

    def __init__(self, courses=None, course_work=None, announcement_pages=None, materials=None, materials_error=None):
        self._courses = courses or []
        self._course_work = course_work or {}
        self._announcement_pages = announcement_pages or {}
        self._materials = materials or {}
        self._materials_error = materials_error
        self.calls = []

    def courses(self):
        return self

    def courseWork(self):
        return _Sub(self, "courseWork")

    def announcements(self):
        return _Sub(self, "announcements")

    def courseWorkMaterials(self):
        return _Sub(self, "courseWorkMaterials")

    def list(self, **kwargs):
        self.calls.append(("courses", kwargs))
        return _Request({"courses": self._courses})


class _Sub:
    def __init__(self, parent, kind):
        self.parent = parent
        self.kind = kind

    def list(self, **kwargs):
        p = self.parent
        p.calls.append((self.kind, kwargs))
        course_id = kwargs["courseId"]
        if self.kind == "courseWork":
            return _Request({"courseWork": p._course_work.get(course_id, [])})
        if self.kind == "announcements":
            pages = p._announcement_pages.get(course_id, [{}])
            index = int(kwargs.get("pageToken") or 0)
            return _Request(pages[index])
        if p._materials_error is not None:
            return _Request(error=p._materials_error)
        return _Request({"courseWorkMaterial": p._materials.get(course_id, [])})


class FakeCalendarService:
    def __init__(self, created=None, error=None):
        self._created = created or {"id": "evt123", "htmlLink": "https://calendar.google.com/event?eid=evt123"}
        self._error = error
        self.inserted = []

    def events(self):
        return self

    def insert(self, calendarId: str, body: dict):
        self.inserted.append({"calendarId": calendarId, "body": body})
        return _Request(self._created, self._error)

    def get(self, calendarId: str, eventId: str):
        return _Request({"id": eventId})


@pytest.fixture
def fake_provider_factory():
    def _make(response_text: str):
        return FakeProvider(response_text)
    return _make


@pytest.fixture
def fake_classroom_service():
    return FakeClassroomService


@pytest.fixture
def fake_calendar_service():
    return FakeCalendarService
