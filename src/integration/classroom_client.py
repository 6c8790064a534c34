import logging
import os
from typing import Any, Dict, List, Optional

import google_auth_httplib2
import httplib2
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from student_sync.models import Announcement, Course, CourseWork, CourseWorkMaterial

logger = logging.getLogger(__name__)

GOOGLE_API_TIMEOUT_S = float(os.getenv("GOOGLE_API_TIMEOUT_S", "20"))
ANNOUNCEMENT_PAGE_SIZE = 100


def build_google_service(api: str, version: str, access_token: str, timeout_s: float = GOOGLE_API_TIMEOUT_S):
    """Discovery client authorised with a caller-supplied bearer token and a bounded socket timeout."""
    credentials = Credentials(token=access_token)
    http = google_auth_httplib2.AuthorizedHttp(credentials, http=httplib2.Http(timeout=timeout_s))
    return build(api, version, http=http, cache_discovery=False)


class ClassroomClient:
    """Read-only access to courses, coursework, announcements and materials.

    Calls are blocking; async callers wrap them in ``asyncio.to_thread``.
    """

    def __init__(self, access_token: Optional[str] = None, service=None):
        if service is None and not access_token:
            raise ValueError("ClassroomClient needs an access token or a service")
        self._access_token = access_token
        self._service = service

    @property
    def service(self):
        if self._service is None:
            self._service = build_google_service("classroom", "v1", self._access_token)
        return self._service

    def fetch_courses(self) -> List[Course]:
        data = self.service.courses().list(courseStates="ACTIVE").execute()
        return [Course.model_validate(c) for c in data.get("courses", [])]

    def fetch_course_work(self, course_id: str) -> List[CourseWork]:
        data = (
            self.service.courses()
            .courseWork()
            .list(courseId=course_id, orderBy="dueDate asc")
            .execute()
        )
        return [CourseWork.model_validate(w) for w in data.get("courseWork", [])]

    def fetch_announcements(self, course_id: str) -> List[Announcement]:
        announcements: List[Announcement] = []
        page_token: Optional[str] = None

        while True:
            params: Dict[str, Any] = {"courseId": course_id, "pageSize": ANNOUNCEMENT_PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token
            data = self.service.courses().announcements().list(**params).execute()
            announcements.extend(Announcement.model_validate(a) for a in data.get("announcements", []))

            page_token = data.get("nextPageToken")
            if not page_token:
                break

        logger.info(f"Fetched {len(announcements)} announcements for course {course_id}")
        return announcements

    def fetch_course_work_materials(self, course_id: str) -> List[CourseWorkMaterial]:
        try:
            data = self.service.courses().courseWorkMaterials().list(courseId=course_id).execute()
        except Exception as e:
            # Courses that never used materials can answer 404
            logger.warning(f"Failed to fetch courseWorkMaterials for {course_id}: {e}")
            return []
        return [CourseWorkMaterial.model_validate(m) for m in data.get("courseWorkMaterial", [])]
