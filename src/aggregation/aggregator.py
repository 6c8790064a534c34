"""Merges Classroom records and AI-detected events into one ordered timeline."""
from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime
from typing import Callable, Iterable, List, Optional, TypeVar

from api.metrics import AGGREGATION_ITEMS_TOTAL, COURSE_FETCH_FAILURES_TOTAL
from extraction.announcement_parser import AnnouncementParser
from integration.classroom_client import ClassroomClient
from student_sync.models import (
    Announcement,
    CombinedItem,
    Course,
    CourseWork,
    CourseWorkMaterial,
    DetectedEvent,
)

logger = logging.getLogger(__name__)

EXTRACTION_CONCURRENCY = int(os.getenv("EXTRACTION_CONCURRENCY", "3"))
ANNOUNCEMENT_TITLE_LEN = 100
OVERRIDING_TYPES = ("TEST", "URGENT")

T = TypeVar("T")


def announcement_title(text: str) -> str:
    if len(text) > ANNOUNCEMENT_TITLE_LEN:
        return text[:ANNOUNCEMENT_TITLE_LEN] + "..."
    return text


def dedupe(items: Iterable[CombinedItem]) -> List[CombinedItem]:
    seen = set()
    out = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        out.append(item)
    return out


def order_items(items: Iterable[CombinedItem]) -> List[CombinedItem]:
    """Dated items first (ascending), then undated; ties by priority, then type."""
    return sorted(items, key=CombinedItem.sort_key)


class Aggregator:

    def __init__(
        self,
        classroom: ClassroomClient,
        parser: Optional[AnnouncementParser] = None,
        concurrency: int = EXTRACTION_CONCURRENCY,
    ):
        self.classroom = classroom
        self.parser = parser or AnnouncementParser()
        self.concurrency = max(1, concurrency)

    async def aggregate(self, now: Optional[datetime] = None) -> List[CombinedItem]:
        now = now or datetime.now()

        # A failure here (e.g. revoked token) is the one error callers must see.
        courses = await asyncio.to_thread(self.classroom.fetch_courses)
        logger.info(f"Aggregating {len(courses)} courses")

        semaphore = asyncio.Semaphore(self.concurrency)
        per_course = await asyncio.gather(
            *(self._process_course(course, semaphore, now) for course in courses)
        )

        items = dedupe(item for course_items in per_course for item in course_items)
        AGGREGATION_ITEMS_TOTAL.inc(len(items))
        return order_items(items)

    async def _fetch(self, course: Course, label: str, fn: Callable[[str], List[T]]) -> List[T]:
        try:
            return await asyncio.to_thread(fn, course.id)
        except Exception as e:
            COURSE_FETCH_FAILURES_TOTAL.labels(resource=label).inc()
            logger.error(f"Error fetching {label} for {course.name}: {e}")
            return []

    async def _detect(
        self, text: str, course_id: str, semaphore: asyncio.Semaphore
    ) -> List[DetectedEvent]:
        async with semaphore:
            try:
                return await asyncio.to_thread(self.parser.parse, text, course_id)
            except Exception as e:
                logger.error(f"Event detection failed for course {course_id}: {e}")
                return []

    async def _process_course(
        self, course: Course, semaphore: asyncio.Semaphore, now: datetime
    ) -> List[CombinedItem]:
        work, announcements, materials = await asyncio.gather(
            self._fetch(course, "courseWork", self.classroom.fetch_course_work),
            self._fetch(course, "announcements", self.classroom.fetch_announcements),
            self._fetch(course, "materials", self.classroom.fetch_course_work_materials),
        )

        items: List[CombinedItem] = []

        # Assignments finish before announcements start.
        items.extend(
            await asyncio.gather(
                *(self._assignment_item(course, w, semaphore, now) for w in work)
            )
        )
        for batch in await asyncio.gather(
            *(self._announcement_items(course, a, semaphore, now) for a in announcements)
        ):
            items.extend(batch)
        items.extend(self._material_item(course, m, now) for m in materials)
        return items

    def _course_fields(self, course: Course) -> dict:
        return {
            "course_id": course.id,
            "course_name": course.name,
            "course_section": course.section,
        }

    async def _assignment_item(
        self,
        course: Course,
        work: CourseWork,
        semaphore: asyncio.Semaphore,
        now: datetime,
    ) -> CombinedItem:
        native_due = work.resolved_due()
        fields = {
            "id": work.id,
            "title": work.title,
            "description": work.description,
            "materials": list(work.materials),
            "date": native_due,
            "type": "ASSIGNMENT",
            "link": work.alternate_link,
            "status": work.state,
            **self._course_fields(course),
        }

        if work.description:
            detected = await self._detect(work.description, course.id, semaphore)
            if detected:
                fields["summary"] = detected[0].summary
            override = next((e for e in detected if e.type in OVERRIDING_TYPES), None)
            # The platform's own due date always wins over AI-detected dates.
            if override is not None and native_due is None:
                fields.update(
                    type=override.type,
                    date=override.date,
                    start_date=override.start_date,
                    end_date=override.end_date,
                    status=override.status,
                    test_type=override.test_type,
                    confidence=override.confidence,
                )

        return CombinedItem.build(now=now, **fields)

    async def _announcement_items(
        self,
        course: Course,
        announcement: Announcement,
        semaphore: asyncio.Semaphore,
        now: datetime,
    ) -> List[CombinedItem]:
        detected = await self._detect(announcement.text, course.id, semaphore)
        common = {
            "description": announcement.text,
            "materials": list(announcement.materials),
            "link": announcement.alternate_link,
            **self._course_fields(course),
        }

        if not detected:
            return [
                CombinedItem.build(
                    now=now,
                    id=announcement.id,
                    title=announcement_title(announcement.text),
                    type="ANNOUNCEMENT",
                    **common,
                )
            ]

        return [
            CombinedItem.build(
                now=now,
                id=f"detected-{announcement.id}-{n}",
                title=event.title,
                summary=event.summary,
                date=event.date,
                start_date=event.start_date,
                end_date=event.end_date,
                type=event.type,
                status=event.status,
                test_type=event.test_type,
                confidence=event.confidence,
                **common,
            )
            for n, event in enumerate(detected)
        ]

    def _material_item(self, course: Course, material: CourseWorkMaterial, now: datetime) -> CombinedItem:
        return CombinedItem.build(
            now=now,
            id=material.id,
            title=material.title,
            description=material.description,
            materials=list(material.materials),
            type="MATERIAL",
            link=material.alternate_link,
            **self._course_fields(course),
        )
