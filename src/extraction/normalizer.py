"""Per-schema-version adapters from raw candidate events to ``DetectedEvent``.

Each prompt version returns a slightly different JSON shape. Every shape gets one
adapter here; nothing downstream looks at raw service output.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import TypeAdapter, ValidationError

from llm.schemas import (
    AnnouncementEventV1,
    AnnouncementEventV2,
    ExamEvent,
    SchemaVersion,
)
from student_sync.models import DetectedEvent

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5

_datetime_adapter: TypeAdapter = TypeAdapter(datetime)
_date_adapter: TypeAdapter = TypeAdapter(date)

CONFIDENCE_TIERS: Dict[str, float] = {
    "HIGH": 0.9,
    "MEDIUM": 0.6,
    "LOW": 0.3,
}

V1_TYPES: Dict[str, str] = {
    "TEST": "TEST",
    "QUIZ": "TEST",
    "SUBMISSION": "ASSIGNMENT",
    "EVENT": "EVENT",
}

V2_TYPES: Dict[str, str] = {
    "DEADLINE/TEST": "TEST",
    "URGENT_UPDATE": "URGENT",
    "GENERAL_INFO": "INFO",
    "SUBMISSION_WINDOW": "SUBMISSION_WINDOW",
}

EXAM_TYPES: Dict[str, str] = {
    "exam": "TEST",
    "test": "TEST",
    "quiz": "TEST",
    "assignment": "ASSIGNMENT",
}

ELEVATED_STATUSES = frozenset({"POSTPONED", "CANCELLED"})
ALWAYS_KEPT_TYPES = frozenset({"URGENT", "SUBMISSION_WINDOW"})
_STATUSES = frozenset({"CONFIRMED", "POSTPONED", "CANCELLED"})


def confidence_value(raw: Union[str, float, int, None]) -> float:
    if isinstance(raw, bool):
        return DEFAULT_CONFIDENCE
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        return CONFIDENCE_TIERS.get(raw.strip().upper(), DEFAULT_CONFIDENCE)
    return DEFAULT_CONFIDENCE


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """ISO string -> naive datetime (wall clock kept, offset dropped); None if unparseable."""
    if not value or not isinstance(value, str):
        return None
    value = value.strip()
    try:
        d = _datetime_adapter.validate_python(value)
    except ValidationError:
        # Date-only strings ("2024-12-15") mean midnight
        try:
            d = datetime.combine(_date_adapter.validate_python(value), time())
        except ValidationError:
            return None
    return d.replace(tzinfo=None) if d.tzinfo else d


def _status(raw: Optional[str]) -> str:
    s = (raw or "").strip().upper()
    return s if s in _STATUSES else "CONFIRMED"


def _from_v1(c: AnnouncementEventV1, source_text: str, course_id: Optional[str]) -> DetectedEvent:
    return DetectedEvent(
        title=c.event_title,
        date=parse_iso(c.due_date_iso),
        type=V1_TYPES.get((c.event_type or "").upper(), "EVENT"),
        status=_status(c.status),
        confidence=confidence_value(c.confidence_score),
        source_text=source_text,
        course_id=course_id,
    )


def _from_v2(c: AnnouncementEventV2, source_text: str, course_id: Optional[str]) -> DetectedEvent:
    item_type = V2_TYPES.get((c.event_type or "").upper(), "EVENT")
    due = parse_iso(c.due_date_iso)
    start = parse_iso(c.start_date_iso)
    end = due if item_type == "SUBMISSION_WINDOW" else None
    return DetectedEvent(
        title=c.event_title,
        summary=c.summary_headline,
        date=due or end,
        start_date=start,
        end_date=end,
        type=item_type,
        status=_status(c.status),
        confidence=confidence_value(c.confidence_score),
        source_text=source_text,
        course_id=course_id,
        test_type=c.test_type,
    )


def _from_exam(c: ExamEvent, source_text: str, course_id: Optional[str]) -> DetectedEvent:
    day = datetime.fromisoformat(c.date)
    start = datetime.combine(day.date(), time.fromisoformat(c.start_time))
    end = datetime.combine(day.date(), time.fromisoformat(c.end_time))
    return DetectedEvent(
        title=c.event_title,
        summary=c.additional_notes,
        date=start,
        start_date=start,
        end_date=end,
        type=EXAM_TYPES.get(c.event_type, "EVENT"),
        confidence=confidence_value(c.confidence_score),
        source_text=source_text,
        course_id=course_id,
        test_type=c.subject,
    )


_ADAPTERS: Dict[str, tuple] = {
    "announcement-v1": (AnnouncementEventV1, _from_v1),
    "announcement-v2": (AnnouncementEventV2, _from_v2),
    "exam": (ExamEvent, _from_exam),
}


def is_retained(event: DetectedEvent) -> bool:
    """Undated informational events are dropped unless their status or type is elevated."""
    if event.date or event.start_date or event.end_date:
        return True
    if event.status in ELEVATED_STATUSES:
        return True
    return event.type in ALWAYS_KEPT_TYPES


def normalize(
    raw: Dict[str, Any],
    schema_version: SchemaVersion = "announcement-v2",
    source_text: str = "",
    course_id: Optional[str] = None,
) -> Optional[DetectedEvent]:
    model, adapt = _ADAPTERS[schema_version]
    try:
        candidate = model.model_validate(raw)
        event = adapt(candidate, source_text, course_id)
    except (ValidationError, ValueError, TypeError) as e:
        logger.warning(f"Skipping malformed {schema_version} candidate: {e}")
        return None

    if not is_retained(event):
        logger.debug(f"Dropping undated informational event: {event.title!r}")
        return None
    return event


def normalize_all(
    raws: Iterable[Dict[str, Any]],
    schema_version: SchemaVersion = "announcement-v2",
    source_text: str = "",
    course_id: Optional[str] = None,
) -> List[DetectedEvent]:
    out: List[DetectedEvent] = []
    for raw in raws:
        event = normalize(raw, schema_version, source_text=source_text, course_id=course_id)
        if event is not None:
            out.append(event)
    return out
