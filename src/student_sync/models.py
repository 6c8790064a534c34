from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

logger = logging.getLogger(__name__)


ItemType = Literal[
    "ASSIGNMENT",
    "ANNOUNCEMENT",
    "EVENT",
    "MATERIAL",
    "TEST",
    "URGENT",
    "INFO",
    "SUBMISSION_WINDOW",
]
EventStatus = Literal["CONFIRMED", "POSTPONED", "CANCELLED"]
Priority = Literal["HIGH", "MEDIUM", "LOW"]


# --- Materials (tagged variant, decoded once from the Classroom payload) ---


class _MaterialBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    url: str = ""
    thumbnail_url: Optional[str] = None


class DriveFileMaterial(_MaterialBase):
    kind: Literal["drive_file"] = "drive_file"
    id: str = ""


class YouTubeMaterial(_MaterialBase):
    kind: Literal["youtube_video"] = "youtube_video"
    id: str = ""


class LinkMaterial(_MaterialBase):
    kind: Literal["link"] = "link"


class FormMaterial(_MaterialBase):
    kind: Literal["form"] = "form"
    response_url: Optional[str] = None


Material = Annotated[
    Union[DriveFileMaterial, YouTubeMaterial, LinkMaterial, FormMaterial],
    Field(discriminator="kind"),
]

_material_adapter: TypeAdapter = TypeAdapter(Material)


def decode_material(raw: Dict[str, Any]) -> Optional[_MaterialBase]:
    """Map one Classroom material dict (driveFile / youtubeVideo / link / form)
    onto its tagged variant. Already-decoded dicts (with ``kind``) are accepted too,
    so cached items round-trip."""
    if not isinstance(raw, dict):
        return None

    if "kind" in raw:
        try:
            return _material_adapter.validate_python(raw)
        except ValidationError:
            return None

    if "driveFile" in raw:
        # Classroom nests the file: {"driveFile": {"driveFile": {...}, "shareMode": ...}}
        f = raw["driveFile"].get("driveFile", raw["driveFile"])
        return DriveFileMaterial(
            id=f.get("id", ""),
            title=f.get("title", ""),
            url=f.get("alternateLink", ""),
            thumbnail_url=f.get("thumbnailUrl"),
        )
    if "youtubeVideo" in raw:
        v = raw["youtubeVideo"]
        return YouTubeMaterial(
            id=v.get("id", ""),
            title=v.get("title", ""),
            url=v.get("alternateLink", ""),
            thumbnail_url=v.get("thumbnailUrl"),
        )
    if "link" in raw:
        link = raw["link"]
        return LinkMaterial(
            title=link.get("title", "") or link.get("url", ""),
            url=link.get("url", ""),
            thumbnail_url=link.get("thumbnailUrl"),
        )
    if "form" in raw:
        f = raw["form"]
        return FormMaterial(
            title=f.get("title", ""),
            url=f.get("formUrl", ""),
            response_url=f.get("responseUrl"),
            thumbnail_url=f.get("thumbnailUrl"),
        )

    logger.debug(f"Skipping unknown material shape: {list(raw.keys())}")
    return None


def decode_materials(raw: Optional[List[Dict[str, Any]]]) -> List[Any]:
    out = []
    for m in raw or []:
        decoded = decode_material(m)
        if decoded is not None:
            out.append(decoded)
    return out


# --- Classroom records ---


class _ClassroomRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @field_validator("materials", mode="before", check_fields=False)
    @classmethod
    def _decode_materials(cls, v):
        return decode_materials(v)


class Course(_ClassroomRecord):
    id: str
    name: str = ""
    section: Optional[str] = None
    alternate_link: str = Field("", alias="alternateLink")


class DueDate(BaseModel):
    year: int
    month: int  # 1-12, same as datetime
    day: int


class DueTime(BaseModel):
    hours: int = 0
    minutes: int = 0


class CourseWork(_ClassroomRecord):
    """RawAssignment: a Classroom courseWork record."""

    id: str
    title: str = ""
    description: Optional[str] = None
    materials: List[Material] = Field(default_factory=list)
    state: Optional[str] = None
    alternate_link: str = Field("", alias="alternateLink")
    due_date: Optional[DueDate] = Field(None, alias="dueDate")
    due_time: Optional[DueTime] = Field(None, alias="dueTime")
    course_id: Optional[str] = Field(None, alias="courseId")

    def resolved_due(self) -> Optional[datetime]:
        if self.due_date is None:
            return None
        try:
            d = datetime(self.due_date.year, self.due_date.month, self.due_date.day)
        except ValueError:
            return None
        if self.due_time is not None:
            d = d.replace(hour=self.due_time.hours, minute=self.due_time.minutes)
        return d


class Announcement(_ClassroomRecord):
    """RawAnnouncement: opaque text plus attachments."""

    id: str
    text: str = ""
    materials: List[Material] = Field(default_factory=list)
    state: Optional[str] = None
    alternate_link: str = Field("", alias="alternateLink")
    creation_time: Optional[datetime] = Field(None, alias="creationTime")
    course_id: Optional[str] = Field(None, alias="courseId")


class CourseWorkMaterial(_ClassroomRecord):
    id: str
    title: str = ""
    description: Optional[str] = None
    materials: List[Material] = Field(default_factory=list)
    alternate_link: str = Field("", alias="alternateLink")
    course_id: Optional[str] = Field(None, alias="courseId")


# --- Events & timeline items ---


class DetectedEvent(BaseModel):
    """Canonical AI-detected event, independent of the prompt/response schema version."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1)
    summary: Optional[str] = None
    date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    type: ItemType = "EVENT"
    status: EventStatus = "CONFIRMED"
    confidence: float = 0.5
    source_text: str = ""
    course_id: Optional[str] = None
    test_type: Optional[str] = None


PRIORITY_ORDER: Dict[str, int] = {"HIGH": 0, "MEDIUM": 1, "LOW": 2}

TYPE_ORDER: Dict[str, int] = {
    "TEST": 0,
    "URGENT": 1,
    "ASSIGNMENT": 2,
    "SUBMISSION_WINDOW": 3,
    "INFO": 4,
    "EVENT": 5,
    "ANNOUNCEMENT": 6,
    "MATERIAL": 7,
}

URGENT_WINDOW = timedelta(hours=24)


def derive_priority(
    item_type: str,
    status: Optional[str],
    date: Optional[datetime],
    now: datetime,
) -> Priority:
    if item_type in ("TEST", "URGENT"):
        return "HIGH"
    if status in ("POSTPONED", "CANCELLED"):
        return "HIGH"
    if date is not None:
        if timedelta(0) < date - now < URGENT_WINDOW:
            return "HIGH"
        return "MEDIUM"
    return "LOW"


class CombinedItem(BaseModel):
    """One row of the unified timeline.

    Build through ``CombinedItem.build`` so ``priority`` always follows from
    type, status and date.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    summary: Optional[str] = None
    description: Optional[str] = None
    materials: List[Material] = Field(default_factory=list)
    date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    type: ItemType
    course_id: str
    course_name: str = ""
    course_section: Optional[str] = None
    link: str = ""
    status: Optional[str] = None
    test_type: Optional[str] = None
    confidence: Optional[float] = None
    priority: Priority

    @classmethod
    def build(cls, *, now: datetime, **fields: Any) -> "CombinedItem":
        fields.pop("priority", None)
        priority = derive_priority(
            fields.get("type", "EVENT"),
            fields.get("status"),
            fields.get("date"),
            now,
        )
        return cls(priority=priority, **fields)

    def sort_key(self) -> tuple:
        return (
            self.date is None,
            self.date or datetime.max,
            PRIORITY_ORDER[self.priority],
            TYPE_ORDER.get(self.type, len(TYPE_ORDER)),
        )
