"""Raw response shapes returned by the different prompt versions.

These are the candidate events as the service sends them; ``extraction.normalizer``
turns each of them into a ``DetectedEvent``.
"""
from __future__ import annotations
import re
from typing import Literal, Optional, List, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

SchemaVersion = Literal["announcement-v1", "announcement-v2", "exam"]

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}$")


class _Candidate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event_title: str = Field(..., min_length=1)

    @field_validator("event_title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("event_title must not be blank")
        return v2


class AnnouncementEventV1(_Candidate):
    """Single due date, TEST/QUIZ/SUBMISSION/EVENT types, string confidence tier."""

    event_type: Optional[str] = None
    due_date_iso: Optional[str] = None
    original_text_snippet: Optional[str] = None
    confidence_score: Union[str, float, None] = None
    requires_prep: bool = False
    status: Optional[str] = None


class AnnouncementEventV2(_Candidate):
    """Adds a summary headline, a start date for submission windows and a test label."""

    summary_headline: Optional[str] = None
    event_type: Optional[str] = None
    start_date_iso: Optional[str] = None
    due_date_iso: Optional[str] = None
    original_text_snippet: Optional[str] = None
    confidence_score: Union[str, float, None] = None
    requires_prep: bool = False
    status: Optional[str] = None
    test_type: Optional[str] = None


ExamEventType = Literal["exam", "test", "quiz", "assignment", "unknown"]


class ExamEvent(_Candidate):
    """Exam-detection shape: separate date and HH:MM start/end, numeric confidence."""

    date: str
    start_time: str
    end_time: str
    event_type: ExamEventType = "unknown"
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    subject: Optional[str] = None
    additional_notes: Optional[str] = None

    @field_validator("date")
    @classmethod
    def date_format(cls, v: str) -> str:
        if not _DATE_RE.match(v):
            raise ValueError(f"Invalid date format: {v}")
        return v

    @field_validator("start_time", "end_time")
    @classmethod
    def time_format(cls, v: str) -> str:
        if not _TIME_RE.match(v):
            raise ValueError(f"Invalid time format: {v}")
        return v


class ExamExtraction(BaseModel):
    success: bool
    event: Optional[ExamEvent] = None
    reason: Optional[str] = None


class ChatCriteria(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    course_name: Optional[str] = Field(None, alias="courseName")
    keywords: List[str] = Field(default_factory=list)
    type: Optional[Literal["ASSIGNMENT", "TEST", "MATERIAL"]] = None
    file_format: Optional[Literal["PDF", "PPT", "DOC", "FORM", "VIDEO"]] = Field(
        None, alias="fileFormat"
    )

    @field_validator("keywords", mode="before")
    @classmethod
    def keywords_list(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return [str(k) for k in v if k]


class ChatIntent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    intent: Literal["search", "greeting", "unknown"] = "unknown"
    reply: Optional[str] = None
    criteria: Optional[ChatCriteria] = None
