from __future__ import annotations

from typing import Iterable, List

from llm.schemas import ChatCriteria
from student_sync.models import CombinedItem, DriveFileMaterial, FormMaterial, YouTubeMaterial

MAX_RESULTS = 5


def _has_format(item: CombinedItem, file_format: str) -> bool:
    for m in item.materials:
        if isinstance(m, DriveFileMaterial):
            title = m.title.lower()
            if file_format == "PDF" and title.endswith(".pdf"):
                return True
            if file_format == "PPT" and (title.endswith(".pptx") or "presentation" in title):
                return True
            if file_format == "DOC" and title.endswith(".docx"):
                return True
        elif file_format == "FORM" and isinstance(m, FormMaterial):
            return True
        elif file_format == "VIDEO" and isinstance(m, YouTubeMaterial):
            return True
    return False


def matches(item: CombinedItem, criteria: ChatCriteria) -> bool:
    if criteria.course_name and criteria.course_name.lower() not in item.course_name.lower():
        return False

    if criteria.type == "TEST" and item.type not in ("TEST", "URGENT"):
        return False
    if criteria.type in ("ASSIGNMENT", "MATERIAL") and item.type != criteria.type:
        return False

    if criteria.keywords:
        content = f"{item.title} {item.description or ''} {item.course_name}".lower()
        if not any(k.lower() in content for k in criteria.keywords):
            return False

    if criteria.file_format and not _has_format(item, criteria.file_format):
        return False

    return True


def search_items(
    items: Iterable[CombinedItem], criteria: ChatCriteria, limit: int = MAX_RESULTS
) -> List[CombinedItem]:
    out: List[CombinedItem] = []
    for item in items:
        if matches(item, criteria):
            out.append(item)
            if len(out) >= limit:
                break
    return out
