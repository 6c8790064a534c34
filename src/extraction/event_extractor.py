import logging
import os
from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError

from llm.llm_client import LLMClient
from llm.providers.base import LLMConfigurationError
from llm.schemas import ExamEvent, ExamExtraction, SchemaVersion

logger = logging.getLogger(__name__)

EXAM_MIN_CONFIDENCE = float(os.getenv("EXAM_MIN_CONFIDENCE", "0.6"))


class EventExtractor:
    """Sends free text to the generative-text service and returns candidate events.

    Failures never reach the caller: they are logged and read as "nothing detected".
    """

    def __init__(
        self,
        llm_client: Optional[LLMClient] = None,
        schema_version: SchemaVersion = "announcement-v2",
    ):
        self.llm = llm_client or LLMClient()
        self.schema_version = schema_version

    def extract(self, text: str, reference_date: Optional[datetime] = None) -> list[dict[str, Any]]:
        if not text or not text.strip():
            return []
        try:
            events = self.llm.extract_events(
                text, reference_date=reference_date, schema_version=self.schema_version
            )
        except LLMConfigurationError as e:
            logger.warning(f"Event extraction skipped: {e}")
            return []
        except Exception as e:
            logger.error(f"Event extraction failed for {text[:50]!r}: {e}")
            return []
        logger.info(f"Extracted {len(events)} candidate events from {text[:50]!r}")
        return events

    def extract_exam(self, text: str, reference_date: Optional[datetime] = None) -> ExamExtraction:
        try:
            data = self.llm.extract_exam_event(text, reference_date=reference_date)
        except LLMConfigurationError as e:
            logger.error(f"Exam detection not configured: {e}")
            return ExamExtraction(success=False, reason="AI_NOT_CONFIGURED")
        except Exception as e:
            logger.error(f"Exam detection call failed: {e}")
            return ExamExtraction(success=False, reason="UPSTREAM_ERROR")

        if data is None:
            return ExamExtraction(success=False, reason="PARSING_ERROR")
        if not data.get("success"):
            return ExamExtraction(success=False, reason=data.get("reason") or "NO_EVENT_DETECTED")

        try:
            event = ExamEvent.model_validate(data.get("event") or {})
        except ValidationError as e:
            logger.warning(f"Invalid exam event data: {e}")
            return ExamExtraction(success=False, reason="INVALID_EVENT_DATA")

        if event.confidence_score < EXAM_MIN_CONFIDENCE:
            return ExamExtraction(success=False, reason="NO_EVENT_DETECTED")
        return ExamExtraction(success=True, event=event)
