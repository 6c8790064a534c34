from datetime import datetime
from typing import List, Optional

from aggregation.aggregator import Aggregator
from classification.intent_classifier import IntentClassifier
from extraction.announcement_parser import AnnouncementParser
from extraction.event_extractor import EventExtractor
from integration.calendar_integration import CalendarEventResult, CalendarIntegration
from integration.classroom_client import ClassroomClient
from llm.llm_client import LLMClient
from llm.schemas import ChatIntent, ExamEvent, ExamExtraction
from storage.extraction_cache import ExtractionCache
from student_sync.models import CombinedItem, DetectedEvent


class BackendAPI:
    """Central orchestration component: wires the services behind the HTTP routes."""

    def __init__(self, cache: Optional[ExtractionCache] = None, llm_client: Optional[LLMClient] = None):
        self.cache = cache
        self.llm = llm_client or LLMClient()

    def parse_announcement(self, text: str, reference_date: Optional[datetime] = None) -> List[DetectedEvent]:
        parser = AnnouncementParser(EventExtractor(llm_client=self.llm), cache=self.cache)
        return parser.parse(text, reference_date=reference_date)

    def detect_exam(self, text: str) -> ExamExtraction:
        extractor = EventExtractor(llm_client=self.llm, schema_version="exam")
        return extractor.extract_exam(text)

    def confirm_exam(self, access_token: str, event: ExamEvent, timezone: Optional[str] = None) -> CalendarEventResult:
        calendar = CalendarIntegration(access_token=access_token, timezone=timezone)
        return calendar.create_event(event)

    def classify_intent(self, message: str) -> ChatIntent:
        return IntentClassifier(llm_client=self.llm).classify(message)

    async def dashboard_items(self, access_token: str) -> List[CombinedItem]:
        parser = AnnouncementParser(EventExtractor(llm_client=self.llm), cache=self.cache)
        aggregator = Aggregator(ClassroomClient(access_token=access_token), parser=parser)
        return await aggregator.aggregate()
