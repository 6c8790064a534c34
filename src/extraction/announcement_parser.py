import logging
from datetime import datetime
from typing import List, Optional

from api.metrics import CACHE_LOOKUPS_TOTAL, EVENTS_DETECTED_TOTAL
from extraction.event_extractor import EventExtractor
from extraction.normalizer import normalize_all
from storage.extraction_cache import ExtractionCache, fingerprint
from student_sync.models import DetectedEvent

logger = logging.getLogger(__name__)


class AnnouncementParser:
    """Free text -> detected events, consulting the extraction cache first."""

    def __init__(
        self,
        extractor: Optional[EventExtractor] = None,
        cache: Optional[ExtractionCache] = None,
    ):
        self.extractor = extractor or EventExtractor()
        self.cache = cache

    def parse(
        self,
        text: str,
        course_id: Optional[str] = None,
        reference_date: Optional[datetime] = None,
    ) -> List[DetectedEvent]:
        if not text or not text.strip():
            return []

        key = fingerprint(text)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                CACHE_LOOKUPS_TOTAL.labels(result="hit").inc()
                logger.debug(f"Using {len(cached)} cached events for {text[:30]!r}")
                return [e.model_copy(update={"course_id": course_id}) for e in cached]
            CACHE_LOOKUPS_TOTAL.labels(result="miss").inc()

        raws = self.extractor.extract(text, reference_date=reference_date)
        events = normalize_all(
            raws,
            self.extractor.schema_version,
            source_text=text,
            course_id=course_id,
        )
        EVENTS_DETECTED_TOTAL.inc(len(events))

        # Empty results are not cached so a later call can still succeed.
        if events and self.cache is not None:
            self.cache.put(key, events)
        return events
