from typing import Dict, List

from api.backend import BackendAPI
from integration.push_notifications import PushNotifier
from storage.chat_transcript_store import ChatTranscriptStore
from storage.extraction_cache import ExtractionCache
from student_sync.models import CombinedItem

extraction_cache = ExtractionCache()
chat_store = ChatTranscriptStore()
push_notifier = PushNotifier()

backend = BackendAPI(cache=extraction_cache)

# Latest dashboard aggregation per session key; replaced wholesale on every fetch
latest_items: Dict[str, List[CombinedItem]] = {}
