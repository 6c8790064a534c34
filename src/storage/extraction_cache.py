from __future__ import annotations

import hashlib
import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from student_sync.models import DetectedEvent

logger = logging.getLogger(__name__)

EXTRACTION_CACHE_PATH = os.getenv("EXTRACTION_CACHE_PATH", "data/extraction_cache.json")
_ttl_env = os.getenv("EXTRACTION_CACHE_TTL_S", "").strip()
EXTRACTION_CACHE_TTL_S: Optional[float] = float(_ttl_env) if _ttl_env else None

CACHE_KEY_PREFIX = "ai-cache-v3"


def fingerprint(text: str) -> str:
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
    return f"{CACHE_KEY_PREFIX}-{len(text)}-{digest}"


class ExtractionCache:
    """Fingerprint -> detected events, persisted as one JSON file.

    No eviction. Entries expire only when a TTL is configured. Writes are
    last-write-wins.
    """

    def __init__(
        self,
        path: str = EXTRACTION_CACHE_PATH,
        ttl_s: Optional[float] = EXTRACTION_CACHE_TTL_S,
    ):
        self.path = Path(path)
        self.ttl_s = ttl_s
        self._lock = threading.Lock()
        self._entries: Dict[str, Dict[str, Any]] = self._load()

    def _load(self) -> Dict[str, Dict[str, Any]]:
        try:
            if not self.path.exists():
                return {}
            data = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                return {}
            return {k: v for k, v in data.items() if isinstance(v, dict)}
        except Exception as e:
            logger.warning(f"Ignoring unreadable extraction cache {self.path}: {e}")
            return {}

    def _expired(self, entry: Dict[str, Any]) -> bool:
        if self.ttl_s is None:
            return False
        try:
            stored_at = float(entry.get("stored_at", 0))
        except (TypeError, ValueError):
            return True
        return time.time() - stored_at > self.ttl_s

    def get(self, key: str) -> Optional[List[DetectedEvent]]:
        entry = self._entries.get(key)
        if not isinstance(entry, dict) or self._expired(entry):
            return None
        events = entry.get("events")
        if not isinstance(events, list):
            return None
        try:
            # ISO strings are rehydrated to datetimes by the model
            return [DetectedEvent.model_validate(e) for e in events]
        except ValidationError as e:
            logger.warning(f"Discarding corrupt cache entry {key[:40]}: {e}")
            return None

    def put(self, key: str, events: List[DetectedEvent]) -> None:
        entry = {
            "stored_at": time.time(),
            "events": [e.model_dump(mode="json") for e in events],
        }
        with self._lock:
            self._entries[key] = entry
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(self._entries, ensure_ascii=False, indent=2),
                encoding="utf-8",
            )

    def __len__(self) -> int:
        return len(self._entries)
