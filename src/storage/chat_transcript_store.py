from __future__ import annotations

import json
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

CHAT_TRANSCRIPT_PATH = os.getenv("CHAT_TRANSCRIPT_PATH", "data/chat_history.json")

GREETING = "Hi! I'm your study assistant. Ask me for materials, assignments, or check upcoming tests!"


class ChatTranscriptStore:
    """Chat transcripts keyed by session, persisted as one JSON file."""

    def __init__(self, path: str = CHAT_TRANSCRIPT_PATH):
        self.path = Path(path)
        self._lock = threading.Lock()

    def load(self, session: str) -> List[Dict[str, Any]]:
        """
        Load one session's transcript. Missing or corrupted data yields the initial greeting.
        """
        messages = self._read().get(session)
        if not isinstance(messages, list):
            return self._initial()
        return messages

    def append(
        self,
        session: str,
        role: str,
        content: str,
        results: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        message: Dict[str, Any] = {
            "id": str(int(datetime.now().timestamp() * 1000)),
            "role": role,
            "content": content,
            "type": "results" if results else "text",
        }
        if results:
            message["results"] = results
        with self._lock:
            data = self._read()
            messages = data.get(session)
            if not isinstance(messages, list):
                messages = self._initial()
            messages.append(message)
            data[session] = messages
            self._save(data)
        return message

    def clear(self, session: str) -> List[Dict[str, Any]]:
        messages = self._initial()
        with self._lock:
            data = self._read()
            data[session] = messages
            self._save(data)
        return messages

    def _initial(self) -> List[Dict[str, Any]]:
        return [{"id": "1", "role": "assistant", "content": GREETING, "type": "text"}]

    def _read(self) -> Dict[str, Any]:
        try:
            if not self.path.exists():
                return {}
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return data if isinstance(data, dict) else {}
        except (OSError, ValueError):
            return {}

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(data, ensure_ascii=False, indent=2, default=str),
            encoding="utf-8",
        )
