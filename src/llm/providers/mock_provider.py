from __future__ import annotations
import json
from llm.providers.base import LLMProvider


class MockProvider(LLMProvider):
    def generate(self, *, system: str, user: str) -> str:
        """
        Returns canned JSON responses based on the prompt content (offline demos).
        """
        lower_user = user.lower()

        # Announcement extraction
        if "announcement text" in lower_user:
            events = []
            if "test" in lower_user or "exam" in lower_user or "quiz" in lower_user:
                events.append(
                    {
                        "event_title": "Class Test",
                        "summary_headline": "Test announced in class",
                        "event_type": "DEADLINE/TEST",
                        "start_date_iso": None,
                        "due_date_iso": None,
                        "original_text_snippet": user[:80],
                        "confidence_score": "LOW",
                        "requires_prep": True,
                        "status": "POSTPONED" if "postpone" in lower_user else "CONFIRMED",
                        "test_type": "Test",
                    }
                )
            return json.dumps({"events": events})

        # Exam detection
        if "exam, test, quiz" in system.lower():
            return json.dumps({"success": False, "reason": "NO_EVENT_DETECTED"})

        # Chat intent
        if "query parser" in system.lower():
            if lower_user.strip() in {"hi", "hello", "hey"}:
                return json.dumps({"intent": "greeting", "reply": "Hello! How can I help you study today?"})
            return json.dumps(
                {
                    "intent": "search",
                    "criteria": {"keywords": [w for w in lower_user.split() if len(w) > 3]},
                }
            )

        # Default fallback
        return "{}"
