"""Prompt text sent to the generative-text service.

Wording is configuration; the JSON shapes requested here are what
``llm.schemas`` and ``extraction.normalizer`` understand.
"""
from __future__ import annotations

from datetime import datetime

JSON_ONLY_SYSTEM = "You are a JSON-only response bot. Output valid JSON only."

ANNOUNCEMENT_PROMPT = """You are an expert academic event parser. Analyze this classroom announcement and extract ALL important information.

ANNOUNCEMENT TEXT:
"{text}"

CURRENT CONTEXT:
- Today's Date: {today} ({weekday})
- Current Year: {year}

YOUR TASK:
1. TESTS/EXAMS: "test", "exam", "quiz", "midterm", "final", "unit test", "assessment".
   Extract the test name (e.g. "Unit Test 4"), the exact date and time, and whether it is POSTPONED or CANCELLED.
2. SUBMISSION WINDOWS: "submission", "submit", "between", "from X to Y".
   Extract the START date and the END date.
3. URGENT UPDATES: schedule changes, room changes, anything needing action today.

DATE RULES:
- Dates written DD/MM/YYYY ("Monday 08/12/2025") mean 2025-12-08.
- Resolve relative dates ("next Monday", "this Friday") against today's date.
- If no time is given, use 23:59:59.
- Postponed with a new date: use the new date. Postponed without a new date: due_date_iso null and status POSTPONED.
- Ignore the date the announcement was posted.

OUTPUT: a JSON object {{"events": [...]}} where each event is
{{
  "event_title": "Full descriptive title",
  "summary_headline": "Concise 10-word summary",
  "event_type": "DEADLINE/TEST" | "SUBMISSION_WINDOW" | "URGENT_UPDATE" | "GENERAL_INFO",
  "start_date_iso": "ISO 8601 string or null",
  "due_date_iso": "ISO 8601 string or null",
  "original_text_snippet": "Relevant excerpt",
  "confidence_score": "HIGH" | "MEDIUM" | "LOW",
  "requires_prep": true | false,
  "status": "CONFIRMED" | "POSTPONED" | "CANCELLED",
  "test_type": "Unit Test 4" or null
}}
Return an empty list when nothing actionable is mentioned. Return ONLY raw JSON."""

ANNOUNCEMENT_PROMPT_V1 = """You are an academic event parser. Analyze this classroom announcement.

ANNOUNCEMENT TEXT:
"{text}"

Today's Date: {today} ({weekday}), Current Year: {year}

Extract every test, quiz, submission deadline or school event. Resolve relative dates
against today's date. If no time is given, use 23:59:59.

OUTPUT: a JSON object {{"events": [...]}} where each event is
{{
  "event_title": "Full descriptive title",
  "event_type": "TEST" | "QUIZ" | "SUBMISSION" | "EVENT",
  "due_date_iso": "ISO 8601 string or null",
  "original_text_snippet": "Relevant excerpt",
  "confidence_score": "HIGH" | "MEDIUM" | "LOW",
  "requires_prep": true | false,
  "status": "CONFIRMED" | "POSTPONED" | "CANCELLED"
}}
Return an empty list when nothing actionable is mentioned. Return ONLY raw JSON."""

EXAM_SYSTEM_PROMPT = """You are an academic event extraction AI. Your ONLY job is to analyze user input and detect if it mentions an exam, test, quiz, or assessment.

STRICT RULES:
1. ONLY respond with valid JSON, NO other text
2. If confidence < 0.6, respond with: {"success": false, "reason": "NO_EVENT_DETECTED"}
3. Extract ONLY if the input clearly mentions a test/exam/quiz/assessment date
4. For ambiguous dates ("next week", "coming Friday"), make reasonable assumptions and set lower confidence (0.5-0.7)
5. For missing end times, estimate 2 hours after start time
6. For missing times, use "09:00" as default
7. Always use ISO 8601 date format (YYYY-MM-DD) and 24-hour time format (HH:MM)

If you detect an event, respond EXACTLY with:
{
  "success": true,
  "event": {
    "event_title": "string",
    "date": "YYYY-MM-DD",
    "start_time": "HH:MM",
    "end_time": "HH:MM",
    "event_type": "exam|test|quiz|assignment",
    "confidence_score": number (0-1),
    "subject": "string (optional)",
    "additional_notes": "string (optional)"
  }
}

If NO event detected:
{"success": false, "reason": "NO_EVENT_DETECTED"}

Today's date is {today}. Extract event details from the following user input:"""

CHAT_INTENT_SYSTEM_PROMPT = """You are a smart classroom assistant query parser.
Extract search criteria from the user's query to help find relevant study materials.

Return a JSON object:
{
    "intent": "search" | "greeting" | "unknown",
    "reply": "Optional conversational reply (only for greetings or unknown)",
    "criteria": {
        "course_name": string | null,
        "keywords": string[] | null,
        "type": "ASSIGNMENT" | "TEST" | "MATERIAL" | null,
        "file_format": "PDF" | "PPT" | "DOC" | "FORM" | "VIDEO" | null
    }
}

Rules:
- "notes", "materials", "docs" mean intent="search".
- "PDFs" -> file_format="PDF"; "slides", "ppts", "presentations" -> "PPT"; "forms", "quizzes" -> "FORM"; "videos", "recordings" -> "VIDEO".
- "Do I have a test?" -> intent="search" with type="TEST".
- "Hi" or "Hello" -> intent="greeting".
- Extract the course name if mentioned.
- Expand ranges: "Unit 3 - 5" -> keywords ["Unit 3", "Unit 4", "Unit 5"].
- Return ONLY raw JSON. No markdown."""


ANNOUNCEMENT_PROMPTS = {
    "announcement-v1": ANNOUNCEMENT_PROMPT_V1,
    "announcement-v2": ANNOUNCEMENT_PROMPT,
}


def announcement_prompt(text: str, reference_date: datetime, schema_version: str = "announcement-v2") -> str:
    if schema_version not in ANNOUNCEMENT_PROMPTS:
        raise ValueError(f"No announcement prompt for schema {schema_version}")
    return ANNOUNCEMENT_PROMPTS[schema_version].format(
        text=text,
        today=reference_date.date().isoformat(),
        weekday=reference_date.strftime("%A"),
        year=reference_date.year,
    )


def exam_system_prompt(reference_date: datetime) -> str:
    # .replace: the prompt body contains literal JSON braces
    return EXAM_SYSTEM_PROMPT.replace("{today}", reference_date.date().isoformat())
