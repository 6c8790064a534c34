import asyncio
import logging
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from api.backend import BackendAPI
from api.dependencies import get_access_token, get_backend
from api.metrics import CALENDAR_EVENTS_CREATED_TOTAL, observe_request
from api.responses import failure
from integration.calendar_integration import DEFAULT_TIMEZONE
from llm.schemas import ExamEvent

router = APIRouter()
logger = logging.getLogger(__name__)

REQUIRED_EVENT_FIELDS = ("event_title", "date", "start_time", "end_time")


class ParseIn(BaseModel):
    input: Optional[Any] = None
    user_timezone: Optional[str] = None


class ConfirmIn(BaseModel):
    event: Optional[Dict[str, Any]] = None
    user_timezone: Optional[str] = None


class AnnouncementIn(BaseModel):
    text: Optional[Any] = None


@router.post("/exam-detection/parse")
async def parse_exam(
    payload: ParseIn,
    _token: str = Depends(get_access_token),
    backend: BackendAPI = Depends(get_backend),
):
    start = time.time()
    if not payload.input or not isinstance(payload.input, str):
        observe_request("/exam-detection/parse", "invalid", start)
        return failure(400, "Input must be a non-empty string")

    try:
        result = await asyncio.to_thread(backend.detect_exam, payload.input)
    except Exception as e:
        logger.exception("Parse endpoint error")
        observe_request("/exam-detection/parse", "error", start)
        return failure(500, str(e))

    if not result.success:
        if result.reason == "AI_NOT_CONFIGURED":
            observe_request("/exam-detection/parse", "error", start)
            return failure(500, "AI service not configured", reason="SERVER_ERROR")
        observe_request("/exam-detection/parse", "no_event", start)
        # Not an error: nothing was found
        return failure(
            200,
            "Could not detect an exam/test event in the provided input",
            reason=result.reason,
        )

    observe_request("/exam-detection/parse", "detected", start)
    return {
        "success": True,
        "event": result.event.model_dump(),
        "user_timezone": payload.user_timezone or DEFAULT_TIMEZONE,
    }


@router.post("/exam-detection/confirm")
async def confirm_exam(
    payload: ConfirmIn,
    token: str = Depends(get_access_token),
    backend: BackendAPI = Depends(get_backend),
):
    start = time.time()
    if not payload.event:
        observe_request("/exam-detection/confirm", "invalid", start)
        return failure(400, "Event data is required")

    missing = [f for f in REQUIRED_EVENT_FIELDS if not payload.event.get(f)]
    if missing:
        observe_request("/exam-detection/confirm", "invalid", start)
        return failure(400, "Missing required event fields", missing=missing)

    event_data = {"confidence_score": 1.0, **payload.event}
    try:
        event = ExamEvent.model_validate(event_data)
    except ValidationError as e:
        observe_request("/exam-detection/confirm", "invalid", start)
        return failure(400, "Invalid event data", error=str(e))

    try:
        result = await asyncio.to_thread(backend.confirm_exam, token, event, payload.user_timezone)
    except Exception as e:
        logger.exception("Confirm endpoint error")
        observe_request("/exam-detection/confirm", "error", start)
        return failure(500, "Failed to process request", error=str(e))

    if not result.success:
        observe_request("/exam-detection/confirm", "error", start)
        return failure(500, "Failed to create calendar event", error=result.error)

    CALENDAR_EVENTS_CREATED_TOTAL.inc()
    observe_request("/exam-detection/confirm", "created", start)
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "message": "Event created successfully",
            "event_id": result.event_id,
            "calendar_link": result.calendar_link,
        },
    )


@router.post("/parse-announcement")
async def parse_announcement(
    payload: AnnouncementIn,
    backend: BackendAPI = Depends(get_backend),
):
    start = time.time()
    if not payload.text or not isinstance(payload.text, str):
        observe_request("/parse-announcement", "invalid", start)
        return failure(400, "Text is required")

    logger.info(f"Analyzing announcement: {payload.text[:100]}")
    try:
        events = await asyncio.to_thread(backend.parse_announcement, payload.text)
    except Exception as e:
        logger.exception("Error parsing announcement")
        observe_request("/parse-announcement", "error", start)
        return failure(500, "Failed to parse announcement", error=str(e))

    logger.info(f"Parsed {len(events)} events")
    observe_request("/parse-announcement", "processed", start)
    return {"success": True, "events": [e.model_dump(mode="json") for e in events]}
