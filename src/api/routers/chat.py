import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from aggregation.search import search_items
from api import state
from api.backend import BackendAPI
from api.dependencies import get_backend, get_chat_store, get_session_key
from api.responses import failure
from storage.chat_transcript_store import ChatTranscriptStore

router = APIRouter()
logger = logging.getLogger(__name__)

NO_MATCHES_REPLY = (
    "I searched your classroom but couldn't find any exact matches. "
    "Try searching for just the course name or a broader topic."
)
FALLBACK_REPLY = "I'm not sure what you mean. Try asking for materials, assignments, or upcoming tests."


class MessageIn(BaseModel):
    message: Optional[str] = None


@router.post("/chat-intent")
async def chat_intent(payload: MessageIn, backend: BackendAPI = Depends(get_backend)):
    if not payload.message or not payload.message.strip():
        return failure(400, "Message is required")

    intent = await asyncio.to_thread(backend.classify_intent, payload.message)
    return {"success": True, **intent.model_dump()}


@router.post("/chat/search")
async def chat_search(
    payload: MessageIn,
    session: str = Depends(get_session_key),
    backend: BackendAPI = Depends(get_backend),
    store: ChatTranscriptStore = Depends(get_chat_store),
):
    if not payload.message or not payload.message.strip():
        return failure(400, "Message is required")

    store.append(session, "user", payload.message)
    intent = await asyncio.to_thread(backend.classify_intent, payload.message)

    results = []
    if intent.intent == "greeting":
        reply = intent.reply or "Hello! How can I help you study today?"
    elif intent.intent == "search" and intent.criteria is not None:
        found = search_items(state.latest_items.get(session, []), intent.criteria)
        results = [r.model_dump(mode="json") for r in found]
        reply = f"I found {len(results)} items for you:" if results else NO_MATCHES_REPLY
    else:
        reply = intent.reply or FALLBACK_REPLY

    store.append(session, "assistant", reply, results=results)
    logger.info(f"Chat search ({intent.intent}) returned {len(results)} results")
    return {"success": True, "intent": intent.intent, "reply": reply, "results": results}


@router.get("/chat/history")
async def chat_history(
    session: str = Depends(get_session_key),
    store: ChatTranscriptStore = Depends(get_chat_store),
) -> dict:
    return {"success": True, "messages": store.load(session)}


@router.delete("/chat/history")
async def clear_chat_history(
    session: str = Depends(get_session_key),
    store: ChatTranscriptStore = Depends(get_chat_store),
) -> dict:
    return {"success": True, "messages": store.clear(session)}
