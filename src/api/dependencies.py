import hashlib
from typing import Optional

from fastapi import Depends, Header, HTTPException

from api import state
from api.backend import BackendAPI
from integration.push_notifications import PushNotifier
from storage.chat_transcript_store import ChatTranscriptStore


def get_access_token(authorization: Optional[str] = Header(None)) -> str:
    """Bearer token issued by the external OAuth flow."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return token


def get_backend() -> BackendAPI:
    return state.backend


def get_chat_store() -> ChatTranscriptStore:
    return state.chat_store


def get_push_notifier() -> PushNotifier:
    return state.push_notifier


def get_session_key(token: str = Depends(get_access_token)) -> str:
    """Stable per-user key derived from the bearer token; the token itself is never stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
