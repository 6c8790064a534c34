import os
import logging
from fastapi import APIRouter, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from api import state
from api.metrics import CACHE_ENTRIES
from llm.llm_client import LLM_PROVIDER

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint for container orchestration."""
    return {
        "success": True,
        "status": "healthy",
        "profile": os.getenv("DEPLOYMENT_PROFILE", "unknown"),
        "llm_provider": LLM_PROVIDER,
        "cache_entries": len(state.extraction_cache),
        "push_subscriptions": len(state.push_notifier.subscriptions),
    }


@router.get("/metrics")
async def metrics() -> Response:
    """
    Prometheus scrape endpoint.
    """
    CACHE_ENTRIES.set(len(state.extraction_cache))
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
