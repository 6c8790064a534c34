import logging
import time

from fastapi import APIRouter, Depends
from googleapiclient.errors import HttpError

from api import state
from api.backend import BackendAPI
from api.dependencies import get_access_token, get_backend, get_session_key
from api.metrics import observe_request
from api.responses import failure

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/dashboard/items")
async def dashboard_items(
    token: str = Depends(get_access_token),
    session: str = Depends(get_session_key),
    backend: BackendAPI = Depends(get_backend),
):
    start = time.time()
    try:
        items = await backend.dashboard_items(token)
    except HttpError as e:
        observe_request("/dashboard/items", "error", start)
        if e.resp.status in (401, 403):
            return failure(401, "Classroom access was denied")
        logger.error(f"Classroom request failed: {e}")
        return failure(500, "Failed to load classroom data")
    except Exception:
        logger.exception("Dashboard aggregation failed")
        observe_request("/dashboard/items", "error", start)
        return failure(500, "Failed to load classroom data")

    state.latest_items[session] = items
    observe_request("/dashboard/items", "processed", start)
    logger.info(f"Aggregated {len(items)} dashboard items")
    return {
        "success": True,
        "items": [i.model_dump(mode="json") for i in items],
        "total": len(items),
    }
