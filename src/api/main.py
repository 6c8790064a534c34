import logging
import os

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import state
from api.responses import failure
from api.routers import chat, dashboard, events, ops, push
from llm.llm_client import LLM_PROVIDER

# Logging configuration
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Student Sync")

app.include_router(events.router)
app.include_router(chat.router)
app.include_router(dashboard.router)
app.include_router(push.router)
app.include_router(ops.router)

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return failure(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Rejected request to {request.url.path}: {exc.errors()}")
    return failure(400, "Invalid request body", errors=jsonable_encoder(exc.errors()))


@app.on_event("startup")
async def startup() -> None:
    logger.info(
        f"Student Sync started (LLM provider: {LLM_PROVIDER}, "
        f"cached extractions: {len(state.extraction_cache)})"
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
