from typing import Any

from fastapi.responses import JSONResponse

REASONS = {
    400: "INVALID_INPUT",
    401: "UNAUTHORIZED",
    404: "NOT_FOUND",
    500: "INTERNAL_ERROR",
}


def failure(status_code: int, message: str, reason: str | None = None, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "reason": reason or REASONS.get(status_code, "ERROR"),
            "message": message,
            **extra,
        },
    )
