"""Exception handlers translating errors into bilingual JSON responses."""

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse

from src.domains.ratings.errors import RatingError, RatingErrorKind

logger = structlog.get_logger()


async def rating_error_handler(request: Request, exc: RatingError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")

    content: dict = {
        "success": False,
        "code": exc.code,
        "message": exc.message,
        "message_ro": exc.message_ro,
        "request_id": request_id,
    }
    if exc.field_errors:
        content["errors"] = [e.model_dump() for e in exc.field_errors]

    if exc.kind in (RatingErrorKind.PERSISTENCE, RatingErrorKind.CALCULATION):
        logger.error(
            "rating_request_failed",
            request_id=request_id,
            kind=exc.kind.value,
            operation=exc.operation,
            error=exc.message,
        )
        # Internal details stay in the logs
        content["message"] = "An unexpected error occurred"
        content["message_ro"] = "A apărut o eroare neașteptată"
    else:
        logger.warning(
            "rating_request_rejected",
            request_id=request_id,
            kind=exc.kind.value,
            path=request.url.path,
            fields=[e.field for e in exc.field_errors],
        )

    return JSONResponse(status_code=exc.status_code, content=content)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")

    if isinstance(exc, RatingError):
        return await rating_error_handler(request, exc)

    logger.exception("unhandled_exception", request_id=request_id, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "message_ro": "A apărut o eroare neașteptată",
            "request_id": request_id,
        },
    )
