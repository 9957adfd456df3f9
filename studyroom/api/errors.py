import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from studyroom.core.exceptions import (
    ConflictError,
    NotFoundError,
    ReservationError,
    StateError,
    ValidationError,
)
from studyroom.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

# Category → HTTP status; checked in order, first match wins
STATUS_BY_CATEGORY = (
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ConflictError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (StateError, status.HTTP_409_CONFLICT),
)


def status_for(exc: ReservationError) -> int:
    for category, code in STATUS_BY_CATEGORY:
        if isinstance(exc, category):
            return code
    return status.HTTP_400_BAD_REQUEST


async def reservation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    code = status_for(exc)
    logger.debug("%s %s rejected: %s", request.method, request.url.path, exc)
    body = ErrorResponse(error=type(exc).__name__, message=exc.message)
    return JSONResponse(status_code=code, content=body.model_dump())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ReservationError, reservation_error_handler)
