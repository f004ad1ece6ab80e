"""Exception handler for structured error responses."""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from ..exceptions import LinkshelfException

logger = logging.getLogger(__name__)


async def linkshelf_exception_handler(request: Request, exc: LinkshelfException) -> JSONResponse:
    """Log a LinkshelfException and render it as ``{"error", "message", "details"}``.

    Client errors (4xx) are logged at warning level, server errors at error level.
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"LinkshelfException: {exc.error_code.value}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
            "status_code": exc.status_code
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )
