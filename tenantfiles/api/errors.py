"""Exception handlers rendering service errors as ``ErrorResponse`` bodies."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from tenantfiles.core.exceptions import TenantFilesError
from tenantfiles.core.structured_logging import log_json
from tenantfiles.schemas.errors import ErrorResponse

logger = logging.getLogger(__name__)


async def tenant_files_error_handler(request: Request, exc: TenantFilesError) -> JSONResponse:
    if exc.status_code >= 500:
        log_json(
            logger,
            logging.ERROR,
            "service_error",
            path=request.url.path,
            error=exc.error,
            message=exc.message,
        )
    body = ErrorResponse(error=exc.error, message=exc.message, details=exc.details)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Answer 500 ``internal_error`` without leaking the exception text."""
    log_json(
        logger,
        logging.ERROR,
        "unhandled_exception",
        method=request.method,
        path=request.url.path,
        exception=exc.__class__.__name__,
        error=str(exc),
    )
    body = ErrorResponse(error="internal_error", message="Internal server error")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(exclude_none=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TenantFilesError, tenant_files_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
