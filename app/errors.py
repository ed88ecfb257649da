"""Exception handlers mapping service errors onto HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from yieldbridge.services.errors import OrderError, StoreError

logger: logging.Logger = logging.getLogger(__name__)


def _error_fields(exc: RequestValidationError) -> list[str]:
    fields: list[str] = []
    for err in exc.errors():
        names = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        if names and names[0] not in fields:
            fields.append(names[0])
    return fields


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(OrderError)
    async def _on_order_error(request: Request, exc: OrderError) -> JSONResponse:
        logger.info("Rejected order request: %s %s", exc.message, exc.fields)
        return JSONResponse(
            status_code=400,
            content={"error": exc.message, "fields": exc.fields},
        )

    @app.exception_handler(RequestValidationError)
    async def _on_request_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("Rejected malformed request to %s", request.url.path)
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "fields": _error_fields(exc)},
        )

    @app.exception_handler(StoreError)
    async def _on_store_error(request: Request, exc: StoreError) -> JSONResponse:
        logger.error("Store failure: %s", exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(Exception)
    async def _on_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc), "type": type(exc).__name__},
        )
