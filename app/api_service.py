from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import settings
from ops.structured_logger import setup_logging
from utils.request_context import clear_request_id, new_request_id, set_request_id

from app.routers.health import router as health_router
from app.routers.manual_entries import router as manual_entries_router
from app.routers.scan import get_scan_service, router as scan_router

setup_logging(settings.LOG_LEVEL)

log = logging.getLogger("ndcscan.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if get_scan_service.cache_info().currsize:
        await get_scan_service().aclose()
        get_scan_service.cache_clear()


app = FastAPI(title="NDC Scan API", version="1.0.0", lifespan=lifespan)


def _get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get("x-request-id") or ""


def _error_response(
    request: Request,
    status_code: int,
    event: str,
    content: Dict[str, Any],
    level: int = logging.WARNING,
    exc_info: bool = False,
    **fields: Any,
) -> JSONResponse:
    """Log one request-scoped event and answer with a JSON body carrying the request id."""
    rid = _get_request_id(request)
    log.log(
        level,
        event,
        extra={
            "extra": {
                "event": event,
                "status_code": status_code,
                "path": request.url.path,
                "method": request.method,
                "request_id": rid,
                **fields,
            }
        },
        exc_info=exc_info,
    )
    return JSONResponse(
        status_code=status_code,
        content={**content, "request_id": rid, "revision": os.getenv("K_REVISION") or ""},
    )


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    rid = request.headers.get("x-request-id") or new_request_id("req")
    request.state.request_id = rid
    set_request_id(rid)
    try:
        response = await call_next(request)
    finally:
        clear_request_id()
    response.headers["X-Request-Id"] = rid
    return response


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return _error_response(
        request,
        exc.status_code,
        "http_exception",
        {"detail": exc.detail},
        detail=exc.detail,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _error_response(request, 422, "validation_error", {"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    return _error_response(
        request,
        500,
        "internal_unhandled_exception",
        {"error": "internal_unhandled_exception"},
        level=logging.ERROR,
        exc_info=True,
        error_type=type(exc).__name__,
        message=str(exc),
    )


# Browser-based scanner UI calls these endpoints directly.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(health_router, tags=["health"])
app.include_router(scan_router, prefix="/api", tags=["scan"])
app.include_router(manual_entries_router, prefix="/api", tags=["manual-entries"])
