"""Uniform error payloads for the HTTP surface.

Every failure leaves the API as ``{"error": <message>, "request_id": <id>}`` so
the timeline client can map it by status class alone.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lineup.core.middleware import REQUEST_ID_HEADER

logger = logging.getLogger(__name__)


def _get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None) or request.headers.get(REQUEST_ID_HEADER)


def _error_payload(message: str, request_id: str | None, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"error": message, "request_id": request_id}
    payload.update({key: value for key, value in extra.items() if value is not None})
    return payload


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail
    extra: dict[str, Any] = {}
    if isinstance(detail, dict):
        message = str(detail.get("message") or "Request failed")
        extra = {key: value for key, value in detail.items() if key != "message"}
    else:
        message = str(detail) if detail else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(_error_payload(message, _get_request_id(request), **extra)),
        headers=getattr(exc, "headers", None),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg") or "Invalid request"
    if location:
        message = f"{location}: {message}"
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder(
            _error_payload(message, _get_request_id(request), details=[{"loc": e.get("loc"), "msg": e.get("msg")} for e in errors])
        ),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_payload("Internal server error", _get_request_id(request)),
    )


def install_error_handling(app: FastAPI) -> None:
    """Register the uniform error handlers on ``app``."""
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
