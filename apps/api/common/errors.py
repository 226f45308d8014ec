"""
Shared API error handlers producing `{success: false, error, code}` payloads.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence, cast

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse

log = logging.getLogger(__name__)

_CODE_BY_STATUS: Mapping[int, str] = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    422: "validation_error",
}


def register_api_error_handlers(*, app: FastAPI) -> None:
    """
    Register global API handlers for HTTP, validation and unexpected errors.

    Args:
        app: FastAPI application instance.
    Returns:
        None.
    Assumptions:
        Handlers are installed once during application startup.
    Raises:
        ValueError: If `app` dependency is missing.
    Side Effects:
        Mutates FastAPI exception-handler registry.
    """
    if app is None:  # type: ignore[truthy-bool]
        raise ValueError("register_api_error_handlers requires app")

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)


def http_exception_handler(_request: Request, error: Exception) -> JSONResponse:
    """
    Render `HTTPException` as top-level JSON payload.

    Mapping details raised by routes are returned as-is, string details are wrapped
    into the `{success, error, code}` envelope.

    Args:
        _request: Starlette request object (unused).
        error: Raised HTTP exception.
    Returns:
        JSONResponse: Response with exception status code and headers.
    Assumptions:
        Mapping details are already JSON-compatible.
    Raises:
        None.
    Side Effects:
        None.
    """
    http_error = cast(StarletteHTTPException, error)
    detail = http_error.detail
    if isinstance(detail, Mapping):
        content: dict[str, Any] = dict(detail)
    else:
        content = {
            "success": False,
            "error": str(detail),
            "code": _CODE_BY_STATUS.get(http_error.status_code, "http_error"),
        }
    return JSONResponse(
        status_code=http_error.status_code,
        content=content,
        headers=getattr(http_error, "headers", None),
    )


def request_validation_error_handler(_request: Request, error: Exception) -> JSONResponse:
    """
    Convert FastAPI RequestValidationError to canonical `validation_error` payload.

    Args:
        _request: Starlette request object (unused).
        error: Raised validation exception from FastAPI/Pydantic.
    Returns:
        JSONResponse: HTTP 422 payload with deterministically sorted `details.errors` list.
    Assumptions:
        Validation errors include `loc`, `type`, and `msg` attributes.
    Raises:
        None.
    Side Effects:
        None.
    """
    validation_error = cast(RequestValidationError, error)
    normalized_errors = _sorted_validation_errors(raw_errors=validation_error.errors())
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": "Validation failed",
            "code": "validation_error",
            "details": {"errors": normalized_errors},
        },
    )


def unexpected_error_handler(request: Request, error: Exception) -> JSONResponse:
    """
    Log unexpected exception and return opaque 500 payload.

    Args:
        request: Starlette request object.
        error: Unhandled exception.
    Returns:
        JSONResponse: HTTP 500 payload without exception details.
    Assumptions:
        None.
    Raises:
        None.
    Side Effects:
        Writes exception traceback to log.
    """
    log.exception(
        "unhandled api error method=%s path=%s error_type=%s",
        request.method,
        request.url.path,
        type(error).__name__,
    )
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error.",
            "code": "internal_error",
        },
    )


def _sorted_validation_errors(*, raw_errors: Any) -> list[dict[str, str]]:
    """
    Convert raw validation errors into deterministic list sorted by path, code, and message.

    Args:
        raw_errors: Raw iterable from FastAPI validation subsystem.
    Returns:
        list[dict[str, str]]: Sorted normalized validation items.
    Assumptions:
        Unknown raw shapes are stringified for deterministic payload stability.
    Raises:
        None.
    Side Effects:
        None.
    """
    if not isinstance(raw_errors, Sequence) or isinstance(raw_errors, (str, bytes, bytearray)):
        return []

    normalized_items: list[dict[str, str]] = []
    for raw_error in raw_errors:
        if not isinstance(raw_error, Mapping):
            normalized_items.append(
                {
                    "path": "unknown",
                    "code": "validation_error",
                    "message": str(raw_error),
                }
            )
            continue
        normalized_items.append(
            {
                "path": _normalize_error_path(loc=raw_error.get("loc")),
                "code": _normalize_error_code(raw_type=raw_error.get("type")),
                "message": str(raw_error.get("msg", "Validation error")),
            }
        )

    return sorted(
        normalized_items,
        key=lambda item: (item["path"], item["code"], item["message"]),
    )


def _normalize_error_path(*, loc: Any) -> str:
    """
    Convert FastAPI/Pydantic `loc` tuple into dot-delimited path string, e.g. `body.days`.
    """
    if isinstance(loc, Sequence) and not isinstance(loc, (str, bytes, bytearray)):
        path_parts = [str(part) for part in loc]
        if path_parts:
            return ".".join(path_parts)
    if loc is None:
        return "unknown"
    return str(loc)


def _normalize_error_code(*, raw_type: Any) -> str:
    if raw_type is None:
        return "validation_error"
    normalized = str(raw_type).strip().lower()
    if not normalized:
        return "validation_error"
    if normalized == "missing" or normalized.endswith(".missing"):
        return "required"
    return normalized
