"""RFC 7807 Problem Details helpers."""
from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .domain_errors import DomainError, InternalError, ValidationError

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"


def _status_phrase(status_code: int, fallback: str = "Domain Error") -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return fallback


def _problem_type(code: str) -> str:
    slug = code.lower().replace("_", "-")
    return f"{settings.PROBLEM_TYPE_BASE_URL}/{slug}"


def build_problem_details_response(exc: DomainError, *, instance: str | None = None) -> JSONResponse:
    """Render DomainError as RFC 7807 payload with stable domain code."""
    payload: dict[str, Any] = {
        "type": _problem_type(exc.code),
        "title": _status_phrase(exc.http_status),
        "status": exc.http_status,
        "detail": exc.message,
        "code": exc.code,
    }
    if instance is not None:
        payload["instance"] = instance
    if exc.errors:
        payload["errors"] = exc.errors
    if exc.details is not None:
        payload["details"] = exc.details

    return JSONResponse(
        status_code=exc.http_status,
        content=payload,
        media_type=PROBLEM_MEDIA_TYPE,
    )


def _field_path(loc: tuple | list) -> str:
    # Drop the "body"/"query"/"path" prefix FastAPI puts in front of field names.
    parts = [str(part) for part in loc]
    if parts and parts[0] in {"body", "query", "path", "header"}:
        parts = parts[1:]
    return ".".join(parts) or "request"


def validation_errors_to_map(errors: list[dict[str, Any]]) -> dict[str, str]:
    """Flatten pydantic error entries to a ``{"field.path": "message"}`` map."""
    result: dict[str, str] = {}
    for error in errors:
        path = _field_path(error.get("loc", ()))
        message = str(error.get("msg", "Invalid value"))
        # pydantic prefixes custom validator messages with "Value error, ".
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        result.setdefault(path, message)
    return result


def _request_instance(request: Request) -> str:
    return request.url.path


async def _handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("Domain error %s on %s: %s", exc.code, request.url.path, exc.message)
    return build_problem_details_response(exc, instance=_request_instance(request))


async def _handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = validation_errors_to_map(list(exc.errors()))
    detail = "Invalid request body"
    if len(errors) == 1:
        detail = next(iter(errors.values()))
    problem = ValidationError(detail, code="REQUEST_VALIDATION_FAILED", errors=errors)
    return build_problem_details_response(problem, instance=_request_instance(request))


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    problem = DomainError(
        code=f"HTTP_{exc.status_code}",
        http_status=exc.status_code,
        message=str(exc.detail) if exc.detail else _status_phrase(exc.status_code, "Error"),
    )
    response = build_problem_details_response(problem, instance=_request_instance(request))
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return build_problem_details_response(InternalError(), instance=_request_instance(request))


def register_problem_handlers(app: FastAPI) -> None:
    """Route every error the API can raise through problem+json rendering."""
    app.add_exception_handler(DomainError, _handle_domain_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(Exception, _handle_unexpected_error)
