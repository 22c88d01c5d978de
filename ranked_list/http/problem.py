"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and handler callables that produce
application/problem+json responses.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ranked_list.errors import RankedListError
from ranked_list.http.error_mapping import lookup

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem(status: int, title: str, detail: str = "", code: str | None = None) -> dict:
    body: dict = {"title": title, "status": status}
    if detail:
        body["detail"] = detail
    if code:
        body["code"] = code
    return body


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status_code = int(exc.status_code or 500)
    if isinstance(exc.detail, dict):
        detail = exc.detail
    else:
        detail = problem(status_code, "Error", str(exc.detail or ""))
    return JSONResponse(
        detail,
        status_code=status_code,
        media_type=PROBLEM_MEDIA_TYPE,
        headers=dict(exc.headers) if exc.headers else None,
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    body = problem(422, "Invalid Request", "Request validation failed")
    body["errors"] = [
        {"loc": list(err.get("loc", ())), "msg": str(err.get("msg", "")), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(body, status_code=422, media_type=PROBLEM_MEDIA_TYPE)


async def handle_ranked_list_error(request: Request, exc: RankedListError) -> JSONResponse:  # noqa: D401
    mapping = lookup(exc)
    status_code = int(mapping["status"])
    logger.error("ranked_list_error path=%s code=%s", request.url.path, mapping["code"], exc_info=exc)
    return JSONResponse(
        problem(status_code, type(exc).__name__, str(exc), str(mapping["code"])),
        status_code=status_code,
        media_type=PROBLEM_MEDIA_TYPE,
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return JSONResponse(problem(500, "Internal Server Error"), status_code=500, media_type=PROBLEM_MEDIA_TYPE)


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_ranked_list_error",
    "handle_unexpected_error",
]
