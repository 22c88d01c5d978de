"""FastAPI application factory for the ranked list reference service.

Wires logging, problem+json exception handlers and the API routers. Ranking
logic lives in ``ranked_list/logic/`` and route handlers in
``ranked_list/routes/``.
"""

from __future__ import annotations

import logging
import os

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from ranked_list.db.base import get_engine
from ranked_list.errors import RankedListError
from ranked_list.http.problem import (
    handle_http_exception,
    handle_ranked_list_error,
    handle_request_validation_error,
    handle_unexpected_error,
)
from ranked_list.logging_setup import configure_logging
from ranked_list.models.todo import Base
from ranked_list.routes import api_router

logger = logging.getLogger(__name__)


def _auto_create_schema() -> bool:
    return os.getenv("AUTO_CREATE_SCHEMA", "1").strip().lower() not in {"0", "false", "no"}


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Ranked List Service", version="0.1.0")

    if _auto_create_schema():
        engine = get_engine()
        Base.metadata.create_all(engine)
        logger.info("schema_ready dialect=%s", engine.dialect.name)

    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(RankedListError, handle_ranked_list_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health", summary="Liveness probe")
    def health() -> dict:
        return {"status": "ok"}

    return app


__all__ = ["create_app"]
