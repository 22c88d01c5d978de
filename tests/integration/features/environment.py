"""Behave environment hooks for ranked list integration tests.

When ``TEST_BASE_URL`` is set the scenarios run over HTTP against that live
service. Otherwise the app is built in-process and driven through FastAPI's
``TestClient`` against ``TEST_DATABASE_URL`` (an in-memory SQLite database by
default), so the suite runs without any external services.
"""

from __future__ import annotations

import os
from typing import Any

import httpx


def before_all(context: Any) -> None:
    context.api_prefix = os.getenv("TEST_API_PREFIX", "/api/v1")
    base_url = os.getenv("TEST_BASE_URL", "").strip().rstrip("/")
    if base_url:
        context.client = httpx.Client(base_url=base_url, timeout=10.0)
        context.test_base_url = base_url
        return

    os.environ.setdefault("TEST_DATABASE_URL", "sqlite+pysqlite:///:memory:")
    os.environ.setdefault("AUTO_CREATE_SCHEMA", "1")
    from fastapi.testclient import TestClient

    from ranked_list.main import create_app

    context.client = TestClient(create_app())
    context.test_base_url = str(context.client.base_url)


def before_scenario(context: Any, scenario: Any) -> None:
    context.lists = {}
    context.items = {}
    context.response = None


def after_all(context: Any) -> None:
    client = getattr(context, "client", None)
    if client is not None:
        client.close()
