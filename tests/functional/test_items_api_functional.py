"""Functional tests for the to-do item ranking endpoints.

The app runs against the shared in-memory database configured in conftest;
each test works on its own list id so state never leaks between tests.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List

import pytest
from fastapi.testclient import TestClient

from ranked_list.http.problem import PROBLEM_MEDIA_TYPE
from ranked_list.main import create_app

API = "/api/v1"


@pytest.fixture(scope="module")
def client() -> TestClient:
    return TestClient(create_app())


def _create(client: TestClient, list_id: int, title: str, **extra) -> dict:
    resp = client.post(f"{API}/lists/{list_id}/items", json={"title": title, **extra})
    assert resp.status_code == 201, resp.text
    return resp.json()


def _titles(client: TestClient, list_id: int) -> List[str]:
    resp = client.get(f"{API}/lists/{list_id}/items")
    assert resp.status_code == 200, resp.text
    return [item["title"] for item in resp.json()["items"]]


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_created_items_append_to_the_list(client: TestClient) -> None:
    created = [_create(client, 101, title) for title in ("a", "b", "c")]
    assert [Decimal(item["rank"]) for item in created] == [512, 1024, 1536]
    assert _titles(client, 101) == ["a", "b", "c"]
    assert _titles(client, 9101) == []


def test_move_above_and_below(client: TestClient) -> None:
    a, b, c = (_create(client, 102, title) for title in ("a", "b", "c"))
    resp = client.post(f"{API}/items/{c['id']}/move", json={"above": a["id"]})
    assert resp.status_code == 200, resp.text
    assert Decimal(resp.json()["rank"]) == 256
    assert _titles(client, 102) == ["c", "a", "b"]

    resp = client.post(f"{API}/items/{c['id']}/move", json={"below": b["id"]})
    assert resp.status_code == 200, resp.text
    assert _titles(client, 102) == ["a", "b", "c"]


def test_increase_and_decrease(client: TestClient) -> None:
    _, _, c = (_create(client, 103, title) for title in ("a", "b", "c"))
    resp = client.post(f"{API}/items/{c['id']}/increase", params={"count": 2})
    assert resp.status_code == 200, resp.text
    assert _titles(client, 103) == ["c", "a", "b"]

    resp = client.post(f"{API}/items/{c['id']}/decrease")
    assert resp.status_code == 200, resp.text
    assert Decimal(resp.json()["rank"]) == 768
    assert _titles(client, 103) == ["a", "c", "b"]


def test_duplicate_ranks_are_spread_and_list_can_be_renumbered(client: TestClient) -> None:
    for title in ("a", "b", "c"):
        _create(client, 104, title, rank="100")
    ranks = [Decimal(item["rank"]) for item in client.get(f"{API}/lists/104/items").json()["items"]]
    assert len(set(ranks)) == 3

    resp = client.post(f"{API}/lists/104/spread")
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"renumbered": 3}
    ranks = [Decimal(item["rank"]) for item in client.get(f"{API}/lists/104/items").json()["items"]]
    assert ranks == [1024, 2048, 3072]


def test_limit_returns_top_items(client: TestClient) -> None:
    for title in ("a", "b", "c"):
        _create(client, 105, title)
    resp = client.get(f"{API}/lists/105/items", params={"limit": 2})
    assert [item["title"] for item in resp.json()["items"]] == ["a", "b"]


def test_unknown_item_is_problem_not_found(client: TestClient) -> None:
    resp = client.post(f"{API}/items/987654/increase")
    assert resp.status_code == 404
    assert resp.headers["content-type"].startswith(PROBLEM_MEDIA_TYPE)
    body = resp.json()
    assert body["code"] == "RESOURCE_NOT_FOUND"
    assert body["status"] == 404


def test_move_requires_exactly_one_target(client: TestClient) -> None:
    a, b = (_create(client, 106, title) for title in ("a", "b"))
    resp = client.post(f"{API}/items/{a['id']}/move", json={"above": b["id"], "below": b["id"]})
    assert resp.status_code == 422
    assert resp.headers["content-type"].startswith(PROBLEM_MEDIA_TYPE)

    resp = client.post(f"{API}/items/{a['id']}/increase", params={"count": 0})
    assert resp.status_code == 422


def test_move_across_lists_is_a_conflict(client: TestClient) -> None:
    a = _create(client, 108, "a", rank="100")
    other = _create(client, 109, "other", rank="5000")
    resp = client.post(f"{API}/items/{other['id']}/move", json={"above": a["id"]})
    assert resp.status_code == 409
    assert resp.headers["content-type"].startswith(PROBLEM_MEDIA_TYPE)
    body = resp.json()
    assert body["code"] == "RANK_PARTITION_MISMATCH"
    assert body["status"] == 409
    assert [Decimal(item["rank"]) for item in client.get(f"{API}/lists/109/items").json()["items"]] == [5000]


def test_fractional_rank_is_returned_as_exact_decimal(client: TestClient) -> None:
    a = _create(client, 107, "a", rank="1")
    b = _create(client, 107, "b", rank="2")
    c = _create(client, 107, "c")
    resp = client.post(f"{API}/items/{c['id']}/move", json={"above": b["id"]})
    assert resp.status_code == 200, resp.text
    assert isinstance(resp.json()["rank"], str)
    assert Decimal(resp.json()["rank"]) == Decimal("1.5")
    assert _titles(client, 107) == [a["title"], c["title"], b["title"]]
