"""Tests for the food lookup HTTP endpoints."""

from datetime import UTC, datetime

from fastapi.testclient import TestClient

from food_lookup.adapters.memory_repositories import InMemorySearchIndexRepository
from food_lookup.api.app import create_app
from food_lookup.containers import AppContainer
from food_lookup.domain.foods import SearchIndexEntry
from tests.conftest import FakeRemoteFoodLookup


def _client(container: AppContainer) -> TestClient:
    return TestClient(create_app(container))


def test_health_endpoint(container: AppContainer) -> None:
    response = _client(container).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_search_endpoint(container: AppContainer) -> None:
    client = _client(container)

    first = client.get("/food/search", params={"query": "Apple"})
    second = client.get("/food/search", params={"query": "apple"})

    assert first.status_code == 200
    data = first.json()
    assert data["from_cache"] is False
    assert data["first_result"]["id"] == "food_apple"
    assert data["first_result"]["nutrients"]["ENERC_KCAL"] == 52.0
    assert [food["id"] for food in data["all_results"]] == [
        "food_apple",
        "food_red_delicious",
    ]
    assert second.json()["from_cache"] is True


def test_search_endpoint_rejects_empty_query(container: AppContainer) -> None:
    response = _client(container).get("/food/search", params={"query": "  "})

    assert response.status_code == 400


def test_search_endpoint_reports_upstream_outage(
    container: AppContainer, remote: FakeRemoteFoodLookup
) -> None:
    remote.fail = True

    response = _client(container).get("/food/search", params={"query": "apple"})

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "5"


def test_autocomplete_endpoint(container: AppContainer) -> None:
    client = _client(container)
    client.get("/food/search", params={"query": "apple"})

    response = client.get("/food/autocomplete", params={"query": "ap"})
    short = client.get("/food/autocomplete", params={"query": "a"})

    assert response.status_code == 200
    assert response.json() == {"suggestions": ["apple"]}
    assert short.json() == {"suggestions": []}


def test_nutrition_endpoint(
    container: AppContainer, remote: FakeRemoteFoodLookup
) -> None:
    client = _client(container)

    first = client.get("/food/nutrition/food_apple")
    second = client.get("/food/nutrition/food_apple")

    assert first.status_code == 200
    data = first.json()
    assert data["food_id"] == "food_apple"
    assert data["detail"]["totalNutrients"]["CHOCDF"]["quantity"] == 13.8
    assert data["food"]["has_full_detail"] is True
    assert data["from_cache"] is False
    assert second.json()["from_cache"] is True
    assert remote.detail_calls == ["food_apple"]


def test_barcode_endpoint_rejects_non_digits(container: AppContainer) -> None:
    response = _client(container).get("/food/barcode/abc")

    assert response.status_code == 400


def test_cache_stats_requires_admin_token(container: AppContainer) -> None:
    client = _client(container)
    client.get("/food/search", params={"query": "apple"})

    unauthorized = client.get("/food/cache/stats")
    wrong = client.get("/food/cache/stats", headers={"X-Admin-Token": "nope"})
    response = client.get(
        "/food/cache/stats", headers={"X-Admin-Token": "admin-token"}
    )

    assert unauthorized.status_code == 401
    assert wrong.status_code == 401
    assert response.status_code == 200
    data = response.json()
    assert data["total_records"] == 2
    assert data["total_search_terms"] == 1
    assert data["full_detail_hit_ratio"] == 0.0
    assert data["top_search_terms"][0]["key"] == "apple"


def test_autocomplete_endpoint_caps_suggestions(
    container: AppContainer, index_repository: InMemorySearchIndexRepository
) -> None:
    for n in range(15):
        index_repository.entries[f"apple {n}"] = SearchIndexEntry(
            term=f"apple {n}",
            resolved_ids=[],
            usage_count=n + 1,
            last_used_at=datetime.now(tz=UTC),
        )

    response = _client(container).get(
        "/food/autocomplete", params={"query": "apple", "limit": 50}
    )

    assert response.status_code == 200
    assert len(response.json()["suggestions"]) == 10
