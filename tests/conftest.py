"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field

import pytest

from food_lookup.adapters.memory_repositories import (
    InMemoryFoodRecordRepository,
    InMemorySearchIndexRepository,
)
from food_lookup.config import Settings
from food_lookup.containers import AppContainer
from food_lookup.domain.errors import UpstreamUnavailable
from food_lookup.domain.foods import FoodRecord, SearchIndexEntry
from food_lookup.domain.lookups import CacheEvent
from food_lookup.domain.remote import RemoteFoodDetail, RemoteFoodItem
from food_lookup.services.lookup_cache import LookupCache
from food_lookup.services.remote_lookup import RemoteFoodLookup


def make_item(
    food_id: str,
    label: str,
    nutrients: dict[str, float] | None = None,
    **extra: object,
) -> RemoteFoodItem:
    """Build a remote search item for tests."""
    return RemoteFoodItem(
        food_id=food_id,
        label=label,
        nutrients=nutrients if nutrients is not None else {"ENERC_KCAL": 52.0},
        **extra,
    )


def make_detail(
    food_id: str,
    nutrients: dict[str, float],
    label: str | None = None,
    **extra: object,
) -> RemoteFoodDetail:
    """Build a remote detail payload for tests."""
    raw = {
        "totalNutrients": {
            code: {"label": code, "quantity": quantity, "unit": "g"}
            for code, quantity in nutrients.items()
        }
    }
    return RemoteFoodDetail(
        food_id=food_id, label=label, nutrients=nutrients, raw=raw, **extra
    )


@dataclass
class FakeRemoteFoodLookup(RemoteFoodLookup):
    """Remote lookup with canned responses that records every call."""

    search_results: dict[str, list[RemoteFoodItem]] = field(default_factory=dict)
    barcode_results: dict[str, list[RemoteFoodItem]] = field(default_factory=dict)
    details: dict[str, RemoteFoodDetail] = field(default_factory=dict)
    search_calls: list[str] = field(default_factory=list)
    barcode_calls: list[str] = field(default_factory=list)
    detail_calls: list[str] = field(default_factory=list)
    fail: bool = False
    delay_seconds: float = 0.0

    async def search_by_term(self, term: str) -> list[RemoteFoodItem]:
        self.search_calls.append(term)
        await self._maybe_wait_or_fail()
        return list(self.search_results.get(term, []))

    async def search_by_barcode(self, upc: str) -> list[RemoteFoodItem]:
        self.barcode_calls.append(upc)
        await self._maybe_wait_or_fail()
        return list(self.barcode_results.get(upc, []))

    async def get_detail(self, food_id: str) -> RemoteFoodDetail:
        self.detail_calls.append(food_id)
        await self._maybe_wait_or_fail()
        detail = self.details.get(food_id)
        if detail is None:
            raise UpstreamUnavailable(f"No detail for {food_id}")
        return detail

    async def _maybe_wait_or_fail(self) -> None:
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.fail:
            raise UpstreamUnavailable("Remote is down")


@dataclass
class FailingFoodRecordRepository(InMemoryFoodRecordRepository):
    """Food repository whose writes always fail."""

    def insert_if_absent(self, record: FoodRecord) -> bool:
        raise RuntimeError("food_cache unavailable")

    def replace_if_version(self, record: FoodRecord, expected_version: int) -> bool:
        raise RuntimeError("food_cache unavailable")


@dataclass
class FailingSearchIndexRepository(InMemorySearchIndexRepository):
    """Search index repository whose writes always fail."""

    def insert_if_absent(self, entry: SearchIndexEntry) -> bool:
        raise RuntimeError("search_term_cache unavailable")

    def replace_if_version(
        self, entry: SearchIndexEntry, expected_version: int
    ) -> bool:
        raise RuntimeError("search_term_cache unavailable")


class ExplodingRepository:
    """Repository stand-in that fails on any access."""

    def __getattr__(self, name: str) -> object:
        raise AssertionError(f"Unexpected repository access: {name}")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        admin_token="admin-token",
        edamam_app_id="app-id",
        edamam_app_key="app-key",
        storage_backend="memory",
    )


@pytest.fixture
def food_repository() -> InMemoryFoodRecordRepository:
    return InMemoryFoodRecordRepository()


@pytest.fixture
def index_repository() -> InMemorySearchIndexRepository:
    return InMemorySearchIndexRepository()


@pytest.fixture
def remote() -> FakeRemoteFoodLookup:
    return FakeRemoteFoodLookup(
        search_results={
            "apple": [
                make_item(
                    "food_apple",
                    "Apple",
                    {"ENERC_KCAL": 52.0, "PROCNT": 0.26, "FAT": 0.17},
                    category="Generic foods",
                ),
                make_item("food_red_delicious", "Red Delicious", {"ENERC_KCAL": 59.0}),
            ]
        },
        details={
            "food_apple": make_detail(
                "food_apple",
                {
                    "ENERC_KCAL": 52.0,
                    "PROCNT": 0.26,
                    "FAT": 0.17,
                    "CHOCDF": 13.8,
                    "FIBTG": 2.4,
                },
                label="apple",
                health_labels=["VEGAN", "VEGETARIAN"],
            )
        },
    )


@pytest.fixture
def events() -> list[CacheEvent]:
    return []


@pytest.fixture
def lookup_cache(
    remote: FakeRemoteFoodLookup,
    food_repository: InMemoryFoodRecordRepository,
    index_repository: InMemorySearchIndexRepository,
    events: list[CacheEvent],
) -> LookupCache:
    cache = LookupCache.create(remote, food_repository, index_repository)
    cache.listeners.append(events.append)
    return cache


@pytest.fixture
def container(settings: Settings, lookup_cache: LookupCache) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        lookup_cache=lookup_cache,
        close_resources=close_resources,
    )
