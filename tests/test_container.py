"""Tests for container wiring."""

import asyncio

import pytest

from food_lookup.adapters.memory_repositories import InMemoryFoodRecordRepository
from food_lookup.config import Settings
from food_lookup.containers import build_container, build_repositories


def test_build_container_creates_lookup_cache(settings: Settings) -> None:
    container = build_container(settings)

    assert container.lookup_cache is not None
    assert isinstance(
        container.lookup_cache.food_records.repository, InMemoryFoodRecordRepository
    )
    asyncio.run(container.close_resources())


def test_supabase_backend_requires_credentials(settings: Settings) -> None:
    supabase_settings = settings.model_copy(update={"storage_backend": "supabase"})

    with pytest.raises(ValueError, match="Supabase"):
        build_repositories(supabase_settings)
