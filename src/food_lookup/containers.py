"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from food_lookup.adapters.edamam_client import HttpxEdamamClient
from food_lookup.adapters.memory_repositories import (
    InMemoryFoodRecordRepository,
    InMemorySearchIndexRepository,
)
from food_lookup.adapters.supabase_food_record_repository import (
    SupabaseFoodRecordRepository,
)
from food_lookup.adapters.supabase_search_index_repository import (
    SupabaseSearchIndexRepository,
)
from food_lookup.config import Settings, parse_storage_backend
from food_lookup.services.food_records import FoodRecordRepository
from food_lookup.services.lookup_cache import LookupCache
from food_lookup.services.remote_lookup import EdamamRemoteLookup
from food_lookup.services.search_index import SearchIndexRepository


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    lookup_cache: LookupCache
    close_resources: Callable[[], Awaitable[None]]


def build_repositories(
    settings: Settings,
) -> tuple[FoodRecordRepository, SearchIndexRepository]:
    """Create the food record and search index repositories."""
    backend = parse_storage_backend(settings.storage_backend)
    if backend == "memory":
        return InMemoryFoodRecordRepository(), InMemorySearchIndexRepository()
    if not settings.supabase_url or not settings.supabase_service_key:
        raise ValueError("Supabase storage requires supabase_url and service key")
    supabase_client = create_client(
        settings.supabase_url, settings.supabase_service_key
    )
    return (
        SupabaseFoodRecordRepository(supabase_client),
        SupabaseSearchIndexRepository(supabase_client),
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    food_repository, index_repository = build_repositories(resolved_settings)
    edamam_client = HttpxEdamamClient.create(
        app_id=resolved_settings.edamam_app_id,
        app_key=resolved_settings.edamam_app_key,
        base_url=resolved_settings.edamam_base_url,
        timeout_seconds=resolved_settings.edamam_timeout_seconds,
    )
    remote = EdamamRemoteLookup(
        client=edamam_client,
        timeout_seconds=resolved_settings.edamam_timeout_seconds,
        retry_attempts=resolved_settings.edamam_retry_attempts,
        retry_delay_seconds=resolved_settings.edamam_retry_delay_seconds,
        detail_quantity=resolved_settings.edamam_detail_quantity,
    )
    lookup_cache = LookupCache.create(
        remote,
        food_repository,
        index_repository,
        max_write_attempts=resolved_settings.max_write_attempts,
        debug=resolved_settings.debug,
    )

    async def close_resources() -> None:
        await lookup_cache.wait_for_background()
        await edamam_client.close()

    return AppContainer(
        settings=resolved_settings,
        lookup_cache=lookup_cache,
        close_resources=close_resources,
    )
