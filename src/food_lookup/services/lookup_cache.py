"""Cache-first lookup service fronting the remote food database."""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TypeVar

from food_lookup.domain.errors import CallerInputError
from food_lookup.domain.foods import FoodRecord, normalize_term
from food_lookup.domain.lookups import (
    DANGLING_REFERENCE,
    FOOD_RECORD_WRITE,
    SEARCH_INDEX_WRITE,
    USAGE_BUMP,
    CacheEvent,
    CacheStats,
    DetailResult,
    SearchResult,
    UsageSummary,
)
from food_lookup.domain.remote import RemoteFoodItem
from food_lookup.services.autocomplete import AutocompleteRanker
from food_lookup.services.food_records import (
    FoodRecordRepository,
    FoodRecordStore,
    new_food_record,
)
from food_lookup.services.remote_lookup import RemoteFoodLookup
from food_lookup.services.search_index import SearchIndexRepository, SearchIndexStore

_T = TypeVar("_T")

TOP_USAGE_LIMIT = 10

CacheListener = Callable[[CacheEvent], None]
EvictionHook = Callable[[FoodRecordRepository, SearchIndexRepository], int]

_logger = logging.getLogger(__name__)


@dataclass
class LookupCache:
    """Answers search, autocomplete and nutrition queries cache-first.

    Cache writes that follow a successful remote call are best-effort: a
    failure is logged and reported to ``listeners`` as a ``CacheEvent`` but
    never changes what the caller gets back.
    """

    remote: RemoteFoodLookup
    food_records: FoodRecordStore
    search_index: SearchIndexStore
    ranker: AutocompleteRanker
    listeners: list[CacheListener] = field(default_factory=list)
    eviction_hook: EvictionHook | None = None
    debug: bool = False
    _background: set[asyncio.Task[Any]] = field(
        default_factory=set, init=False, repr=False
    )

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        remote: RemoteFoodLookup,
        food_repository: FoodRecordRepository,
        index_repository: SearchIndexRepository,
        *,
        max_write_attempts: int = 5,
        eviction_hook: EvictionHook | None = None,
        debug: bool = False,
    ) -> "LookupCache":
        """Build a lookup cache over the given repositories."""
        return cls(
            remote=remote,
            food_records=FoodRecordStore(food_repository, max_write_attempts),
            search_index=SearchIndexStore(index_repository, max_write_attempts),
            ranker=AutocompleteRanker(index_repository, food_repository),
            eviction_hook=eviction_hook,
            debug=debug,
        )

    async def search(self, term: str, *, refresh: bool = False) -> SearchResult:
        """Search foods by free text, serving from the index when possible.

        ``refresh`` skips the index and re-populates it from the remote source.
        """
        normalized = normalize_term(term)
        if not normalized:
            raise CallerInputError("Search term must not be empty")

        if not refresh:
            cached = self._search_cached(normalized)
            if cached is not None:
                return cached
        return await self._shielded(self._search_remote(normalized))

    def autocomplete(self, prefix: str, limit: int = 10) -> list[str]:
        """Return ranked suggestions for a partial query."""
        try:
            return self.ranker.suggest(prefix, limit)
        except Exception:
            _logger.exception("Autocomplete lookup failed for %r", prefix)
            return []

    async def nutrition_detail(self, food_id: str) -> DetailResult:
        """Return full nutrition detail, fetching it once per food."""
        food_id = (food_id or "").strip()
        if not food_id:
            raise CallerInputError("Food id must not be empty")

        record = self._read(lambda: self.food_records.get(food_id), food_id)
        if record is not None and record.has_full_detail:
            bumped = self._best_effort(
                USAGE_BUMP, food_id, lambda: self.food_records.touch(food_id)
            )
            if self.debug:
                _logger.info("Nutrition cache hit: food_id=%s", food_id)
            return DetailResult(
                food_id=food_id,
                detail=dict(record.full_detail or {}),
                record=bumped or record,
                from_cache=True,
            )
        return await self._shielded(self._fetch_detail(food_id, record))

    async def lookup_barcode(self, upc: str) -> SearchResult:
        """Resolve a UPC barcode to foods, cache-first."""
        upc = (upc or "").strip()
        if not upc or not upc.isdigit():
            raise CallerInputError("Barcode must be a non-empty string of digits")

        repository = self.food_records.repository
        cached = self._read(lambda: repository.find_by_barcode(upc), upc)
        if cached:
            touch = self.food_records.touch
            records = [
                self._best_effort(USAGE_BUMP, record.id, lambda r=record: touch(r.id))
                or record
                for record in cached
            ]
            return SearchResult(
                first_result=records[0], all_results=records, from_cache=True
            )
        return await self._shielded(self._barcode_remote(upc))

    def cache_stats(self) -> CacheStats:
        """Return counts and top usage for both caches."""
        food_repository = self.food_records.repository
        index_repository = self.search_index.repository
        total_records = food_repository.count()
        with_detail = food_repository.count_with_full_detail()
        ratio = with_detail / total_records if total_records else 0.0
        return CacheStats(
            total_records=total_records,
            total_search_terms=index_repository.count(),
            records_with_full_detail=with_detail,
            full_detail_hit_ratio=ratio,
            top_records=[
                UsageSummary(
                    key=record.id,
                    label=record.display_name,
                    usage_count=record.usage_count,
                    last_used_at=record.last_used_at,
                )
                for record in food_repository.top_by_usage(TOP_USAGE_LIMIT)
            ],
            top_search_terms=[
                UsageSummary(
                    key=entry.term,
                    label=entry.term,
                    usage_count=entry.usage_count,
                    last_used_at=entry.last_used_at,
                )
                for entry in index_repository.top_by_usage(TOP_USAGE_LIMIT)
            ],
        )

    def run_eviction(self) -> int:
        """Run the configured eviction hook; caches never shrink without one."""
        if self.eviction_hook is None:
            return 0
        removed = self.eviction_hook(
            self.food_records.repository, self.search_index.repository
        )
        _logger.info("Cache eviction removed %s entries", removed)
        return removed

    async def wait_for_background(self) -> None:
        """Wait for lookups that outlived their callers."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    def _search_cached(self, term: str) -> SearchResult | None:
        try:
            entry = self.search_index.get(term)
            if entry is None:
                return None
            found = self.food_records.get_many(entry.resolved_ids)
        except Exception:
            _logger.warning(
                "Search index read failed for %r, falling back to remote",
                term,
                exc_info=True,
            )
            return None

        self._best_effort(USAGE_BUMP, term, lambda: self.search_index.touch(term))
        records = []
        for food_id in entry.resolved_ids:
            record = found.get(food_id)
            if record is None:
                _logger.warning(
                    "Search term %r references missing food record %s", term, food_id
                )
                self._emit(
                    CacheEvent(kind=DANGLING_REFERENCE, key=food_id, succeeded=False)
                )
                continue
            records.append(record)
        if self.debug:
            _logger.info("Search cache hit: term=%s results=%s", term, len(records))
        return SearchResult(
            first_result=records[0] if records else None,
            all_results=records,
            from_cache=True,
        )

    async def _search_remote(self, term: str) -> SearchResult:
        items = await self.remote.search_by_term(term)
        records, stored_ids = self._populate(items)
        # A term with no results is never indexed so it is retried next time.
        if stored_ids:
            self._best_effort(
                SEARCH_INDEX_WRITE,
                term,
                lambda: self.search_index.upsert(term, stored_ids),
            )
        if self.debug:
            _logger.info("Search remote: term=%s results=%s", term, len(records))
        return SearchResult(
            first_result=records[0] if records else None,
            all_results=records,
            from_cache=False,
        )

    async def _barcode_remote(self, upc: str) -> SearchResult:
        items = await self.remote.search_by_barcode(upc)
        records, _ = self._populate(items)
        return SearchResult(
            first_result=records[0] if records else None,
            all_results=records,
            from_cache=False,
        )

    async def _fetch_detail(
        self, food_id: str, record: FoodRecord | None
    ) -> DetailResult:
        detail = await self.remote.get_detail(food_id)
        stored = self._best_effort(
            FOOD_RECORD_WRITE,
            food_id,
            lambda: self.food_records.attach_detail(food_id, detail.to_update()),
        )
        if self.debug:
            _logger.info("Nutrition remote: food_id=%s", food_id)
        return DetailResult(
            food_id=food_id,
            detail=dict(detail.raw),
            record=stored or record,
            from_cache=False,
        )

    def _populate(
        self, items: list[RemoteFoodItem]
    ) -> tuple[list[FoodRecord], list[str]]:
        """Upsert remote items, returning records to serve and ids stored."""
        records: list[FoodRecord] = []
        stored_ids: list[str] = []
        seen: set[str] = set()
        for item in items:
            if item.food_id in seen:
                continue
            seen.add(item.food_id)
            update = item.to_update()
            stored = self._best_effort(
                FOOD_RECORD_WRITE,
                item.food_id,
                lambda i=item, u=update: self.food_records.upsert(i.food_id, u),
            )
            if stored is None:
                records.append(
                    new_food_record(item.food_id, update, datetime.now(tz=UTC))
                )
                continue
            records.append(stored)
            stored_ids.append(stored.id)
        return records, stored_ids

    def _best_effort(self, kind: str, key: str, func: Callable[[], _T]) -> _T | None:
        """Run a cache side effect, logging and reporting instead of raising."""
        try:
            result = func()
        except Exception as exc:
            _logger.warning("Cache %s failed for %s: %r", kind, key, exc)
            self._emit(CacheEvent(kind=kind, key=key, succeeded=False, error=repr(exc)))
            return None
        self._emit(CacheEvent(kind=kind, key=key, succeeded=True))
        return result

    def _read(self, func: Callable[[], _T], key: str) -> _T | None:
        try:
            return func()
        except Exception:
            _logger.warning("Cache read failed for %s", key, exc_info=True)
            return None

    def _emit(self, event: CacheEvent) -> None:
        for listener in self.listeners:
            listener(event)

    async def _shielded(self, coro: Coroutine[Any, Any, _T]) -> _T:
        """Run a remote lookup so a cancelled caller does not abort population."""
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(_forget_task(self._background))
        return await asyncio.shield(task)


def _forget_task(tasks: set[asyncio.Task[Any]]) -> Callable[[asyncio.Task[Any]], None]:
    def _done(task: asyncio.Task[Any]) -> None:
        tasks.discard(task)
        # Retrieve the outcome so an abandoned task does not warn on exit.
        if not task.cancelled():
            task.exception()

    return _done
