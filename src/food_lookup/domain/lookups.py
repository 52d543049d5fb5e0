"""Result types returned by the lookup cache."""

from dataclasses import dataclass, field
from datetime import datetime

from food_lookup.domain.foods import FoodRecord


@dataclass(frozen=True)
class SearchResult:
    """Ordered foods resolved for a search term or barcode."""

    first_result: FoodRecord | None
    all_results: list[FoodRecord]
    from_cache: bool


@dataclass(frozen=True)
class DetailResult:
    """Full nutrition payload for a food plus its cached record."""

    food_id: str
    detail: dict[str, object]
    record: FoodRecord | None
    from_cache: bool


@dataclass(frozen=True)
class UsageSummary:
    """One row of a top-by-usage listing."""

    key: str
    label: str | None
    usage_count: int
    last_used_at: datetime | None


@dataclass(frozen=True)
class CacheStats:
    """Read-only diagnostic view of both caches."""

    total_records: int
    total_search_terms: int
    records_with_full_detail: int
    full_detail_hit_ratio: float
    top_records: list[UsageSummary] = field(default_factory=list)
    top_search_terms: list[UsageSummary] = field(default_factory=list)


@dataclass(frozen=True)
class CacheEvent:
    """Outcome of a best-effort cache side effect."""

    kind: str
    key: str
    succeeded: bool
    error: str | None = None


FOOD_RECORD_WRITE = "food_record_write"
SEARCH_INDEX_WRITE = "search_index_write"
USAGE_BUMP = "usage_bump"
DANGLING_REFERENCE = "dangling_reference"
