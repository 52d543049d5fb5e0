"""Domain models for cached food records and search index entries."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class FoodRecordUpdate:
    """Incoming fields for a food record upsert.

    ``None`` or empty values mean "not provided" and never clear stored data.
    """

    display_name: str | None = None
    alternate_names: str | None = None
    category: str | None = None
    category_label: str | None = None
    brand: str | None = None
    food_contents_label: str | None = None
    image_url: str | None = None
    barcode_id: str | None = None
    nutrients: dict[str, float] = field(default_factory=dict)
    measures: list[dict[str, object]] = field(default_factory=list)
    serving_sizes: list[dict[str, object]] = field(default_factory=list)
    health_labels: list[str] = field(default_factory=list)
    diet_labels: list[str] = field(default_factory=list)
    full_detail: dict[str, object] | None = None


@dataclass(frozen=True)
class FoodRecord:
    """Merge-accumulated representation of one remote catalog item."""

    id: str
    display_name: str | None
    alternate_names: str | None
    category: str | None
    category_label: str | None
    brand: str | None
    food_contents_label: str | None
    image_url: str | None
    barcode_id: str | None
    nutrients: dict[str, float]
    measures: list[dict[str, object]]
    serving_sizes: list[dict[str, object]]
    health_labels: list[str]
    diet_labels: list[str]
    full_detail: dict[str, object] | None
    has_full_detail: bool
    usage_count: int
    last_used_at: datetime | None
    last_remote_sync_at: datetime | None
    created_at: datetime | None = None
    version: int = 1


@dataclass(frozen=True)
class SearchIndexEntry:
    """Every food id a normalized search term has ever resolved to."""

    term: str
    resolved_ids: list[str]
    usage_count: int
    last_used_at: datetime | None
    created_at: datetime | None = None
    version: int = 1


def normalize_term(raw: str | None) -> str:
    """Lower-case and trim a search term."""
    if raw is None:
        return ""
    return raw.strip().lower()


def unique_in_order(values: list[str]) -> list[str]:
    """Drop duplicates while keeping first appearance order."""
    seen: set[str] = set()
    result = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result
