"""Food record store with merge-on-write upserts."""

import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol

from food_lookup.domain.errors import StoreConflictError
from food_lookup.domain.foods import FoodRecord, FoodRecordUpdate, unique_in_order

_SCALAR_FIELDS = (
    "display_name",
    "alternate_names",
    "category",
    "category_label",
    "brand",
    "food_contents_label",
    "image_url",
    "barcode_id",
)
_SNAPSHOT_FIELDS = ("measures", "serving_sizes", "health_labels", "diet_labels")

UNKNOWN_FOOD_NAME = "Unknown"

_logger = logging.getLogger(__name__)


class FoodRecordRepository(Protocol):
    """Persistence interface for cached food records."""

    def get(self, food_id: str) -> FoodRecord | None:
        """Return a record by id, if present."""

    def get_many(self, food_ids: list[str]) -> dict[str, FoodRecord]:
        """Return the records that exist for the given ids."""

    def insert_if_absent(self, record: FoodRecord) -> bool:
        """Insert a new record; return False if the id already exists."""

    def replace_if_version(self, record: FoodRecord, expected_version: int) -> bool:
        """Replace a record only if its stored version still matches."""

    def find_by_barcode(self, barcode_id: str) -> list[FoodRecord]:
        """Return records carrying the given barcode."""

    def search_by_name(self, text: str, limit: int) -> list[FoodRecord]:
        """Return records whose display name contains text, by usage desc."""

    def count(self) -> int:
        """Return the total number of records."""

    def count_with_full_detail(self) -> int:
        """Return the number of records holding a full detail payload."""

    def top_by_usage(self, limit: int) -> list[FoodRecord]:
        """Return the most used records."""

    def list_all(self) -> list[FoodRecord]:
        """Return every record, for eviction hooks."""

    def delete(self, food_id: str) -> None:
        """Delete a record, for eviction hooks."""


@dataclass
class FoodRecordStore:
    """Applies per-field merge rules atomically per food id."""

    repository: FoodRecordRepository
    max_write_attempts: int = 5

    def get(self, food_id: str) -> FoodRecord | None:
        """Return a cached record."""
        return self.repository.get(food_id)

    def get_many(self, food_ids: list[str]) -> dict[str, FoodRecord]:
        """Return cached records keyed by id."""
        if not food_ids:
            return {}
        return self.repository.get_many(food_ids)

    def upsert(
        self, food_id: str, update: FoodRecordUpdate, *, from_remote: bool = True
    ) -> FoodRecord:
        """Create or merge a record and return the stored result."""
        for _ in range(self.max_write_attempts):
            now = datetime.now(tz=UTC)
            existing = self.repository.get(food_id)
            if existing is None:
                created = new_food_record(food_id, update, now, from_remote=from_remote)
                if self.repository.insert_if_absent(created):
                    return created
                continue
            merged = merge_food_record(existing, update, now, from_remote=from_remote)
            if self.repository.replace_if_version(merged, existing.version):
                return merged
        raise StoreConflictError(f"Gave up upserting food record {food_id}")

    def attach_detail(self, food_id: str, update: FoodRecordUpdate) -> FoodRecord:
        """Merge a full detail payload into a record, creating it if needed.

        An existing record keeps its search-time descriptive fields. A record
        first seen through a detail fetch gets the best name the detail
        exposes, or ``UNKNOWN_FOOD_NAME``.
        """
        for _ in range(self.max_write_attempts):
            now = datetime.now(tz=UTC)
            existing = self.repository.get(food_id)
            if existing is None:
                _logger.warning(
                    "Detail fetch created food record without a prior search: %s",
                    food_id,
                )
                created = new_food_record(
                    food_id,
                    replace(
                        update, display_name=update.display_name or UNKNOWN_FOOD_NAME
                    ),
                    now,
                )
                if self.repository.insert_if_absent(created):
                    return created
                continue
            merged = merge_food_record(
                existing, replace(update, display_name=None), now
            )
            if self.repository.replace_if_version(merged, existing.version):
                return merged
        raise StoreConflictError(f"Gave up attaching detail to food record {food_id}")

    def touch(self, food_id: str) -> FoodRecord | None:
        """Bump usage stats for a cache hit."""
        for _ in range(self.max_write_attempts):
            existing = self.repository.get(food_id)
            if existing is None:
                return None
            bumped = replace(
                existing,
                usage_count=existing.usage_count + 1,
                last_used_at=datetime.now(tz=UTC),
                version=existing.version + 1,
            )
            if self.repository.replace_if_version(bumped, existing.version):
                return bumped
        raise StoreConflictError(f"Gave up bumping usage for food record {food_id}")


def new_food_record(
    food_id: str, update: FoodRecordUpdate, now: datetime, *, from_remote: bool = True
) -> FoodRecord:
    """Build the first version of a record from incoming fields."""
    return FoodRecord(
        id=food_id,
        display_name=update.display_name or None,
        alternate_names=update.alternate_names or None,
        category=update.category or None,
        category_label=update.category_label or None,
        brand=update.brand or None,
        food_contents_label=update.food_contents_label or None,
        image_url=update.image_url or None,
        barcode_id=update.barcode_id or None,
        nutrients=dict(update.nutrients),
        measures=list(update.measures),
        serving_sizes=list(update.serving_sizes),
        health_labels=unique_in_order(list(update.health_labels)),
        diet_labels=unique_in_order(list(update.diet_labels)),
        full_detail=update.full_detail,
        has_full_detail=update.full_detail is not None,
        usage_count=1,
        last_used_at=now,
        last_remote_sync_at=now if from_remote else None,
        created_at=now,
        version=1,
    )


def merge_food_record(
    existing: FoodRecord,
    update: FoodRecordUpdate,
    now: datetime,
    *,
    from_remote: bool = True,
) -> FoodRecord:
    """Merge incoming fields into an existing record.

    Scalars are overwritten only by non-empty values. Nutrients are replaced
    only by a strictly larger set, so a light search payload never clobbers a
    richer detail payload. Snapshot fields are replaced wholesale when the
    incoming list is non-empty. ``has_full_detail`` never goes back to False.
    """
    changes: dict[str, object] = {}
    for name in _SCALAR_FIELDS:
        value = getattr(update, name)
        if value:
            changes[name] = value

    if len(update.nutrients) > len(existing.nutrients):
        changes["nutrients"] = dict(update.nutrients)

    for name in _SNAPSHOT_FIELDS:
        value = getattr(update, name)
        if value:
            if name.endswith("_labels"):
                changes[name] = unique_in_order(list(value))
            else:
                changes[name] = list(value)

    if update.full_detail is not None:
        changes["full_detail"] = update.full_detail
        changes["has_full_detail"] = True

    if from_remote:
        changes["last_remote_sync_at"] = now

    return replace(
        existing,
        **changes,
        usage_count=existing.usage_count + 1,
        last_used_at=now,
        version=existing.version + 1,
    )
