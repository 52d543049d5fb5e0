"""Supabase implementation for the food record cache."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from food_lookup.domain.foods import FoodRecord
from food_lookup.services.food_records import FoodRecordRepository

_TABLE = "food_cache"


@dataclass
class SupabaseFoodRecordRepository(FoodRecordRepository):
    """Supabase-backed repository for cached food records."""

    client: Client

    def get(self, food_id: str) -> FoodRecord | None:
        """Return a record by id, if present."""
        response = (
            self.client.table(_TABLE).select("*").eq("id", food_id).limit(1).execute()
        )
        if not response.data:
            return None
        return _parse_record(response.data[0])

    def get_many(self, food_ids: list[str]) -> dict[str, FoodRecord]:
        """Return the records that exist for the given ids."""
        response = self.client.table(_TABLE).select("*").in_("id", food_ids).execute()
        records = [_parse_record(row) for row in response.data or []]
        return {record.id: record for record in records}

    def insert_if_absent(self, record: FoodRecord) -> bool:
        """Insert a record, leaving an existing row with the same id untouched."""
        response = (
            self.client.table(_TABLE)
            .upsert(_to_row(record), on_conflict="id", ignore_duplicates=True)
            .execute()
        )
        return bool(response.data)

    def replace_if_version(self, record: FoodRecord, expected_version: int) -> bool:
        """Update a record only while its stored version is unchanged."""
        response = (
            self.client.table(_TABLE)
            .update(_to_row(record))
            .eq("id", record.id)
            .eq("version", expected_version)
            .execute()
        )
        return bool(response.data)

    def find_by_barcode(self, barcode_id: str) -> list[FoodRecord]:
        """Return records carrying the given barcode."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("barcode_id", barcode_id)
            .order("usage_count", desc=True)
            .execute()
        )
        return [_parse_record(row) for row in response.data or []]

    def search_by_name(self, text: str, limit: int) -> list[FoodRecord]:
        """Return records whose display name contains text."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .ilike("display_name", f"%{escape_like(text)}%")
            .order("usage_count", desc=True)
            .limit(limit)
            .execute()
        )
        return [_parse_record(row) for row in response.data or []]

    def count(self) -> int:
        """Return the total number of records."""
        response = self.client.table(_TABLE).select("id", count="exact").execute()
        return response.count or 0

    def count_with_full_detail(self) -> int:
        """Return the number of records holding a detail payload."""
        response = (
            self.client.table(_TABLE)
            .select("id", count="exact")
            .eq("has_full_detail", True)
            .execute()
        )
        return response.count or 0

    def top_by_usage(self, limit: int) -> list[FoodRecord]:
        """Return the most used records."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .order("usage_count", desc=True)
            .limit(limit)
            .execute()
        )
        return [_parse_record(row) for row in response.data or []]

    def list_all(self) -> list[FoodRecord]:
        """Return every record."""
        response = self.client.table(_TABLE).select("*").execute()
        return [_parse_record(row) for row in response.data or []]

    def delete(self, food_id: str) -> None:
        """Delete a record."""
        self.client.table(_TABLE).delete().eq("id", food_id).execute()


def escape_like(text: str) -> str:
    """Escape LIKE wildcards in user text.

    PostgREST rewrites every ``*`` to ``%`` and has no escape for it, so ``*``
    is dropped.
    """
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return escaped.replace("*", "")


def parse_timestamp(raw: object) -> datetime | None:
    """Parse an ISO timestamp column."""
    if isinstance(raw, str) and raw:
        return datetime.fromisoformat(raw)
    return None


def format_timestamp(value: datetime | None) -> str | None:
    """Format a timestamp for a row payload."""
    return value.isoformat() if value else None


def _to_row(record: FoodRecord) -> dict[str, object]:
    return {
        "id": record.id,
        "display_name": record.display_name,
        "alternate_names": record.alternate_names,
        "category": record.category,
        "category_label": record.category_label,
        "brand": record.brand,
        "food_contents_label": record.food_contents_label,
        "image_url": record.image_url,
        "barcode_id": record.barcode_id,
        "nutrients": record.nutrients,
        "measures": record.measures,
        "serving_sizes": record.serving_sizes,
        "health_labels": record.health_labels,
        "diet_labels": record.diet_labels,
        "full_detail": record.full_detail,
        "has_full_detail": record.has_full_detail,
        "usage_count": record.usage_count,
        "last_used_at": format_timestamp(record.last_used_at),
        "last_remote_sync_at": format_timestamp(record.last_remote_sync_at),
        "created_at": format_timestamp(record.created_at),
        "version": record.version,
    }


def _parse_record(row: dict[str, object]) -> FoodRecord:
    """Parse a food cache row into a domain model."""
    nutrients = row.get("nutrients") or {}
    return FoodRecord(
        id=str(row["id"]),
        display_name=row.get("display_name"),
        alternate_names=row.get("alternate_names"),
        category=row.get("category"),
        category_label=row.get("category_label"),
        brand=row.get("brand"),
        food_contents_label=row.get("food_contents_label"),
        image_url=row.get("image_url"),
        barcode_id=row.get("barcode_id"),
        nutrients={str(key): float(value) for key, value in nutrients.items()},
        measures=list(row.get("measures") or []),
        serving_sizes=list(row.get("serving_sizes") or []),
        health_labels=list(row.get("health_labels") or []),
        diet_labels=list(row.get("diet_labels") or []),
        full_detail=row.get("full_detail"),
        has_full_detail=bool(row.get("has_full_detail", False)),
        usage_count=int(row.get("usage_count", 1)),
        last_used_at=parse_timestamp(row.get("last_used_at")),
        last_remote_sync_at=parse_timestamp(row.get("last_remote_sync_at")),
        created_at=parse_timestamp(row.get("created_at")),
        version=int(row.get("version", 1)),
    )
