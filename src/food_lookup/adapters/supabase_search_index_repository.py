"""Supabase implementation for the search term index."""

from dataclasses import dataclass

from supabase import Client

from food_lookup.adapters.supabase_food_record_repository import (
    escape_like,
    format_timestamp,
    parse_timestamp,
)
from food_lookup.domain.foods import SearchIndexEntry
from food_lookup.services.search_index import SearchIndexRepository

_TABLE = "search_term_cache"


@dataclass
class SupabaseSearchIndexRepository(SearchIndexRepository):
    """Supabase-backed repository for search term entries."""

    client: Client

    def get(self, term: str) -> SearchIndexEntry | None:
        """Return an entry by normalized term, if present."""
        response = (
            self.client.table(_TABLE).select("*").eq("term", term).limit(1).execute()
        )
        if not response.data:
            return None
        return _parse_entry(response.data[0])

    def insert_if_absent(self, entry: SearchIndexEntry) -> bool:
        """Insert an entry, leaving an existing row for the term untouched."""
        response = (
            self.client.table(_TABLE)
            .upsert(_to_row(entry), on_conflict="term", ignore_duplicates=True)
            .execute()
        )
        return bool(response.data)

    def replace_if_version(
        self, entry: SearchIndexEntry, expected_version: int
    ) -> bool:
        """Update an entry only while its stored version is unchanged."""
        response = (
            self.client.table(_TABLE)
            .update(_to_row(entry))
            .eq("term", entry.term)
            .eq("version", expected_version)
            .execute()
        )
        return bool(response.data)

    def find_by_prefix(self, prefix: str, limit: int) -> list[SearchIndexEntry]:
        """Return entries whose term starts with prefix, most used first."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .like("term", f"{escape_like(prefix)}%")
            .order("usage_count", desc=True)
            .limit(limit)
            .execute()
        )
        return [_parse_entry(row) for row in response.data or []]

    def count(self) -> int:
        """Return the total number of entries."""
        response = self.client.table(_TABLE).select("term", count="exact").execute()
        return response.count or 0

    def top_by_usage(self, limit: int) -> list[SearchIndexEntry]:
        """Return the most used entries."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .order("usage_count", desc=True)
            .limit(limit)
            .execute()
        )
        return [_parse_entry(row) for row in response.data or []]

    def list_all(self) -> list[SearchIndexEntry]:
        """Return every entry."""
        response = self.client.table(_TABLE).select("*").execute()
        return [_parse_entry(row) for row in response.data or []]

    def delete(self, term: str) -> None:
        """Delete an entry."""
        self.client.table(_TABLE).delete().eq("term", term).execute()


def _to_row(entry: SearchIndexEntry) -> dict[str, object]:
    return {
        "term": entry.term,
        "resolved_ids": entry.resolved_ids,
        "usage_count": entry.usage_count,
        "last_used_at": format_timestamp(entry.last_used_at),
        "created_at": format_timestamp(entry.created_at),
        "version": entry.version,
    }


def _parse_entry(row: dict[str, object]) -> SearchIndexEntry:
    return SearchIndexEntry(
        term=str(row["term"]),
        resolved_ids=[str(food_id) for food_id in row.get("resolved_ids") or []],
        usage_count=int(row.get("usage_count", 1)),
        last_used_at=parse_timestamp(row.get("last_used_at")),
        created_at=parse_timestamp(row.get("created_at")),
        version=int(row.get("version", 1)),
    )
