"""Search term index store."""

from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol

from food_lookup.domain.errors import StoreConflictError
from food_lookup.domain.foods import SearchIndexEntry, unique_in_order


class SearchIndexRepository(Protocol):
    """Persistence interface for the search term index."""

    def get(self, term: str) -> SearchIndexEntry | None:
        """Return an entry by normalized term, if present."""

    def insert_if_absent(self, entry: SearchIndexEntry) -> bool:
        """Insert a new entry; return False if the term already exists."""

    def replace_if_version(
        self, entry: SearchIndexEntry, expected_version: int
    ) -> bool:
        """Replace an entry only if its stored version still matches."""

    def find_by_prefix(self, prefix: str, limit: int) -> list[SearchIndexEntry]:
        """Return entries whose term starts with prefix, by usage desc."""

    def count(self) -> int:
        """Return the total number of entries."""

    def top_by_usage(self, limit: int) -> list[SearchIndexEntry]:
        """Return the most used entries."""

    def list_all(self) -> list[SearchIndexEntry]:
        """Return every entry, for eviction hooks."""

    def delete(self, term: str) -> None:
        """Delete an entry, for eviction hooks."""


@dataclass
class SearchIndexStore:
    """Append-only mapping from normalized term to resolved food ids."""

    repository: SearchIndexRepository
    max_write_attempts: int = 5

    def get(self, term: str) -> SearchIndexEntry | None:
        """Return the entry for a normalized term."""
        return self.repository.get(term)

    def upsert(self, term: str, new_ids: list[str]) -> SearchIndexEntry:
        """Create an entry or union new ids into it."""
        for _ in range(self.max_write_attempts):
            now = datetime.now(tz=UTC)
            existing = self.repository.get(term)
            if existing is None:
                created = SearchIndexEntry(
                    term=term,
                    resolved_ids=unique_in_order(list(new_ids)),
                    usage_count=1,
                    last_used_at=now,
                    created_at=now,
                    version=1,
                )
                if self.repository.insert_if_absent(created):
                    return created
                continue
            merged = replace(
                existing,
                resolved_ids=unique_in_order([*existing.resolved_ids, *new_ids]),
                usage_count=existing.usage_count + 1,
                last_used_at=now,
                version=existing.version + 1,
            )
            if self.repository.replace_if_version(merged, existing.version):
                return merged
        raise StoreConflictError(f"Gave up upserting search term {term!r}")

    def touch(self, term: str) -> SearchIndexEntry | None:
        """Bump usage stats for a cache hit."""
        for _ in range(self.max_write_attempts):
            existing = self.repository.get(term)
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
        raise StoreConflictError(f"Gave up bumping usage for search term {term!r}")
