"""In-memory repositories for local runs and tests."""

import threading
from dataclasses import dataclass, field

from food_lookup.domain.foods import FoodRecord, SearchIndexEntry
from food_lookup.services.food_records import FoodRecordRepository
from food_lookup.services.search_index import SearchIndexRepository


@dataclass
class InMemoryFoodRecordRepository(FoodRecordRepository):
    """Dictionary-backed food record repository."""

    records: dict[str, FoodRecord] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def get(self, food_id: str) -> FoodRecord | None:
        """Return a record by id."""
        return self.records.get(food_id)

    def get_many(self, food_ids: list[str]) -> dict[str, FoodRecord]:
        """Return existing records for the ids."""
        return {
            food_id: self.records[food_id]
            for food_id in food_ids
            if food_id in self.records
        }

    def insert_if_absent(self, record: FoodRecord) -> bool:
        """Insert a record unless the id is taken."""
        with self._lock:
            if record.id in self.records:
                return False
            self.records[record.id] = record
            return True

    def replace_if_version(self, record: FoodRecord, expected_version: int) -> bool:
        """Replace a record if nobody else changed it."""
        with self._lock:
            current = self.records.get(record.id)
            if current is None or current.version != expected_version:
                return False
            self.records[record.id] = record
            return True

    def find_by_barcode(self, barcode_id: str) -> list[FoodRecord]:
        """Return records with a matching barcode, most used first."""
        matches = [
            record
            for record in self.records.values()
            if record.barcode_id == barcode_id
        ]
        return _by_usage(matches)

    def search_by_name(self, text: str, limit: int) -> list[FoodRecord]:
        """Return records whose name contains text."""
        needle = text.lower()
        matches = [
            record
            for record in self.records.values()
            if record.display_name and needle in record.display_name.lower()
        ]
        return _by_usage(matches)[:limit]

    def count(self) -> int:
        """Return the number of records."""
        return len(self.records)

    def count_with_full_detail(self) -> int:
        """Return the number of records with detail."""
        return sum(1 for record in self.records.values() if record.has_full_detail)

    def top_by_usage(self, limit: int) -> list[FoodRecord]:
        """Return the most used records."""
        return _by_usage(list(self.records.values()))[:limit]

    def list_all(self) -> list[FoodRecord]:
        """Return all records."""
        return list(self.records.values())

    def delete(self, food_id: str) -> None:
        """Remove a record."""
        with self._lock:
            self.records.pop(food_id, None)


@dataclass
class InMemorySearchIndexRepository(SearchIndexRepository):
    """Dictionary-backed search index repository."""

    entries: dict[str, SearchIndexEntry] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def get(self, term: str) -> SearchIndexEntry | None:
        """Return an entry by term."""
        return self.entries.get(term)

    def insert_if_absent(self, entry: SearchIndexEntry) -> bool:
        """Insert an entry unless the term is taken."""
        with self._lock:
            if entry.term in self.entries:
                return False
            self.entries[entry.term] = entry
            return True

    def replace_if_version(
        self, entry: SearchIndexEntry, expected_version: int
    ) -> bool:
        """Replace an entry if nobody else changed it."""
        with self._lock:
            current = self.entries.get(entry.term)
            if current is None or current.version != expected_version:
                return False
            self.entries[entry.term] = entry
            return True

    def find_by_prefix(self, prefix: str, limit: int) -> list[SearchIndexEntry]:
        """Return entries starting with prefix."""
        matches = [
            entry for entry in self.entries.values() if entry.term.startswith(prefix)
        ]
        return _by_usage(matches)[:limit]

    def count(self) -> int:
        """Return the number of entries."""
        return len(self.entries)

    def top_by_usage(self, limit: int) -> list[SearchIndexEntry]:
        """Return the most used entries."""
        return _by_usage(list(self.entries.values()))[:limit]

    def list_all(self) -> list[SearchIndexEntry]:
        """Return all entries."""
        return list(self.entries.values())

    def delete(self, term: str) -> None:
        """Remove an entry."""
        with self._lock:
            self.entries.pop(term, None)


def _by_usage(items: list) -> list:
    return sorted(items, key=lambda item: item.usage_count, reverse=True)
