"""Autocomplete suggestions derived from the search index and food names."""

from dataclasses import dataclass

from food_lookup.domain.foods import normalize_term
from food_lookup.services.food_records import FoodRecordRepository
from food_lookup.services.search_index import SearchIndexRepository

MIN_PREFIX_LENGTH = 2
SUPPLEMENT_THRESHOLD = 5
MAX_SUGGESTIONS = 10


@dataclass
class AutocompleteRanker:
    """Ranks suggestions by usage with no state of its own.

    Search terms are matched from the start since they are operator intent.
    Food names are matched anywhere since the query may sit mid-name
    ("organic chicken breast").
    """

    search_index: SearchIndexRepository
    food_records: FoodRecordRepository

    def suggest(self, prefix: str | None, limit: int = MAX_SUGGESTIONS) -> list[str]:
        """Return up to ``limit`` lower-cased suggestions, never more than ten."""
        limit = min(limit, MAX_SUGGESTIONS)
        text = normalize_term(prefix)
        if len(text) < MIN_PREFIX_LENGTH or limit <= 0:
            return []

        entries = sorted(
            self.search_index.find_by_prefix(text, limit),
            key=lambda entry: entry.usage_count,
            reverse=True,
        )
        term_suggestions = [entry.term for entry in entries[:limit]]

        name_suggestions: list[str] = []
        if len(term_suggestions) < SUPPLEMENT_THRESHOLD:
            records = sorted(
                self.food_records.search_by_name(text, limit),
                key=lambda record: record.usage_count,
                reverse=True,
            )
            name_suggestions = [
                record.display_name for record in records if record.display_name
            ]

        return _merge_suggestions(term_suggestions, name_suggestions, limit)


def _merge_suggestions(
    primary: list[str], secondary: list[str], limit: int
) -> list[str]:
    merged: list[str] = []
    seen: set[str] = set()
    for suggestion in [*primary, *secondary]:
        key = suggestion.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        merged.append(key)
        if len(merged) >= limit:
            break
    return merged
