"""Remote food database lookup with fixed result shapes."""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import httpx
from pydantic import ValidationError

from food_lookup.adapters.edamam_client import GRAM_MEASURE_URI, EdamamClient
from food_lookup.domain.errors import UpstreamUnavailable
from food_lookup.domain.remote import RemoteFoodDetail, RemoteFoodItem

_logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterator


class RemoteFoodLookup(Protocol):
    """Interface for third-party food database queries."""

    async def search_by_term(self, term: str) -> list[RemoteFoodItem]:
        """Return foods matching free text, canonical match first."""

    async def search_by_barcode(self, upc: str) -> list[RemoteFoodItem]:
        """Return foods registered under a UPC barcode."""

    async def get_detail(self, food_id: str) -> RemoteFoodDetail:
        """Return full nutrition detail for one food id."""


@dataclass
class EdamamRemoteLookup(RemoteFoodLookup):
    """Edamam adapter that isolates callers from the raw payload schema."""

    client: EdamamClient
    timeout_seconds: float = 10.0
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3
    detail_quantity: float = 100.0

    async def search_by_term(self, term: str) -> list[RemoteFoodItem]:
        """Search the food parser by free text."""
        payload = await self._call_with_retry(
            lambda: self.client.parse_food(ingr=term), action="search"
        )
        return _parse_search_payload(payload)

    async def search_by_barcode(self, upc: str) -> list[RemoteFoodItem]:
        """Search the food parser by UPC barcode."""
        payload = await self._call_with_retry(
            lambda: self.client.parse_food(upc=upc), action=f"barcode:{upc}"
        )
        return _parse_search_payload(payload, barcode_id=upc)

    async def get_detail(self, food_id: str) -> RemoteFoodDetail:
        """Fetch nutrients for a fixed reference quantity in grams."""
        payload = await self._call_with_retry(
            lambda: self.client.get_nutrients(
                food_id, quantity=self.detail_quantity, measure_uri=GRAM_MEASURE_URI
            ),
            action=f"detail:{food_id}",
        )
        return _parse_detail_payload(food_id, payload)

    async def _call_with_retry(
        self, func: "Callable[[], Awaitable[dict[str, object]]]", *, action: str
    ) -> dict[str, object]:
        """Call the remote API with a bounded timeout and a short retry."""
        attempt = 0
        while True:
            try:
                payload = await asyncio.wait_for(func(), timeout=self.timeout_seconds)
                break
            except (httpx.HTTPError, TimeoutError, ValueError) as exc:
                attempt += 1
                _logger.warning(
                    "Edamam %s failed (attempt %s/%s, status=%s): %r",
                    action,
                    attempt,
                    self.retry_attempts + 1,
                    _status_code_from_exception(exc),
                    exc,
                )
                if attempt > self.retry_attempts:
                    raise UpstreamUnavailable(f"Edamam {action} failed") from exc
                await asyncio.sleep(self.retry_delay_seconds)

        if not isinstance(payload, dict):
            _logger.warning(
                "Edamam %s returned %s instead of an object",
                action,
                type(payload).__name__,
            )
            raise UpstreamUnavailable(f"Edamam {action} returned an unusable payload")
        return payload


def _status_code_from_exception(exc: Exception) -> str:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"


def _parse_search_payload(
    payload: dict[str, object], barcode_id: str | None = None
) -> list[RemoteFoodItem]:
    """Flatten parsed foods and hints into unique items, parsed foods first.

    Entries that do not fit the result shape are logged and skipped.
    """
    items: dict[str, RemoteFoodItem] = {}
    for food, measures in _iter_foods(payload):
        food_id = food.get("foodId")
        if not isinstance(food_id, str) or not food_id:
            continue
        try:
            item = _to_item(food, measures, barcode_id)
        except ValidationError as exc:
            _logger.warning(
                "Skipping malformed Edamam food %s: %s errors",
                food_id,
                exc.error_count(),
            )
            continue
        known = items.get(food_id)
        if known is None:
            items[food_id] = item
        elif item.measures and not known.measures:
            items[food_id] = known.model_copy(update={"measures": item.measures})
    return list(items.values())


def _iter_foods(
    payload: dict[str, object],
) -> "Iterator[tuple[dict[str, object], list[dict[str, object]]]]":
    for parsed in _as_list(payload.get("parsed")):
        if not isinstance(parsed, dict):
            continue
        food = parsed.get("food")
        if isinstance(food, dict):
            measure = parsed.get("measure")
            yield food, [measure] if isinstance(measure, dict) else []
    for hint in _as_list(payload.get("hints")):
        if not isinstance(hint, dict):
            continue
        food = hint.get("food")
        if isinstance(food, dict):
            yield food, _as_list(hint.get("measures"))


def _as_list(raw: object) -> list[object]:
    return raw if isinstance(raw, list) else []


def _to_item(
    food: dict[str, object],
    measures: list[dict[str, object]],
    barcode_id: str | None = None,
) -> RemoteFoodItem:
    return RemoteFoodItem.model_validate(
        {
            "food_id": food.get("foodId"),
            "label": food.get("label") or "",
            "known_as": food.get("knownAs"),
            "category": food.get("category"),
            "category_label": food.get("categoryLabel"),
            "brand": food.get("brand"),
            "food_contents_label": food.get("foodContentsLabel"),
            "image": food.get("image"),
            "barcode_id": food.get("upc") or barcode_id,
            "nutrients": _numeric_map(food.get("nutrients")),
            "measures": [m for m in measures if isinstance(m, dict)],
            "serving_sizes": food.get("servingSizes") or [],
            "health_labels": food.get("healthLabels") or [],
            "diet_labels": food.get("dietLabels") or [],
        }
    )


def _parse_detail_payload(food_id: str, payload: dict[str, object]) -> RemoteFoodDetail:
    nutrients: dict[str, float] = {}
    total_nutrients = payload.get("totalNutrients")
    if isinstance(total_nutrients, dict):
        for code, value in total_nutrients.items():
            quantity = value.get("quantity") if isinstance(value, dict) else None
            if isinstance(quantity, int | float):
                nutrients[code] = float(quantity)
    try:
        return RemoteFoodDetail.model_validate(
            {
                "food_id": food_id,
                "label": _extract_detail_label(payload),
                "nutrients": nutrients,
                "health_labels": payload.get("healthLabels") or [],
                "diet_labels": payload.get("dietLabels") or [],
                "raw": payload,
            }
        )
    except ValidationError as exc:
        raise UpstreamUnavailable("Edamam detail returned an unusable payload") from exc


def _extract_detail_label(payload: dict[str, object]) -> str | None:
    """Best-effort display name from the first parsed ingredient."""
    for ingredient in _as_list(payload.get("ingredients")):
        if not isinstance(ingredient, dict):
            continue
        for parsed in _as_list(ingredient.get("parsed")):
            if not isinstance(parsed, dict):
                continue
            name = parsed.get("food") or parsed.get("foodMatch")
            if isinstance(name, str) and name.strip():
                return name.strip()
    return None


def _numeric_map(raw: object) -> dict[str, float]:
    if not isinstance(raw, dict):
        return {}
    return {
        str(key): float(value)
        for key, value in raw.items()
        if isinstance(value, int | float) and not isinstance(value, bool)
    }
