"""Food search endpoints backed by the lookup cache."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from food_lookup.containers import AppContainer
    from food_lookup.domain.lookups import SearchResult

router = APIRouter(prefix="/food", tags=["food"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/search")
async def search_food(request: Request, query: str = "") -> dict[str, object]:
    """Search foods by free text."""
    container: AppContainer = request.app.state.container
    result = await container.lookup_cache.search(query)
    return _serialize_search(result)


@router.get("/autocomplete")
async def autocomplete(
    request: Request, query: str = "", limit: int = 10
) -> dict[str, object]:
    """Return autocomplete suggestions for a partial query."""
    container: AppContainer = request.app.state.container
    return {"suggestions": container.lookup_cache.autocomplete(query, limit)}


@router.get("/nutrition/{food_id}")
async def nutrition(food_id: str, request: Request) -> dict[str, object]:
    """Return full nutrition detail for a food."""
    container: AppContainer = request.app.state.container
    result = await container.lookup_cache.nutrition_detail(food_id)
    return {
        "food_id": result.food_id,
        "detail": result.detail,
        "food": asdict(result.record) if result.record else None,
        "from_cache": result.from_cache,
    }


@router.get("/barcode/{upc}")
async def barcode(upc: str, request: Request) -> dict[str, object]:
    """Return foods registered under a barcode."""
    container: AppContainer = request.app.state.container
    result = await container.lookup_cache.lookup_barcode(upc)
    return _serialize_search(result)


@router.get("/cache/stats", dependencies=[Depends(require_admin)])
async def cache_stats(request: Request) -> dict[str, object]:
    """Return cache statistics."""
    container: AppContainer = request.app.state.container
    return asdict(container.lookup_cache.cache_stats())


def _serialize_search(result: SearchResult) -> dict[str, object]:
    return {
        "first_result": asdict(result.first_result) if result.first_result else None,
        "all_results": [asdict(record) for record in result.all_results],
        "from_cache": result.from_cache,
    }
