"""Edamam Food Database API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

GRAM_MEASURE_URI = "http://www.edamam.com/ontologies/edamam.owl#Measure_gram"


class EdamamClient(Protocol):
    """Interface for raw Edamam Food Database interactions."""

    async def parse_food(
        self, ingr: str | None = None, upc: str | None = None
    ) -> dict[str, object]:
        """Search foods by text or barcode and return raw API data."""

    async def get_nutrients(
        self, food_id: str, quantity: float, measure_uri: str = GRAM_MEASURE_URI
    ) -> dict[str, object]:
        """Fetch full nutrients for a food and return raw API data."""


@dataclass
class HttpxEdamamClient(EdamamClient):
    """HTTPX-backed Edamam client."""

    app_id: str
    app_key: str
    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 10.0

    @classmethod
    def create(
        cls, app_id: str, app_key: str, base_url: str, timeout_seconds: float = 10.0
    ) -> "HttpxEdamamClient":
        """Create an Edamam client with a managed httpx session."""
        return cls(
            app_id=app_id,
            app_key=app_key,
            base_url=base_url,
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def parse_food(
        self, ingr: str | None = None, upc: str | None = None
    ) -> dict[str, object]:
        """Call the food parser endpoint."""
        params: dict[str, str] = {"app_id": self.app_id, "app_key": self.app_key}
        if ingr:
            params["ingr"] = ingr
        if upc:
            params["upc"] = upc
        response = await self.http_client.get(
            f"{self.base_url}/parser",
            params=params,
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return response.json()

    async def get_nutrients(
        self, food_id: str, quantity: float, measure_uri: str = GRAM_MEASURE_URI
    ) -> dict[str, object]:
        """Call the nutrients endpoint for a single ingredient."""
        response = await self.http_client.post(
            f"{self.base_url}/nutrients",
            params={"app_id": self.app_id, "app_key": self.app_key},
            json={
                "ingredients": [
                    {
                        "quantity": quantity,
                        "measureURI": measure_uri,
                        "foodId": food_id,
                    }
                ]
            },
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
