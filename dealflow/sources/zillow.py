"""Zillow listing client via the RapidAPI ``zillow-com1`` endpoints.

Buybox searches go to ``/propertyExtendedSearch`` with all of the buybox's
zip codes joined by ``;`` as the location, and every result page is fetched.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from dealflow.config import BuyboxConfig
from dealflow.errors import PropertySourceError
from dealflow.models import Property
from dealflow.sources.base import PropertySource

logger = logging.getLogger(__name__)


class ZillowApiSource(PropertySource):
    SOURCE_NAME = "zillow"

    SEARCH_PATH = "/propertyExtendedSearch"

    def _base_url(self) -> str:
        return f"https://{self.config.host}"

    def _headers(self) -> dict[str, str]:
        return {
            "X-RapidAPI-Key": self.api_key,
            "X-RapidAPI-Host": self.config.host,
            "Content-Type": "application/json",
        }

    def _build_search_params(self, buybox: BuyboxConfig, page: int = 1) -> dict[str, Any]:
        """Map a buybox onto the search endpoint's query parameters."""
        params: dict[str, Any] = {
            "location": ";".join(buybox.zip_codes),
            "status_type": "ForSale",
            "home_type": ",".join(buybox.property_types) or None,
            "minPrice": buybox.price_range.min,
            "maxPrice": buybox.price_range.max,
            "bedsMin": buybox.bedrooms.min,
            "bedsMax": buybox.bedrooms.max,
            "bathsMin": buybox.bathrooms.min,
            "bathsMax": buybox.bathrooms.max,
            "sqftMin": buybox.square_feet.min,
            "sqftMax": buybox.square_feet.max,
            "buildYearMin": buybox.year_built.min,
            "buildYearMax": buybox.year_built.max,
            "daysOn": buybox.days_on_market,
            "page": page,
        }
        # Ranges come from TOML floats; the API wants whole numbers
        return {
            k: int(v) if isinstance(v, float) and v.is_integer() else v
            for k, v in params.items()
            if v is not None
        }

    async def search(self, params: dict[str, Any]) -> dict[str, Any]:
        """Run one search request and return the decoded JSON body."""
        self._check_rate_limit()
        client = await self._get_client()

        try:
            resp = await client.get(self.SEARCH_PATH, params=params)
        except httpx.HTTPError as e:
            raise PropertySourceError(f"API request failed: {e}") from e

        if resp.status_code == 429:
            raise PropertySourceError("Rate limit exceeded. Please try again later.")
        if resp.status_code == 401:
            raise PropertySourceError("Invalid API key. Please check your RapidAPI credentials.")
        if resp.status_code != 200:
            raise PropertySourceError(f"API request failed with status {resp.status_code}")

        self.request_count += 1
        try:
            return resp.json()
        except ValueError as e:
            raise PropertySourceError(f"API returned invalid JSON: {e}") from e

    def _parse_props(self, items: list[dict]) -> list[Property]:
        properties: list[Property] = []
        for item in items:
            try:
                properties.append(Property.model_validate(item))
            except PydanticValidationError as e:
                logger.warning(
                    "Skipping listing %s: %d invalid fields",
                    item.get("zpid", "<no zpid>"),
                    e.error_count(),
                )
        return properties

    async def fetch_buybox(self, buybox: BuyboxConfig) -> list[Property]:
        if not buybox.zip_codes:
            return []

        properties: list[Property] = []
        page = 1
        while True:
            logger.info("Fetching page %d for buybox: %s", page, buybox.name)
            data = await self.search(self._build_search_params(buybox, page))
            properties.extend(self._parse_props(data.get("props") or []))

            total_pages = data.get("totalPages") or 1
            if page >= total_pages:
                break
            page += 1
            await asyncio.sleep(self.config.page_delay)

        logger.info("Fetched %d properties for buybox: %s", len(properties), buybox.name)
        return properties
