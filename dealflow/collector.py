"""Fetches buybox properties from the listing API and stores them by zip code."""

from __future__ import annotations

import logging

from dealflow.config import BuyboxConfig
from dealflow.errors import PropertySourceError
from dealflow.models import (
    CollectionResult,
    CollectionStats,
    ErrorContext,
    ErrorRecord,
    Property,
)
from dealflow.sources.base import PropertySource
from dealflow.storage.repository import UNKNOWN_ZIP, AnalysisRepository

logger = logging.getLogger(__name__)


def group_by_zip(properties: list[Property]) -> dict[str, list[Property]]:
    grouped: dict[str, list[Property]] = {}
    for prop in properties:
        grouped.setdefault(prop.zip_code or UNKNOWN_ZIP, []).append(prop)
    return grouped


class PropertyCollector:
    """Runs a buybox search and saves the results.

    API failures do not raise; they come back as an unsuccessful
    CollectionResult with an API_ERROR record, which is also stored.
    """

    def __init__(self, source: PropertySource, repo: AnalysisRepository):
        self.source = source
        self.repo = repo

    def _stats(self, properties: list[Property], zip_count: int) -> CollectionStats:
        return CollectionStats(
            total_properties=len(properties),
            zip_codes_processed=zip_count,
            api_requests_used=self.source.request_count,
            remaining_requests=self.source.remaining_requests,
        )

    async def collect(self, buybox: BuyboxConfig) -> CollectionResult:
        logger.info("Fetching properties for buybox: %s", buybox.name)
        try:
            properties = await self.source.fetch_buybox(buybox)
        except PropertySourceError as e:
            logger.error("Property fetch failed for buybox %s: %s", buybox.name, e)
            error = ErrorRecord(
                error_type="API_ERROR",
                error_message=f"Failed to fetch properties for buybox {buybox.name}",
                error_details=str(e),
                context=ErrorContext(buybox_name=buybox.name, operation="fetch_properties"),
            )
            self.repo.save_error(error)
            return CollectionResult(success=False, errors=[error], stats=self._stats([], 0))

        errors: list[ErrorRecord] = []
        grouped = group_by_zip(properties)
        for zip_code, zip_properties in grouped.items():
            try:
                self.repo.save_properties(zip_code, zip_properties, buybox.name)
            except OSError as e:
                error = ErrorRecord(
                    error_type="STORAGE_ERROR",
                    error_message=f"Failed to save properties for zip code {zip_code}",
                    error_details=str(e),
                    context=ErrorContext(
                        zip_code=zip_code, buybox_name=buybox.name, operation="save_properties"
                    ),
                )
                errors.append(error)
                self.repo.save_error(error)

        stats = self._stats(properties, len(grouped))
        logger.info(
            "Property fetch completed for buybox %s: %d properties in %d zip codes",
            buybox.name,
            stats.total_properties,
            stats.zip_codes_processed,
        )
        return CollectionResult(success=True, properties=properties, errors=errors, stats=stats)
