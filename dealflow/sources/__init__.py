"""Listing API clients that supply properties for analysis."""

from dealflow.config import ListingApiConfig
from dealflow.sources.base import PropertySource
from dealflow.sources.zillow import ZillowApiSource

SOURCES: dict[str, type[PropertySource]] = {
    "zillow": ZillowApiSource,
}


def get_source(name: str) -> type[PropertySource]:
    """Get a property source class by name."""
    if name not in SOURCES:
        raise ValueError(f"Unknown property source: {name}. Available: {list(SOURCES.keys())}")
    return SOURCES[name]


def create_source(
    config: ListingApiConfig, api_key: str, host: str = ""
) -> PropertySource:
    """Instantiate the configured source, with an optional host override."""
    if host:
        config = config.model_copy(update={"host": host})
    return get_source(config.source)(config, api_key)
