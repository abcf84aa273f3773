"""Exception hierarchy for DealFlow."""

from __future__ import annotations


class DealFlowError(Exception):
    """Base class for all DealFlow errors."""


class ConfigurationError(DealFlowError):
    """Financial or application configuration is missing or invalid."""


class ValidationError(DealFlowError):
    """A property record is unusable for analysis (e.g. non-positive price)."""

    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(message)
        self.fields = fields or []


class AnalysisError(DealFlowError):
    """Analysis of a single property failed."""

    def __init__(self, property_id: str, message: str):
        super().__init__(f"Analysis failed for property {property_id}: {message}")
        self.property_id = property_id
        self.reason = message


class ReferenceDataError(DealFlowError):
    """HUD reference data could not be loaded or queried."""


class PropertySourceError(DealFlowError):
    """The listing API request failed."""


class RateLimitExceeded(PropertySourceError):
    """The client-side request budget for the listing API is spent."""

    def __init__(self, retry_after: float):
        super().__init__(
            f"Rate limit exceeded. Wait {retry_after:.0f} seconds before making more requests."
        )
        self.retry_after = retry_after
