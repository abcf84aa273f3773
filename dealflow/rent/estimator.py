"""Monthly rent estimation from HUD data, listing-API estimates or price.

Sources are tried in priority order:
1. HUD fair market rent for the zip code and bedroom count (when enabled)
2. The listing API's rent estimate (rentZestimate)
3. A fixed annual percentage of the purchase price
"""

from __future__ import annotations

import logging
from collections import Counter
from statistics import fmean

from dealflow.config import DEFAULT_HUD_DATA_PATH, RentalConfig
from dealflow.models import (
    Confidence,
    EstimateCheck,
    Property,
    RentalEstimate,
    RentEstimateStats,
    RentSource,
)
from dealflow.rent.reference import ReferenceRentMatcher, ReferenceRentStore
from dealflow.rounding import to_cents

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_RENT_PERCENT = 0.8


class RentalEstimator:
    """Chooses a monthly rent for a property. Never raises for a single property."""

    def __init__(self, matcher: ReferenceRentMatcher | None = None):
        self.matcher = matcher or ReferenceRentMatcher()

    @classmethod
    def from_config(cls, rental: RentalConfig) -> RentalEstimator:
        store = ReferenceRentStore(rental.hud_data_path or DEFAULT_HUD_DATA_PATH)
        return cls(ReferenceRentMatcher(store))

    @property
    def store(self) -> ReferenceRentStore:
        return self.matcher.store

    def estimate(self, prop: Property, rental: RentalConfig) -> RentalEstimate:
        if rental.use_hud_data:
            estimate = self._from_reference(prop)
            if estimate is not None:
                return estimate

        if prop.rent_zestimate and prop.rent_zestimate > 0:
            return RentalEstimate(
                monthly_rent=prop.rent_zestimate,
                source=RentSource.LISTING_API,
                confidence=Confidence.MEDIUM,
                match_details=f"Listing API rent estimate: ${prop.rent_zestimate:g}/month",
            )

        return self._fallback(prop, rental)

    def _from_reference(self, prop: Property) -> RentalEstimate | None:
        try:
            match = self.matcher.match(prop)
        except Exception as e:
            logger.warning("HUD lookup failed for property %s: %s", prop.property_id, e)
            return None

        if not match.matched or not match.rent or match.rent <= 0:
            logger.debug(
                "No HUD rent for property %s: %s", prop.property_id, match.match_criteria
            )
            return None

        return RentalEstimate(
            monthly_rent=match.rent,
            source=RentSource.REFERENCE,
            confidence=match.confidence,
            reference_match=match,
            match_details=f"HUD Fair Market Rent: ${match.rent:g}/month ({match.match_criteria})",
        )

    def _fallback(self, prop: Property, rental: RentalConfig) -> RentalEstimate:
        percent = rental.fallback_rent_percent or DEFAULT_FALLBACK_RENT_PERCENT
        monthly_rent = (prop.price * (percent / 100)) / 12
        return RentalEstimate(
            monthly_rent=to_cents(monthly_rent),
            source=RentSource.FALLBACK,
            confidence=Confidence.LOW,
            match_details=(
                f"Fallback estimate: {percent:g}% of purchase price annually "
                f"(${round(monthly_rent)}/month)"
            ),
        )

    def estimate_stats(
        self, properties: list[Property], rental: RentalConfig
    ) -> RentEstimateStats:
        """Summarize where the rents for a set of properties would come from."""
        estimates = [self.estimate(p, rental) for p in properties]
        rents = [e.monthly_rent for e in estimates if e.monthly_rent > 0]
        sources = Counter(e.source.value for e in estimates)
        confidences = Counter(e.confidence.value for e in estimates)

        return RentEstimateStats(
            total_properties=len(properties),
            reference_matches=sources[RentSource.REFERENCE.value],
            listing_api_estimates=sources[RentSource.LISTING_API.value],
            fallback_estimates=sources[RentSource.FALLBACK.value],
            average_rent=to_cents(fmean(rents)) if rents else 0.0,
            rent_range=(min(rents), max(rents)) if rents else (0.0, 0.0),
            source_breakdown=dict(sources),
            confidence_breakdown=dict(confidences),
        )


def check_estimate(prop: Property, estimate: RentalEstimate) -> EstimateCheck:
    """Flag rent estimates that look out of line with price and size.

    Typical monthly rent is 0.5-2% of the purchase price.
    """
    warnings: list[str] = []
    suggestions: list[str] = []
    rent = estimate.monthly_rent

    if prop.price > 0:
        rent_to_price = (rent / prop.price) * 100
        if rent_to_price < 0.3:
            warnings.append(
                f"Very low rent-to-price ratio: {rent_to_price:.2f}% (typical range: 0.5-2%)"
            )
            suggestions.append("Consider reviewing rental market data or property condition")
        elif rent_to_price > 3:
            warnings.append(
                f"Very high rent-to-price ratio: {rent_to_price:.2f}% (typical range: 0.5-2%)"
            )
            suggestions.append("Verify property price and rental estimate accuracy")

    if prop.living_area > 0:
        per_sqft = rent / prop.living_area
        if per_sqft < 0.5:
            warnings.append(f"Low rent per sq ft: ${per_sqft:.2f}")
        elif per_sqft > 5:
            warnings.append(f"High rent per sq ft: ${per_sqft:.2f}")

    if estimate.confidence == Confidence.LOW:
        suggestions.append("Consider getting professional rental market analysis")
    if estimate.source == RentSource.FALLBACK:
        suggestions.append("Try to obtain actual rental comps for more accurate estimates")

    return EstimateCheck(
        is_reasonable=not warnings and rent > 0,
        warnings=warnings,
        suggestions=suggestions,
    )
