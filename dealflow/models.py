"""Data models for DealFlow."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from dealflow.address import extract_zip_code


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Serialized with camelCase keys; accepts either spelling on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class PropertyType(str, Enum):
    SINGLE_FAMILY = "SINGLE_FAMILY"
    CONDO = "CONDO"
    TOWNHOUSE = "TOWNHOUSE"
    MULTI_FAMILY = "MULTI_FAMILY"
    APARTMENT = "APARTMENT"
    MANUFACTURED = "MANUFACTURED"
    LOT = "LOT"
    LAND = "LAND"


class ListingStatus(str, Enum):
    FOR_SALE = "FOR_SALE"
    FOR_RENT = "FOR_RENT"
    RECENTLY_SOLD = "RECENTLY_SOLD"
    COMING_SOON = "COMING_SOON"


class RentSource(str, Enum):
    REFERENCE = "REFERENCE"  # HUD fair market rent
    LISTING_API = "LISTING_API"  # listing API rent estimate
    FALLBACK = "FALLBACK"  # percentage of purchase price


class Confidence(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Property(FrozenModel):
    """A for-sale property as returned by the listing API."""

    property_id: str = Field(alias="zpid")
    address: str
    price: float
    bedrooms: int = 0
    bathrooms: float = 0
    living_area: float = 0
    lot_area_value: Optional[float] = None
    lot_area_unit: Optional[str] = None
    property_type: PropertyType = PropertyType.SINGLE_FAMILY
    listing_status: ListingStatus = ListingStatus.FOR_SALE
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    img_src: Optional[str] = None
    rent_zestimate: Optional[float] = None
    zestimate: Optional[float] = None
    price_change: Optional[float] = None
    date_price_changed: Optional[int] = None  # epoch milliseconds
    days_on_zillow: int = 0
    detail_url: str = ""
    country: str = "USA"
    currency: str = "USD"

    @field_validator("property_id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        # The listing API sends zpid as a number on some endpoints
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def zip_code(self) -> str | None:
        return extract_zip_code(self.address)


# --- Reference rent data ---------------------------------------------------


class ReferenceRentRecord(FrozenModel):
    """One HUD fair market rent row."""

    zip_code: str
    bedrooms: int
    fair_market_rent: float
    year: int
    county: str
    state: str
    property_type: Optional[str] = None


class ReferenceMatch(FrozenModel):
    matched: bool
    confidence: Confidence
    match_criteria: str = ""
    rent: Optional[float] = None
    record: Optional[ReferenceRentRecord] = None


class ReferenceDataStats(CamelModel):
    total_records: int = 0
    unique_zip_codes: int = 0
    bedroom_range: tuple[int, int] = (0, 0)
    year_range: tuple[int, int] = (0, 0)
    average_rent: float = 0.0


class RentalEstimate(FrozenModel):
    monthly_rent: float
    source: RentSource
    confidence: Confidence
    match_details: str = ""
    reference_match: Optional[ReferenceMatch] = None


class EstimateCheck(CamelModel):
    is_reasonable: bool
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


class RentEstimateStats(CamelModel):
    total_properties: int
    reference_matches: int = 0
    listing_api_estimates: int = 0
    fallback_estimates: int = 0
    average_rent: float = 0.0
    rent_range: tuple[float, float] = (0.0, 0.0)
    source_breakdown: dict[str, int] = Field(default_factory=dict)
    confidence_breakdown: dict[str, int] = Field(default_factory=dict)


# --- Calculator outputs ----------------------------------------------------


class MortgageCalculation(FrozenModel):
    monthly_payment: float
    monthly_principal: float  # first payment
    monthly_interest: float  # first payment
    total_loan_amount: float
    down_payment: float
    closing_costs: float
    points_cost: float
    total_cash_required: float


class OperatingExpenses(FrozenModel):
    property_management: float
    maintenance: float
    vacancy: float
    insurance: float
    property_tax: float
    hoa_fees: float
    utilities: float
    other: float
    total: float


class CashFlowMetrics(FrozenModel):
    monthly_rent: float
    monthly_mortgage_payment: float
    monthly_operating_expenses: float
    monthly_net_operating_income: float
    monthly_cash_flow: float
    annual_cash_flow: float
    annual_net_operating_income: float


class ROIMetrics(FrozenModel):
    cash_on_cash_return: float  # percentage
    cap_rate: float  # percentage
    gross_rent_multiplier: float
    debt_service_coverage_ratio: float
    total_cash_invested: float


class AppreciationMetrics(FrozenModel):
    current_value: float
    projected_value: float
    appreciation_value: float
    total_return: float
    annualized_return: float  # percentage


# --- Analysis results ------------------------------------------------------


class FinancialMetrics(FrozenModel):
    monthly_rent: float
    monthly_mortgage_payment: float
    monthly_operating_expenses: float
    monthly_cash_flow: float
    annual_cash_flow: float

    operating_expenses_breakdown: OperatingExpenses
    mortgage_details: MortgageCalculation

    cash_on_cash_return: float
    cap_rate: float
    total_return: float
    appreciation_value: float
    total_cash_invested: float
    gross_rent_multiplier: float
    debt_service_coverage_ratio: float

    net_operating_income: float  # annual
    monthly_principal_payment: float
    monthly_interest_payment: float

    projected_value: float
    total_cash_flow_projected: float
    total_return_projected: float
    annualized_return: float


class Assumptions(FrozenModel):
    mortgage_rate: float
    down_payment_percent: float
    property_management_percent: float
    maintenance_percent: float
    vacancy_rate: float
    insurance_percent: float
    property_tax_percent: float
    annual_appreciation_percent: float


class DataQuality(FrozenModel):
    has_rental_data: bool
    has_zestimate: bool
    has_price_history: bool
    missing_data_fields: list[str] = Field(default_factory=list)


class DetailedAnalysisResult(FrozenModel):
    """Investment analysis of one property."""

    property_id: str
    zip_code: Optional[str] = None
    analysis_date: datetime = Field(default_factory=utcnow)
    financial_metrics: FinancialMetrics
    rental_estimate: RentalEstimate
    assumptions: Assumptions
    data_quality: DataQuality


class ErrorContext(CamelModel):
    zip_code: Optional[str] = None
    buybox_name: Optional[str] = None
    operation: Optional[str] = None


class ErrorRecord(CamelModel):
    timestamp: datetime = Field(default_factory=utcnow)
    property_id: Optional[str] = None
    error_type: str
    error_message: str
    error_details: Optional[str] = None
    context: ErrorContext = Field(default_factory=ErrorContext)


class BatchSummary(CamelModel):
    average_cash_flow: float = 0.0
    average_roi: float = Field(0.0, alias="averageROI")
    average_cap_rate: float = 0.0
    top_performers: list[str] = Field(default_factory=list)  # property IDs
    data_quality_score: float = 0.0  # percentage


class BatchAnalysisResult(CamelModel):
    """Outcome of analyzing a collection of properties."""

    timestamp: datetime = Field(default_factory=utcnow)
    zip_codes: list[str] = Field(default_factory=list)
    total_properties: int
    successful_analyses: int
    failed_analyses: int
    results: list[DetailedAnalysisResult] = Field(default_factory=list)
    errors: list[ErrorRecord] = Field(default_factory=list)
    summary: BatchSummary = Field(default_factory=BatchSummary)


# --- Collection and storage ------------------------------------------------


class DateRange(CamelModel):
    start_date: date
    end_date: date

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class CollectionStats(CamelModel):
    total_properties: int = 0
    zip_codes_processed: int = 0
    api_requests_used: int = 0
    remaining_requests: int = 0


class CollectionResult(CamelModel):
    success: bool
    properties: list[Property] = Field(default_factory=list)
    errors: list[ErrorRecord] = Field(default_factory=list)
    stats: CollectionStats = Field(default_factory=CollectionStats)


class PropertyQualityReport(CamelModel):
    total_count: int = 0
    valid_count: int = 0
    invalid_count: int = 0
    missing_data_fields: dict[str, int] = Field(default_factory=dict)
