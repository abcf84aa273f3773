"""Tests for data models."""

from dealflow.address import extract_zip_code
from dealflow.models import (
    BatchAnalysisResult,
    BatchSummary,
    DateRange,
    ListingStatus,
    Property,
    PropertyType,
    RentalEstimate,
    RentSource,
    Confidence,
)


def test_property_from_listing_payload():
    prop = Property.model_validate(
        {
            "zpid": "12345",
            "address": "123 Main St, Columbus, OH 43211",
            "price": 150_000,
            "bedrooms": 3,
            "bathrooms": 2,
            "livingArea": 1200,
            "propertyType": "SINGLE_FAMILY",
            "listingStatus": "FOR_SALE",
            "rentZestimate": 1200,
            "daysOnZillow": 4,
        }
    )
    assert prop.property_id == "12345"
    assert prop.living_area == 1200
    assert prop.rent_zestimate == 1200
    assert prop.days_on_zillow == 4
    assert prop.property_type == PropertyType.SINGLE_FAMILY
    assert prop.listing_status == ListingStatus.FOR_SALE


def test_property_numeric_zpid_coerced():
    prop = Property.model_validate({"zpid": 987, "address": "x", "price": 1})
    assert prop.property_id == "987"


def test_property_defaults():
    prop = Property(property_id="1", address="1 Oak Ave, Dayton, OH 45402", price=90_000)
    assert prop.bedrooms == 0
    assert prop.rent_zestimate is None
    assert prop.country == "USA"
    assert prop.currency == "USD"


def test_property_zip_code():
    prop = Property(property_id="1", address="1 Oak Ave, Dayton, OH 45402-1234", price=90_000)
    assert prop.zip_code == "45402"


def test_property_dump_uses_listing_keys():
    prop = Property(property_id="1", address="a, OH 43211", price=10, living_area=800)
    data = prop.model_dump(mode="json", by_alias=True)
    assert data["zpid"] == "1"
    assert data["livingArea"] == 800
    assert "property_id" not in data


def test_extract_zip_code():
    assert extract_zip_code("123 Main St, Columbus, OH 43211") == "43211"
    assert extract_zip_code("123 Main St, Columbus, OH") is None
    assert extract_zip_code("123 Main St Columbus OH 43211") is None
    assert extract_zip_code("") is None


def test_extract_zip_code_only_checks_last_segment():
    # Zip in an earlier segment is not found
    assert extract_zip_code("Unit 43211, Columbus, OH") is None


def test_date_range_contains():
    from datetime import date

    window = DateRange(start_date=date(2024, 1, 1), end_date=date(2024, 1, 31))
    assert window.contains(date(2024, 1, 1))
    assert window.contains(date(2024, 1, 31))
    assert not window.contains(date(2024, 2, 1))


def test_rental_estimate_serializes_enums():
    estimate = RentalEstimate(
        monthly_rent=1200, source=RentSource.LISTING_API, confidence=Confidence.MEDIUM
    )
    data = estimate.model_dump(mode="json", by_alias=True)
    assert data["monthlyRent"] == 1200
    assert data["source"] == "LISTING_API"
    assert data["confidence"] == "MEDIUM"


def test_batch_summary_uses_roi_acronym_key():
    data = BatchSummary(average_roi=5.1).model_dump(mode="json", by_alias=True)
    assert data["averageROI"] == 5.1
    assert "averageRoi" not in data

    stored = BatchAnalysisResult.model_validate(
        {
            "zipCodes": ["43211"],
            "totalProperties": 0,
            "successfulAnalyses": 0,
            "failedAnalyses": 0,
            "summary": {"averageROI": 5.1},
        }
    )
    assert stored.summary.average_roi == 5.1
