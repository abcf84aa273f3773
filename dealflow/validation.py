"""Property data checks.

The analysis engine does not filter its input; callers that want only usable
properties run them through `validate_property` or `partition_properties`.
"""

from __future__ import annotations

from collections import Counter

from dealflow.errors import ValidationError
from dealflow.models import Property, PropertyQualityReport

_OPTIONAL_FIELDS = {
    "rentZestimate": "rent_zestimate",
    "zestimate": "zestimate",
    "imgSrc": "img_src",
}


def missing_required_fields(prop: Property) -> list[str]:
    missing = []
    if not prop.property_id:
        missing.append("zpid")
    if not prop.address:
        missing.append("address")
    if not prop.price or prop.price <= 0:
        missing.append("price")
    if not prop.living_area or prop.living_area <= 0:
        missing.append("livingArea")
    return missing


def validate_property(prop: Property) -> Property:
    """Return the property unchanged, or raise ValidationError naming the bad fields."""
    missing = missing_required_fields(prop)
    if missing:
        raise ValidationError(
            f"Property {prop.property_id or '<unknown>'} is missing or has invalid "
            f"fields: {', '.join(missing)}",
            fields=missing,
        )
    return prop


def partition_properties(
    properties: list[Property],
) -> tuple[list[Property], list[Property], PropertyQualityReport]:
    """Split properties into (valid, invalid) and count missing fields across all of them."""
    valid: list[Property] = []
    invalid: list[Property] = []
    missing_counts: Counter[str] = Counter()

    for prop in properties:
        required = missing_required_fields(prop)
        optional = [name for name, attr in _OPTIONAL_FIELDS.items() if not getattr(prop, attr)]
        missing_counts.update(required + optional)
        (invalid if required else valid).append(prop)

    report = PropertyQualityReport(
        total_count=len(properties),
        valid_count=len(valid),
        invalid_count=len(invalid),
        missing_data_fields=dict(missing_counts),
    )
    return valid, invalid, report
