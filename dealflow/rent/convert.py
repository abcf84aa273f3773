"""Convert HUD Fair Market Rent spreadsheets (saved as CSV) to reference JSON.

Two layouts are understood:

* long: one row per zip code and bedroom count, with zip, bedrooms and rent
  columns (year, county, state and property type optional)
* wide: the HUD Small Area FMR layout, one row per zip code with ``0BR`` to
  ``4BR`` rent columns. The ``90%`` and ``110%`` payment standard columns are
  ignored.
"""

from __future__ import annotations

import csv
import json
import logging
import re
from datetime import date
from pathlib import Path

from pydantic import Field

from dealflow.errors import ReferenceDataError
from dealflow.models import CamelModel, ReferenceRentRecord

logger = logging.getLogger(__name__)

_BEDROOM_COLUMN = re.compile(r"([0-4])br")

_LONG_COLUMNS = {
    "zip_code": ["zipcode", "zip_code", "zip"],
    "bedrooms": ["bedrooms", "bedroom_count", "beds"],
    "rent": ["fairmarketrent", "fair_market_rent", "rent", "fmr"],
    "year": ["year"],
    "county": ["county"],
    "state": ["state"],
    "property_type": ["propertytype", "property_type", "type"],
}


class ConversionReport(CamelModel):
    layout: str
    rows: int = 0
    records: int = 0
    errors: list[str] = Field(default_factory=list)


def _find_column(headers: list[str], names: list[str]) -> int | None:
    for name in names:
        for index, header in enumerate(headers):
            if name in header:
                return index
    return None


def _bedroom_columns(headers: list[str]) -> dict[int, int]:
    columns: dict[int, int] = {}
    for index, header in enumerate(headers):
        if "90%" in header or "110%" in header:
            continue
        match = _BEDROOM_COLUMN.search(header)
        if match:
            columns.setdefault(int(match.group(1)), index)
    return columns


def _money(value: str) -> float:
    return float(value.replace("$", "").replace(",", "").strip() or 0)


def _cell(row: list[str], index: int | None) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index].strip()


def _parse_long(
    headers: list[str], rows: list[list[str]], default_year: int
) -> tuple[list[ReferenceRentRecord], list[str]]:
    cols = {key: _find_column(headers, names) for key, names in _LONG_COLUMNS.items()}
    missing = [key for key in ("zip_code", "bedrooms", "rent") if cols[key] is None]
    if missing:
        raise ReferenceDataError(f"Required columns not found: {', '.join(missing)}")

    records: list[ReferenceRentRecord] = []
    errors: list[str] = []
    for line_no, row in enumerate(rows, start=2):
        zip_code = _cell(row, cols["zip_code"])
        try:
            bedrooms = int(_cell(row, cols["bedrooms"]))
            rent = _money(_cell(row, cols["rent"]))
        except ValueError:
            errors.append(f"Row {line_no}: invalid bedrooms or rent for zip code {zip_code!r}")
            continue
        if not zip_code:
            errors.append(f"Row {line_no}: missing zip code")
            continue

        year_text = _cell(row, cols["year"])
        records.append(
            ReferenceRentRecord(
                zip_code=zip_code,
                bedrooms=bedrooms,
                fair_market_rent=rent,
                year=int(year_text) if year_text.isdigit() else default_year,
                county=_cell(row, cols["county"]),
                state=_cell(row, cols["state"]),
                property_type=_cell(row, cols["property_type"]) or None,
            )
        )
    return records, errors


def _parse_wide(
    zip_index: int,
    bedroom_columns: dict[int, int],
    rows: list[list[str]],
    default_year: int,
    state: str,
) -> tuple[list[ReferenceRentRecord], list[str]]:
    records: list[ReferenceRentRecord] = []
    errors: list[str] = []
    for line_no, row in enumerate(rows, start=2):
        zip_code = _cell(row, zip_index)
        if len(zip_code) != 5:
            errors.append(f"Row {line_no}: invalid zip code {zip_code!r}")
            continue

        for bedrooms, index in sorted(bedroom_columns.items()):
            try:
                rent = _money(_cell(row, index))
            except ValueError:
                errors.append(f"Row {line_no}: invalid {bedrooms}BR rent")
                continue
            if rent > 0:
                records.append(
                    ReferenceRentRecord(
                        zip_code=zip_code,
                        bedrooms=bedrooms,
                        fair_market_rent=rent,
                        year=default_year,
                        county="",
                        state=state,
                    )
                )
    return records, errors


def read_hud_csv(
    csv_path: str | Path, year: int | None = None, state: str = ""
) -> tuple[list[ReferenceRentRecord], ConversionReport]:
    """Parse a HUD CSV export into reference records.

    Rows that cannot be parsed are reported, not raised.
    """
    csv_path = Path(csv_path)
    if not csv_path.exists():
        raise ReferenceDataError(f"CSV file not found: {csv_path}")

    with open(csv_path, newline="", encoding="utf-8-sig") as f:
        lines = [row for row in csv.reader(f) if any(cell.strip() for cell in row)]
    if not lines:
        raise ReferenceDataError(f"CSV file is empty: {csv_path}")

    headers = [h.strip().lower() for h in lines[0]]
    rows = lines[1:]
    default_year = year or date.today().year

    zip_index = _find_column(headers, _LONG_COLUMNS["zip_code"])
    bedroom_columns = _bedroom_columns(headers)
    if zip_index is not None and bedroom_columns:
        layout = "wide"
        records, errors = _parse_wide(zip_index, bedroom_columns, rows, default_year, state)
    else:
        layout = "long"
        records, errors = _parse_long(headers, rows, default_year)

    report = ConversionReport(layout=layout, rows=len(rows), records=len(records), errors=errors)
    logger.info(
        "Parsed %s (%s layout): %d rows, %d records, %d errors",
        csv_path,
        layout,
        report.rows,
        report.records,
        len(errors),
    )
    if errors:
        logger.warning("First conversion errors: %s", errors[:5])
    return records, report


def convert_hud_csv(
    csv_path: str | Path,
    json_path: str | Path,
    year: int | None = None,
    state: str = "",
) -> ConversionReport:
    """Convert a HUD CSV to the reference JSON array read by ReferenceRentStore."""
    records, report = read_hud_csv(csv_path, year=year, state=state)
    if not records:
        raise ReferenceDataError(f"No valid HUD records found in {csv_path}")

    json_path = Path(json_path)
    json_path.parent.mkdir(parents=True, exist_ok=True)
    payload = [r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in records]
    json_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logger.info("Wrote %d HUD records to %s", len(records), json_path)
    return report
