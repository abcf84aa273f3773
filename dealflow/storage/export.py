"""CSV export of stored analysis results."""

from __future__ import annotations

import csv
import io
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable

from dealflow.models import DateRange, DetailedAnalysisResult
from dealflow.storage.repository import AnalysisRepository

logger = logging.getLogger(__name__)

NO_DATA = "No data available for export"

EXPORT_COLUMNS: dict[str, Callable[[DetailedAnalysisResult], Any]] = {
    "Property ID": lambda r: r.property_id,
    "Analysis Date": lambda r: r.analysis_date,
    "Monthly Rent": lambda r: r.financial_metrics.monthly_rent,
    "Monthly Cash Flow": lambda r: r.financial_metrics.monthly_cash_flow,
    "Annual Cash Flow": lambda r: r.financial_metrics.annual_cash_flow,
    "Cash-on-Cash Return %": lambda r: r.financial_metrics.cash_on_cash_return,
    "Cap Rate %": lambda r: r.financial_metrics.cap_rate,
    "Total Cash Invested": lambda r: r.financial_metrics.total_cash_invested,
    "Rent Source": lambda r: r.rental_estimate.source,
    "Rent Confidence": lambda r: r.rental_estimate.confidence,
}


def _cell(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def results_to_csv(
    results: list[DetailedAnalysisResult], columns: list[str] | None = None
) -> str:
    """Project results onto the named columns. Unknown column names are dropped."""
    if not results:
        return NO_DATA

    selected = [c for c in (columns or EXPORT_COLUMNS) if c in EXPORT_COLUMNS]
    buf = io.StringIO()
    csv.writer(buf, lineterminator="\n").writerow(selected)
    rows = csv.writer(buf, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for result in results:
        rows.writerow([_cell(EXPORT_COLUMNS[c](result)) for c in selected])

    logger.info("Exported %d analysis results to CSV with %d columns", len(results), len(selected))
    return buf.getvalue()[:-1]


def export_csv(
    repo: AnalysisRepository,
    zip_codes: list[str] | None = None,
    date_range: DateRange | None = None,
    columns: list[str] | None = None,
) -> str:
    results = repo.find_results(zip_codes=zip_codes, date_range=date_range)
    return results_to_csv(results, columns)
