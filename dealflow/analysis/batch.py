"""Batch analysis over a collection of properties."""

from __future__ import annotations

import logging
from statistics import fmean
from typing import Union

from dealflow.analysis.engine import PropertyAnalyzer
from dealflow.config import FinancialConfig
from dealflow.models import (
    BatchAnalysisResult,
    BatchSummary,
    DetailedAnalysisResult,
    ErrorContext,
    ErrorRecord,
    Property,
)
from dealflow.rounding import to_cents

logger = logging.getLogger(__name__)

TOP_PERFORMER_COUNT = 5

Outcome = Union[DetailedAnalysisResult, ErrorRecord]


def summarize_results(results: list[DetailedAnalysisResult]) -> BatchSummary:
    """Averages, top performers and data quality score over successful analyses."""
    if not results:
        return BatchSummary()

    metrics = [r.financial_metrics for r in results]
    ranked = sorted(results, key=lambda r: r.financial_metrics.cash_on_cash_return, reverse=True)
    good_quality = sum(
        1
        for r in results
        if r.data_quality.has_rental_data
        and r.data_quality.has_zestimate
        and len(r.data_quality.missing_data_fields) <= 2
    )

    return BatchSummary(
        average_cash_flow=to_cents(fmean(m.annual_cash_flow for m in metrics)),
        average_roi=to_cents(fmean(m.cash_on_cash_return for m in metrics)),
        average_cap_rate=to_cents(fmean(m.cap_rate for m in metrics)),
        top_performers=[r.property_id for r in ranked[:TOP_PERFORMER_COUNT]],
        data_quality_score=to_cents(good_quality / len(results) * 100),
    )


class BatchAnalyzer:
    """Analyzes properties one by one, recording failures instead of raising."""

    def __init__(self, property_analyzer: PropertyAnalyzer | None = None):
        self.property_analyzer = property_analyzer or PropertyAnalyzer()

    def analyze_batch(
        self, properties: list[Property], config: FinancialConfig
    ) -> BatchAnalysisResult:
        zip_codes = list(dict.fromkeys(p.zip_code for p in properties if p.zip_code))
        logger.info(
            "Starting batch analysis for %d zip codes, %d properties",
            len(zip_codes),
            len(properties),
        )

        results: list[DetailedAnalysisResult] = []
        errors: list[ErrorRecord] = []
        for prop in properties:
            outcome = self._analyze_one(prop, config)
            if isinstance(outcome, ErrorRecord):
                errors.append(outcome)
            else:
                results.append(outcome)

        logger.info(
            "Batch analysis completed: %d successful, %d failed", len(results), len(errors)
        )
        return BatchAnalysisResult(
            zip_codes=zip_codes,
            total_properties=len(properties),
            successful_analyses=len(results),
            failed_analyses=len(errors),
            results=results,
            errors=errors,
            summary=summarize_results(results),
        )

    def _analyze_one(self, prop: Property, config: FinancialConfig) -> Outcome:
        try:
            return self.property_analyzer.analyze(prop, config)
        except Exception as e:
            logger.warning("Failed to analyze property %s: %s", prop.property_id, e)
            cause = e.__cause__ or e
            return ErrorRecord(
                property_id=prop.property_id,
                error_type="ANALYSIS_ERROR",
                error_message=f"Failed to analyze property: {e}",
                error_details=f"{type(cause).__name__}: {cause}",
                context=ErrorContext(zip_code=prop.zip_code, operation="batch_analysis"),
            )
