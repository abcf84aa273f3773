"""Property analysis engine that runs every calculator for one property."""

from __future__ import annotations

import logging

from dealflow.analysis.cashflow import CashFlowCalculator
from dealflow.analysis.expenses import OperatingExpenseCalculator
from dealflow.analysis.mortgage import MortgageCalculator
from dealflow.analysis.returns import AppreciationProjector, ROICalculator
from dealflow.config import FinancialConfig
from dealflow.errors import AnalysisError
from dealflow.models import (
    Assumptions,
    DataQuality,
    DetailedAnalysisResult,
    FinancialMetrics,
    Property,
    RentalEstimate,
    RentSource,
)
from dealflow.rent.estimator import RentalEstimator
from dealflow.rounding import to_cents

logger = logging.getLogger(__name__)

# Optional listing fields counted as missing when absent or zero
_OPTIONAL_FIELDS = {
    "rentZestimate": "rent_zestimate",
    "zestimate": "zestimate",
    "imgSrc": "img_src",
    "priceChange": "price_change",
    "datePriceChanged": "date_price_changed",
}


def assess_data_quality(prop: Property, estimate: RentalEstimate) -> DataQuality:
    missing = [name for name, attr in _OPTIONAL_FIELDS.items() if not getattr(prop, attr)]
    return DataQuality(
        has_rental_data=estimate.source != RentSource.FALLBACK,
        has_zestimate=bool(prop.zestimate),
        has_price_history=bool(prop.price_change),
        missing_data_fields=missing,
    )


def snapshot_assumptions(config: FinancialConfig) -> Assumptions:
    return Assumptions(
        mortgage_rate=config.mortgage.interest_rate,
        down_payment_percent=config.mortgage.down_payment_percent,
        property_management_percent=config.operating_expenses.property_management_percent,
        maintenance_percent=config.operating_expenses.maintenance_percent,
        vacancy_rate=config.operating_expenses.vacancy_rate,
        insurance_percent=config.operating_expenses.insurance_percent,
        property_tax_percent=config.operating_expenses.property_tax_percent,
        annual_appreciation_percent=config.appreciation.annual_appreciation_percent,
    )


class PropertyAnalyzer:
    """Analyzes a property as a buy-and-hold rental.

    Steps, in order: rent estimate, mortgage, operating expenses, cash flow,
    ROI ratios, appreciation. Any failure is raised as AnalysisError carrying
    the property id.
    """

    def __init__(self, rental_estimator: RentalEstimator | None = None):
        self.rental_estimator = rental_estimator or RentalEstimator()
        self.mortgage = MortgageCalculator()
        self.expenses = OperatingExpenseCalculator()
        self.cash_flow = CashFlowCalculator()
        self.roi = ROICalculator()
        self.appreciation = AppreciationProjector()

    def analyze(self, prop: Property, config: FinancialConfig) -> DetailedAnalysisResult:
        try:
            return self._analyze(prop, config)
        except Exception as e:
            logger.error("Error analyzing property %s: %s", prop.property_id, e)
            raise AnalysisError(prop.property_id, str(e) or type(e).__name__) from e

    def _analyze(self, prop: Property, config: FinancialConfig) -> DetailedAnalysisResult:
        estimate = self.rental_estimator.estimate(prop, config.rental)
        rent = estimate.monthly_rent

        mortgage = self.mortgage.calculate(prop.price, config.mortgage)
        expenses = self.expenses.calculate(rent, prop.price, config.operating_expenses)
        cash_flow = self.cash_flow.calculate(rent, mortgage, expenses)
        roi = self.roi.calculate(cash_flow, mortgage, prop.price)
        appreciation = self.appreciation.project(
            prop.price, config.appreciation, cash_flow.annual_cash_flow
        )

        holding_years = config.appreciation.holding_period_years
        metrics = FinancialMetrics(
            monthly_rent=rent,
            monthly_mortgage_payment=mortgage.monthly_payment,
            monthly_operating_expenses=expenses.total,
            monthly_cash_flow=cash_flow.monthly_cash_flow,
            annual_cash_flow=cash_flow.annual_cash_flow,
            operating_expenses_breakdown=expenses,
            mortgage_details=mortgage,
            cash_on_cash_return=roi.cash_on_cash_return,
            cap_rate=roi.cap_rate,
            total_return=appreciation.total_return,
            appreciation_value=appreciation.appreciation_value,
            total_cash_invested=roi.total_cash_invested,
            gross_rent_multiplier=roi.gross_rent_multiplier,
            debt_service_coverage_ratio=roi.debt_service_coverage_ratio,
            net_operating_income=cash_flow.annual_net_operating_income,
            monthly_principal_payment=mortgage.monthly_principal,
            monthly_interest_payment=mortgage.monthly_interest,
            projected_value=appreciation.projected_value,
            total_cash_flow_projected=to_cents(cash_flow.annual_cash_flow * holding_years),
            total_return_projected=appreciation.total_return,
            annualized_return=appreciation.annualized_return,
        )

        return DetailedAnalysisResult(
            property_id=prop.property_id,
            zip_code=prop.zip_code,
            financial_metrics=metrics,
            rental_estimate=estimate,
            assumptions=snapshot_assumptions(config),
            data_quality=assess_data_quality(prop, estimate),
        )
