"""Return metrics: ROI ratios and long-term appreciation."""

from __future__ import annotations

from dealflow.config import AppreciationConfig
from dealflow.models import (
    AppreciationMetrics,
    CashFlowMetrics,
    MortgageCalculation,
    ROIMetrics,
)
from dealflow.rounding import to_cents


class ROICalculator:
    """Cash-on-cash return, cap rate, GRM and DSCR.

    Each ratio is 0 when its denominator is not positive.
    """

    def calculate(
        self,
        cash_flow: CashFlowMetrics,
        mortgage: MortgageCalculation,
        purchase_price: float,
    ) -> ROIMetrics:
        total_cash_invested = mortgage.total_cash_required
        annual_rent = cash_flow.monthly_rent * 12
        annual_debt_service = mortgage.monthly_payment * 12

        cash_on_cash = (
            (cash_flow.annual_cash_flow / total_cash_invested) * 100
            if total_cash_invested > 0
            else 0
        )
        cap_rate = (
            (cash_flow.annual_net_operating_income / purchase_price) * 100
            if purchase_price > 0
            else 0
        )
        grm = purchase_price / annual_rent if annual_rent > 0 else 0
        dscr = (
            cash_flow.annual_net_operating_income / annual_debt_service
            if annual_debt_service > 0
            else 0
        )

        return ROIMetrics(
            cash_on_cash_return=to_cents(cash_on_cash),
            cap_rate=to_cents(cap_rate),
            gross_rent_multiplier=to_cents(grm),
            debt_service_coverage_ratio=to_cents(dscr),
            total_cash_invested=to_cents(total_cash_invested),
        )


class AppreciationProjector:
    """Compound appreciation over the holding period."""

    def project(
        self,
        current_value: float,
        cfg: AppreciationConfig,
        annual_cash_flow: float,
    ) -> AppreciationMetrics:
        rate = cfg.annual_appreciation_percent / 100
        years = cfg.holding_period_years

        projected_value = current_value * (1 + rate) ** years
        appreciation_value = projected_value - current_value
        total_return = annual_cash_flow * years + appreciation_value

        if years > 0:
            annualized = ((projected_value / current_value) ** (1 / years) - 1) * 100
        else:
            annualized = 0

        return AppreciationMetrics(
            current_value=to_cents(current_value),
            projected_value=to_cents(projected_value),
            appreciation_value=to_cents(appreciation_value),
            total_return=to_cents(total_return),
            annualized_return=to_cents(annualized),
        )
