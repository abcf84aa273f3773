"""Cash flow for a buy-and-hold rental."""

from __future__ import annotations

from dealflow.models import CashFlowMetrics, MortgageCalculation, OperatingExpenses
from dealflow.rounding import to_cents


class CashFlowCalculator:
    """Net operating income and cash flow after debt service."""

    def calculate(
        self,
        monthly_rent: float,
        mortgage: MortgageCalculation,
        expenses: OperatingExpenses,
    ) -> CashFlowMetrics:
        monthly_mortgage_payment = mortgage.monthly_payment
        monthly_operating_expenses = expenses.total

        # NOI excludes the mortgage payment
        monthly_noi = monthly_rent - monthly_operating_expenses
        monthly_cash_flow = monthly_noi - monthly_mortgage_payment

        return CashFlowMetrics(
            monthly_rent=to_cents(monthly_rent),
            monthly_mortgage_payment=to_cents(monthly_mortgage_payment),
            monthly_operating_expenses=to_cents(monthly_operating_expenses),
            monthly_net_operating_income=to_cents(monthly_noi),
            monthly_cash_flow=to_cents(monthly_cash_flow),
            annual_cash_flow=to_cents(monthly_cash_flow * 12),
            annual_net_operating_income=to_cents(monthly_noi * 12),
        )
