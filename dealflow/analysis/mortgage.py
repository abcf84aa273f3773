"""Mortgage payment calculation."""

from __future__ import annotations

from dealflow.config import MortgageConfig
from dealflow.models import MortgageCalculation
from dealflow.rounding import to_cents


class MortgageCalculator:
    """Computes the monthly payment on a fixed-rate amortizing loan.

    Uses the PMT formula  P * r(1+r)^n / ((1+r)^n - 1).  The principal and
    interest split describes the first payment only; later payments shift
    toward principal.

    Purchase price and loan term are trusted. A zero term raises
    ZeroDivisionError, which the caller is expected to handle.
    """

    def calculate(self, purchase_price: float, cfg: MortgageConfig) -> MortgageCalculation:
        down_payment = purchase_price * (cfg.down_payment_percent / 100)
        loan_amount = purchase_price - down_payment
        closing_costs = purchase_price * (cfg.closing_costs_percent / 100)
        points_cost = loan_amount * (cfg.points / 100)
        total_cash_required = down_payment + closing_costs + points_cost

        monthly_rate = (cfg.interest_rate / 100) / 12
        num_payments = cfg.loan_term_years * 12

        if monthly_rate > 0:
            compounded = (1 + monthly_rate) ** num_payments
            monthly_payment = loan_amount * (monthly_rate * compounded) / (compounded - 1)
            monthly_interest = loan_amount * monthly_rate
            monthly_principal = monthly_payment - monthly_interest
        else:
            monthly_payment = loan_amount / num_payments
            monthly_principal = monthly_payment
            monthly_interest = 0.0

        return MortgageCalculation(
            monthly_payment=to_cents(monthly_payment),
            monthly_principal=to_cents(monthly_principal),
            monthly_interest=to_cents(monthly_interest),
            total_loan_amount=to_cents(loan_amount),
            down_payment=to_cents(down_payment),
            closing_costs=to_cents(closing_costs),
            points_cost=to_cents(points_cost),
            total_cash_required=to_cents(total_cash_required),
        )
