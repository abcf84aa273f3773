"""Monthly operating expense breakdown."""

from __future__ import annotations

from dealflow.config import OperatingExpensesConfig
from dealflow.models import OperatingExpenses
from dealflow.rounding import to_cents


class OperatingExpenseCalculator:
    """Monthly operating expenses for a rental, excluding debt service.

    Management, maintenance, vacancy, utilities and other expenses scale with
    rent. Insurance and property tax are annual percentages of the purchase
    price spread over twelve months. HOA fees are a flat monthly amount.
    """

    def calculate(
        self,
        monthly_rent: float,
        purchase_price: float,
        cfg: OperatingExpensesConfig,
    ) -> OperatingExpenses:
        property_management = monthly_rent * (cfg.property_management_percent / 100)
        maintenance = monthly_rent * (cfg.maintenance_percent / 100)
        vacancy = monthly_rent * (cfg.vacancy_rate / 100)
        utilities = monthly_rent * (cfg.utilities_percent / 100)
        other = monthly_rent * (cfg.other_expenses_percent / 100)

        insurance = (purchase_price * (cfg.insurance_percent / 100)) / 12
        property_tax = (purchase_price * (cfg.property_tax_percent / 100)) / 12
        hoa_fees = cfg.hoa_fees

        # Total comes from the unrounded items, so it can differ by a cent
        # from the sum of the rounded fields.
        total = (
            property_management
            + maintenance
            + vacancy
            + insurance
            + property_tax
            + hoa_fees
            + utilities
            + other
        )

        return OperatingExpenses(
            property_management=to_cents(property_management),
            maintenance=to_cents(maintenance),
            vacancy=to_cents(vacancy),
            insurance=to_cents(insurance),
            property_tax=to_cents(property_tax),
            hoa_fees=to_cents(hoa_fees),
            utilities=to_cents(utilities),
            other=to_cents(other),
            total=to_cents(total),
        )
