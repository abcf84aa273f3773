"""Cent rounding shared by the calculators."""

from __future__ import annotations

import math


def to_cents(value: float) -> float:
    """Round to 2 decimals, halves toward positive infinity.

    Differs from round(), which rounds halves to even. Stored results were
    produced with this rule, so it must not change.
    """
    return math.floor(value * 100 + 0.5) / 100
