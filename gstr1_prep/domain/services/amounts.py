# gstr1_prep/domain/services/amounts.py
"""
Money helpers shared by the validator, fixer and classifier.

Spreadsheet amounts arrive as floats. Arithmetic that feeds a comparison
or a filed figure goes through Decimal and is rounded half-up, the way
the portal and spreadsheet tools round positive amounts.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

_CENT = Decimal("0.01")
_UNIT = Decimal("1")


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0.00")


def round2_decimal(value) -> Decimal:
    return to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def round2(value) -> float:
    """Round to 2 decimals (half-up) and return a float for JSON."""
    return float(round2_decimal(value))


def expected_tax(taxable_value, tax_rate) -> Decimal:
    """round(taxable * rate) / 100: the product is rounded before scaling."""
    product = to_decimal(taxable_value) * to_decimal(tax_rate)
    return product.quantize(_UNIT, rounding=ROUND_HALF_UP) / Decimal("100")
