from __future__ import annotations

from decimal import Decimal


def format_decimal(value: Decimal) -> str:
    """Render a decimal in canonical fixed-point form.

    Trailing zeros and exponents are dropped, so ``Decimal("21.50")`` becomes
    ``"21.5"`` and ``Decimal("2.1E+2")`` becomes ``"210"``. No rounding is applied.
    """
    if not value.is_finite():
        return str(value)
    if value.is_zero():
        return "0"
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
