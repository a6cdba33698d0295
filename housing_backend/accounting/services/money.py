# accounting/services/money.py

"""
Money helpers shared by posting and reporting services.

- All amounts are Decimal, quantized to 2dp with ROUND_HALF_UP
- API payloads carry major-unit floats AND exact minor-unit integers
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value) -> Decimal:
    if value is None or value == "":
        return ZERO

    if isinstance(value, Decimal):
        amt = value
    else:
        try:
            amt = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise ValueError(f"Invalid money value: {value!r}") from exc

    if not amt.is_finite():
        raise ValueError(f"Invalid money value: {value!r}")

    return amt.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def to_major_number(amount: Decimal) -> float:
    return float(money(amount))


def to_minor_int(amount: Decimal) -> int:
    return int((money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def amount_payload(amount: Decimal) -> dict:
    return {"amount": to_major_number(amount), "amount_minor": to_minor_int(amount)}
