"""Order pricing: subtotal, VAT, shipping and total in exact decimal arithmetic.

Amounts are kept at the currency's minor-unit precision (two decimal places)
inside the domain and converted to integer minor units only at the payment
gateway boundary.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

import structlog

from ordering.settings import get_settings

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """Convert a stored amount (float, int, str or Decimal) to a cent-precision Decimal."""
    if isinstance(value, Decimal):
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    # str() of a float gives its shortest round-tripping repr, so 28.0 stays 28.00
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount) -> int:
    """Amount in integer minor units (centavos), as payment gateways expect it."""
    return int((to_decimal(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    return (Decimal(amount) / 100).quantize(CENT)


@dataclass(frozen=True)
class PriceBreakdown:
    items_subtotal: Decimal
    vat: Decimal
    shipping_fee: Decimal
    total_amount: Decimal

    def as_floats(self) -> dict:
        return {
            "items_subtotal": float(self.items_subtotal),
            "vat": float(self.vat),
            "shipping_fee": float(self.shipping_fee),
            "total_amount": float(self.total_amount),
        }


def line_subtotal(unit_price, quantity: int) -> Decimal:
    return to_decimal(to_decimal(unit_price) * quantity)


def price_lines(lines: list[dict]) -> PriceBreakdown:
    """Price a list of ``{"unit_price": ..., "quantity": ...}`` lines.

    VAT is a fraction of the items subtotal and the shipping fee is a flat
    amount per order, both taken from settings. The total is the exact sum.
    """
    settings = get_settings()
    subtotal = sum((line_subtotal(line["unit_price"], line["quantity"]) for line in lines), Decimal("0.00"))
    vat = to_decimal(subtotal * settings.vat_rate)
    shipping_fee = to_decimal(settings.shipping_fee)
    return PriceBreakdown(
        items_subtotal=subtotal,
        vat=vat,
        shipping_fee=shipping_fee,
        total_amount=subtotal + vat + shipping_fee,
    )


def amount_matches(expected_total, reported_minor_units: int, *, reference: str | None = None) -> bool:
    """Check a gateway-reported amount against the computed order total.

    Gateways round independently, so a difference of exactly one minor unit is
    accepted with a warning. Anything further apart is a mismatch.
    """
    expected = to_minor_units(expected_total)
    difference = abs(expected - int(reported_minor_units))
    if difference == 0:
        return True
    if difference == 1:
        logger.warning(
            "Gateway amount differs by one minor unit",
            expected=expected,
            reported=reported_minor_units,
            reference=reference,
        )
        return True
    return False
