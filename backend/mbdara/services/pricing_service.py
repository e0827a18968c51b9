# Overview: Pure pricing rules for transaction line items and order totals.

"""
Pricing Calculator

WHY: Line totals, order discounts and profit are computed in one place so
transaction creation, tests and reports agree on the arithmetic.

RULES:
- Bundle tier: N units for a flat price, applied greedily; the remainder is
  charged at unit price. Below N units the tier is ignored entirely.
- Single-product discount: percentage off the line total of one product.
- Whole-order discount: percentage off the summed line totals, applied once
  after single-product discounts.
- All arithmetic is Decimal. Line totals and order totals are kept in cents,
  profit is rounded to whole currency units.

No database access here.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from mbdara.money import quantize_cents, quantize_units, to_decimal

HUNDRED = Decimal("100")

# Discount scopes, stored verbatim in discounts.type
SCOPE_SINGLE_PRODUCT = "individual_item"
SCOPE_WHOLE_ORDER = "for_all_item"
DISCOUNT_SCOPES = (SCOPE_SINGLE_PRODUCT, SCOPE_WHOLE_ORDER)


@dataclass(frozen=True)
class BundleTier:
    """`quantity` units sold together for the flat `price`."""
    quantity: int
    price: Decimal

    def __post_init__(self):
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError("bundle quantity must be an integer")
        if self.quantity <= 0:
            raise ValueError("bundle_quantity must be greater than 0")
        price = to_decimal(self.price)
        if price < 0:
            raise ValueError("bundle_price must be greater than or equal to 0")
        object.__setattr__(self, "price", price)


@dataclass(frozen=True)
class LineDiscount:
    scope: str
    percentage: Decimal
    applies_to_this_product: bool = False


def bundle_subtotal(unit_price: Decimal, quantity: int, tier: BundleTier | None) -> Decimal:
    if tier is not None and quantity >= tier.quantity:
        bundles, remainder = divmod(quantity, tier.quantity)
        return bundles * tier.price + remainder * unit_price
    return quantity * unit_price


def price_line_item(
    unit_price,
    quantity: int,
    bundle_tier: BundleTier | None = None,
    discount: LineDiscount | None = None,
) -> Decimal:
    """
    Charge for one transaction item (the line total, not a unit price).

    unit_price >= 0, quantity > 0. The single-product discount only applies
    when its scope is individual_item and it targets this product.
    """
    unit_price = to_decimal(unit_price)
    if unit_price < 0:
        raise ValueError("unit price must be >= 0")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValueError("quantity must be a positive integer")

    subtotal = bundle_subtotal(unit_price, quantity, bundle_tier)

    if (
        discount is not None
        and discount.scope == SCOPE_SINGLE_PRODUCT
        and discount.applies_to_this_product
    ):
        subtotal -= subtotal * (to_decimal(discount.percentage) / HUNDRED)

    return quantize_cents(subtotal)


def apply_order_discount(total: Decimal, percentage) -> Decimal:
    """Whole-order discount applied once to the summed line totals."""
    total = to_decimal(total)
    return quantize_cents(total - total * (to_decimal(percentage) / HUNDRED))


def compute_profit(total_amount: Decimal, total_cogs: Decimal, rounding: str = "ROUND_HALF_UP") -> Decimal:
    return quantize_units(to_decimal(total_amount) - to_decimal(total_cogs), rounding)
