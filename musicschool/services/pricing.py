"""Contract price calculation.

base price     variant.monthly_price, else variant.one_time_price
discount       sum of active selected discounts + custom percent, max 100
final price    base * (100 - discount) / 100, rounded to cents
payment type   "monthly" when the variant has a monthly price, else "one_time"
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from musicschool.models.catalog import ContractDiscount, ContractVariant

MAX_DISCOUNT_PERCENT = Decimal("100")
_CENT = Decimal("0.01")


@dataclass(frozen=True, slots=True)
class PriceQuote:
    base_price: Decimal | None
    discount_percent: Decimal
    final_price: Decimal | None
    payment_type: str | None  # monthly|one_time
    warnings: tuple[str, ...] = ()


def calculate_price(
    variant: ContractVariant | None,
    discounts: Iterable[ContractDiscount],
    custom_discount_percent: Decimal | None = None,
) -> PriceQuote:
    warnings: list[str] = []

    percent = Decimal("0")
    for d in discounts:
        if not d.is_active:
            warnings.append(f"discount '{d.name}' is inactive and was ignored")
            continue
        percent += d.discount_percent
    if custom_discount_percent is not None:
        percent += custom_discount_percent

    if percent > MAX_DISCOUNT_PERCENT:
        warnings.append(
            f"total discount {percent}% exceeds 100% and was capped at 100%"
        )
        percent = MAX_DISCOUNT_PERCENT

    if variant is None:
        return PriceQuote(
            base_price=None,
            discount_percent=percent,
            final_price=None,
            payment_type=None,
            warnings=tuple(warnings),
        )

    if variant.monthly_price is not None:
        base, payment_type = variant.monthly_price, "monthly"
    else:
        base, payment_type = variant.one_time_price, "one_time"

    final = None
    if base is not None:
        final = (base * (MAX_DISCOUNT_PERCENT - percent) / MAX_DISCOUNT_PERCENT).quantize(
            _CENT, rounding=ROUND_HALF_UP
        )

    return PriceQuote(
        base_price=base,
        discount_percent=percent,
        final_price=final,
        payment_type=payment_type,
        warnings=tuple(warnings),
    )
