"""Contract catalog: categories, priced variants, and discounts.

DEFAULT_* hold the school's standard offer.  The in-memory store loads
them at startup and the initial migration seeds the same rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID, uuid5

# Stable ids so seeded rows match between the migration and memory
_CATALOG_NS = UUID("6f0c1d52-5b8e-4b7e-9a55-0d8f2c3c9a10")


@dataclass(frozen=True, slots=True)
class ContractCategory:
    id: UUID
    name: str  # ten_lesson_card|half_year_contract|...
    display_name: str


@dataclass(frozen=True, slots=True)
class ContractVariant:
    id: UUID
    category_id: UUID
    name: str
    total_lessons: int | None
    monthly_price: Decimal | None = None
    one_time_price: Decimal | None = None
    duration_months: int | None = None
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class ContractDiscount:
    id: UUID
    name: str
    discount_percent: Decimal
    is_active: bool = True


def _category(name: str, display_name: str) -> ContractCategory:
    return ContractCategory(
        id=uuid5(_CATALOG_NS, f"category:{name}"),
        name=name,
        display_name=display_name,
    )


def _variant(
    category: ContractCategory,
    name: str,
    total_lessons: int,
    *,
    monthly: str | None = None,
    one_time: str | None = None,
    months: int | None = None,
) -> ContractVariant:
    return ContractVariant(
        id=uuid5(_CATALOG_NS, f"variant:{category.name}:{name}"),
        category_id=category.id,
        name=name,
        total_lessons=total_lessons,
        monthly_price=Decimal(monthly) if monthly is not None else None,
        one_time_price=Decimal(one_time) if one_time is not None else None,
        duration_months=months,
    )


def _discount(name: str, percent: str) -> ContractDiscount:
    return ContractDiscount(
        id=uuid5(_CATALOG_NS, f"discount:{name}"),
        name=name,
        discount_percent=Decimal(percent),
    )


TEN_LESSON_CARD = _category("ten_lesson_card", "10er Karte")
HALF_YEAR_CONTRACT = _category("half_year_contract", "Halbjahresvertrag")
REPETITION_WORKSHOP = _category("repetition_workshop", "Repetitions-/Workshop-Stunden")

DEFAULT_CATEGORIES: tuple[ContractCategory, ...] = (
    TEN_LESSON_CARD,
    HALF_YEAR_CONTRACT,
    REPETITION_WORKSHOP,
)

DEFAULT_VARIANTS: tuple[ContractVariant, ...] = (
    _variant(TEN_LESSON_CARD, "10er Karte – 30min", 10, one_time="295.00"),
    _variant(TEN_LESSON_CARD, "10er Karte – 45min", 10, one_time="445.00"),
    _variant(TEN_LESSON_CARD, "10er Karte – 60min", 10, one_time="590.00"),
    _variant(HALF_YEAR_CONTRACT, "Einzel – 30min", 18, monthly="88.00", months=6),
    _variant(HALF_YEAR_CONTRACT, "Einzel – 45min", 18, monthly="130.00", months=6),
    _variant(HALF_YEAR_CONTRACT, "Einzel – 60min", 18, monthly="175.00", months=6),
    _variant(HALF_YEAR_CONTRACT, "Gruppe – 60min", 18, monthly="66.00", months=6),
    _variant(REPETITION_WORKSHOP, "Workshop Klassik", 1, one_time="200.00"),
)

DEFAULT_DISCOUNTS: tuple[ContractDiscount, ...] = (
    _discount("Family/Student Discount", "5.00"),
    _discount("Combo Booking (2 blocks)", "5.00"),
    _discount("Combo Booking (3 blocks)", "10.00"),
    _discount("Half-Year Prepayment", "5.00"),
    _discount("Full-Year Prepayment", "10.00"),
)

# Category name -> legacy contracts.type value
LEGACY_TYPE_BY_CATEGORY: dict[str, str] = {
    "ten_lesson_card": "ten_class_card",
    "half_year_contract": "half_year",
    "repetition_workshop": "workshop",
}
