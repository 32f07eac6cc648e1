"""
Margin service — price margin view for a catalog or staged record.

Cost and Price arrive as free-form currency strings ("$4.00", "1,299.99").
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

import structlog

from models.pricing import MarginView, SuggestedPrice

logger = structlog.get_logger(__name__)

COST_COLUMN = "Cost"
PRICE_COLUMN = "Price"

SUGGESTED_MARKUPS = (25, 30, 35, 40, 45, 50, 60, 70, 80)

CENTS = Decimal("0.01")
_NON_NUMERIC = re.compile(r"[^0-9.\-]+")


def parse_currency(value: Optional[str]) -> Optional[Decimal]:
    """
    Parse a currency string.

    '$1,299.99' -> Decimal('1299.99')
    '-$3.50'    -> Decimal('-3.50')
    'n/a'       -> None
    """
    if not value:
        return None

    cleaned = _NON_NUMERIC.sub("", value)
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def find_column_value(record: dict, column: str) -> Optional[str]:
    """Exact column name first, then a case-insensitive match."""
    if column in record:
        return record[column]
    lowered = column.lower()
    for key, value in record.items():
        if key.lower() == lowered:
            return value
    return None


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_margin(record: dict) -> Optional[MarginView]:
    """
    Build the margin view for a record.

    Returns None when Cost is missing, unparseable, not positive once
    rounded to cents, or too large to round. A missing or unparseable
    Price counts as 0.
    """
    cost = parse_currency(find_column_value(record, COST_COLUMN))
    if cost is None:
        return None

    price = parse_currency(find_column_value(record, PRICE_COLUMN))
    if price is None:
        price = Decimal("0")

    try:
        rounded_cost = round_money(cost)
        if rounded_cost <= 0:
            return None

        margin = price - cost
        view = MarginView(
            cost=rounded_cost,
            price=round_money(price),
            margin=round_money(margin),
            margin_percent=round_money(margin / cost * 100),
            suggested_prices=[
                SuggestedPrice(
                    percent=percent,
                    price=round_money(cost * (1 + Decimal(percent) / 100)),
                )
                for percent in SUGGESTED_MARKUPS
            ],
        )
    except InvalidOperation:
        logger.warning("margin_out_of_range", cost=str(cost), price=str(price))
        return None

    logger.debug(
        "margin_computed",
        cost=str(view.cost),
        margin=str(view.margin),
        margin_percent=str(view.margin_percent),
    )
    return view
