"""
Price margin schemas.
"""

from decimal import Decimal
from typing import Optional

from pydantic import Field

from models.base import BaseSchema


class SuggestedPrice(BaseSchema):
    """Cost marked up by a fixed percentage."""

    percent: int = Field(..., ge=0, description="Markup over cost")
    price: Decimal = Field(..., description="Cost × (1 + percent/100)")


class MarginView(BaseSchema):
    """
    Derived margin figures for a record with a usable Cost.

    Read-only; never persisted.
    """

    cost: Decimal = Field(..., gt=0, description="Parsed Cost")
    price: Decimal = Field(..., description="Parsed Price (0 when absent)")
    margin: Decimal = Field(..., description="Price − Cost")
    margin_percent: Decimal = Field(..., description="Margin as % of cost")
    suggested_prices: list[SuggestedPrice] = Field(default_factory=list)


class MarginResponse(BaseSchema):
    """Margin lookup for one key. margin is null when Cost is unusable."""

    key: str
    margin: Optional[MarginView] = None
    message: str = ""
