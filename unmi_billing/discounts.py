"""
Unmi Bundle Discounts
=====================

Two independent discount views on multi-location pricing:

- calculate_bundle_discount: exact saving of the tier's own location
  pricing versus scaling the current price linearly
- calculate_volume_discount_percent: flat percentage ladder used for
  upsell messaging, independent of any catalog

They are intentionally separate and must not be merged; the flat ladder
never changes a quoted price.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from .errors import DivisionByZero
from .pricing import PricingCalculator, round_money

# (minimum total locations, percent off), highest threshold first
VOLUME_DISCOUNT_TIERS: List[Tuple[int, int]] = [
    (10, 30),
    (5, 20),
    (3, 15),
    (2, 10),
]


@dataclass(frozen=True)
class BundleDiscount:
    """Saving from adding locations to an existing configuration"""
    current_price: Decimal
    new_price: Decimal
    discount: Decimal
    percent_saved: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentPrice": str(self.current_price),
            "newPrice": str(self.new_price),
            "discount": str(self.discount),
            "percentSaved": str(self.percent_saved),
        }


@dataclass(frozen=True)
class BundleSizeRecommendation:
    recommended_locations: int
    discount_percent: int
    reasoning: str


def calculate_volume_discount_percent(total_locations: int) -> int:
    """Flat volume discount (percent) for a total location count"""
    for threshold, percent in VOLUME_DISCOUNT_TIERS:
        if total_locations >= threshold:
            return percent
    return 0


def recommend_bundle_size(avg_daily_calls: float) -> BundleSizeRecommendation:
    """Suggest a location bundle size from average daily call volume"""
    if avg_daily_calls < 10:
        return BundleSizeRecommendation(
            recommended_locations=1,
            discount_percent=0,
            reasoning="Your current call volume fits a single location",
        )
    if avg_daily_calls < 50:
        size = 3
    else:
        size = 5
    percent = calculate_volume_discount_percent(size)
    return BundleSizeRecommendation(
        recommended_locations=size,
        discount_percent=percent,
        reasoning=f"Add {size - 1} more locations for {percent}% discount",
    )


class BundleDiscountEngine:
    """Compares bundled location pricing against linear scaling"""

    def __init__(self, calculator: PricingCalculator):
        self.calculator = calculator

    def calculate_bundle_discount(
        self,
        tier_id: str,
        daily_messages: int,
        current_locations: int,
        additional_locations: int,
    ) -> BundleDiscount:
        """
        Saving from growing `current_locations` by `additional_locations`.

        linear_price is the current price scaled by the location ratio,
        i.e. what the bundle would cost with no volume benefit at all.

        Raises:
            DivisionByZero: current_locations <= 0
            InvalidTier: tier_id is not in the catalog
        """
        if current_locations <= 0:
            raise DivisionByZero("current_locations", current_locations)

        total_locations = current_locations + additional_locations
        current = self.calculator.calculate_monthly(tier_id, daily_messages, current_locations)
        expanded = self.calculator.calculate_monthly(tier_id, daily_messages, total_locations)

        linear_price = current.total_monthly * total_locations / current_locations
        discount = linear_price - expanded.total_monthly
        if linear_price:
            percent_saved = round_money(discount / linear_price * 100, places=1)
        else:
            percent_saved = Decimal("0.0")

        return BundleDiscount(
            current_price=current.total_monthly,
            new_price=expanded.total_monthly,
            discount=round_money(discount),
            percent_saved=percent_saved,
        )
