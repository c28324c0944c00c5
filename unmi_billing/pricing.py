"""
Unmi Pricing Calculator
=======================

Deterministic monthly/yearly price breakdown for a tier and a resource
configuration. Pure functions over the static tier catalog: no I/O and
no shared mutable state, so a single instance can serve every request.

Rounding: every amount is rounded to 2 decimal places with ROUND_HALF_UP
(ties away from zero) on Decimal values, never on binary floats.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Union

from .errors import InvalidTier, TierNotFound
from .tiers import CURRENT_CATALOG, LocationPricingMode, PricingTier, TierCatalog

Number = Union[int, float, str, Decimal]

DAYS_PER_MONTH = 30
MONTHS_PER_YEAR = 12
ANNUAL_DISCOUNT_FACTOR = Decimal("0.90")  # 10% off when billed yearly

_CENT = Decimal("0.01")


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without inheriting binary float error"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round_money(value: Number, places: int = 2) -> Decimal:
    """Round half away from zero to `places` decimals"""
    exponent = _CENT if places == 2 else Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def clamp(value: int, lower: int, upper: Optional[int]) -> int:
    """Clamp into [lower, upper]; upper=None means unbounded"""
    if value < lower:
        return lower
    if upper is not None and value > upper:
        return upper
    return value


@dataclass(frozen=True)
class PricingCalculation:
    """Price breakdown for one tier/resource configuration. Never persisted."""
    tier: PricingTier
    daily_messages: int
    locations: int
    departments: int
    base_price: Decimal
    messages_cost: Decimal
    locations_cost: Decimal
    departments_cost: Decimal
    location_discount: Decimal
    total_monthly: Decimal
    total_yearly: Decimal
    # pre-clamp inputs; None when unknown
    requested_daily_messages: Optional[int] = field(default=None, compare=False)
    requested_locations: Optional[int] = field(default=None, compare=False)
    requested_departments: Optional[int] = field(default=None, compare=False)

    @property
    def was_clamped(self) -> bool:
        """True when any requested count was moved into the tier's bounds"""
        return bool(self.clamped_fields())

    def clamped_fields(self) -> List[str]:
        pairs = [
            ("daily_messages", self.daily_messages, self.requested_daily_messages),
            ("locations", self.locations, self.requested_locations),
            ("departments", self.departments, self.requested_departments),
        ]
        return [
            name for name, billed, requested in pairs
            if requested is not None and billed != requested
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tierId": self.tier.id,
            "dailyMessages": self.daily_messages,
            "locations": self.locations,
            "departments": self.departments,
            "basePrice": str(self.base_price),
            "messagesCost": str(self.messages_cost),
            "locationsCost": str(self.locations_cost),
            "departmentsCost": str(self.departments_cost),
            "locationDiscount": str(self.location_discount),
            "totalMonthly": str(self.total_monthly),
            "totalYearly": str(self.total_yearly),
        }


class PricingCalculator:
    """
    Computes price breakdowns against one tier catalog.

    Usage:
        calculator = PricingCalculator(CURRENT_CATALOG)
        quote = calculator.calculate_monthly("chatbots", daily_messages=25, locations=2)
        quote.total_monthly  # Decimal("175.00")
    """

    def __init__(self, catalog: TierCatalog = CURRENT_CATALOG):
        self.catalog = catalog

    def get_tier(self, tier_id: str) -> PricingTier:
        """Catalog lookup that reports unknown ids as InvalidTier"""
        try:
            return self.catalog.get_tier(tier_id)
        except TierNotFound:
            raise InvalidTier(tier_id) from None

    def calculate_monthly(
        self,
        tier_id: str,
        daily_messages: int,
        locations: int = 1,
        departments: int = 1,
    ) -> PricingCalculation:
        """
        Calculate the monthly price for a configuration.

        Out-of-range counts are clamped silently into the tier's bounds;
        compare `requested_*` with the billed counts (or check
        `was_clamped`) to detect it.

        Raises:
            InvalidTier: tier_id is not in the catalog
        """
        tier = self.get_tier(tier_id)

        billed_messages = clamp(daily_messages, tier.message_floor, tier.max_messages)
        billed_locations = clamp(locations, 1, tier.max_locations)
        billed_departments = clamp(departments, 1, tier.max_departments)

        base_price = tier.base_price
        extra_messages = max(0, billed_messages - tier.included_messages)
        messages_cost = extra_messages * DAYS_PER_MONTH * tier.message_rate

        location_discount = Decimal("0")
        if tier.location_mode is LocationPricingMode.MULTIPLICATIVE:
            # Legacy: each extra location adds a discounted copy of base + messages
            per_location = base_price + messages_cost
            markup = 1 + (billed_locations - 1) * tier.location_multiplier
            locations_cost = per_location * markup - per_location
            location_discount = per_location * billed_locations - per_location * markup
        else:
            extra_locations = max(0, billed_locations - tier.included_locations)
            locations_cost = extra_locations * tier.extra_location_price

        extra_departments = max(0, billed_departments - tier.included_departments)
        departments_cost = extra_departments * tier.extra_department_price

        base_price = round_money(base_price)
        messages_cost = round_money(messages_cost)
        locations_cost = round_money(locations_cost)
        departments_cost = round_money(departments_cost)

        total_monthly = round_money(base_price + messages_cost + locations_cost + departments_cost)
        total_yearly = round_money(total_monthly * MONTHS_PER_YEAR * ANNUAL_DISCOUNT_FACTOR)

        return PricingCalculation(
            tier=tier,
            daily_messages=billed_messages,
            locations=billed_locations,
            departments=billed_departments,
            base_price=base_price,
            messages_cost=messages_cost,
            locations_cost=locations_cost,
            departments_cost=departments_cost,
            location_discount=round_money(location_discount),
            total_monthly=total_monthly,
            total_yearly=total_yearly,
            requested_daily_messages=daily_messages,
            requested_locations=locations,
            requested_departments=departments,
        )

    def compare_all_tiers(
        self, daily_messages: int, locations: int = 1, departments: int = 1
    ) -> List[PricingCalculation]:
        """Price the same configuration on every tier, catalog order"""
        return [
            self.calculate_monthly(tier.id, daily_messages, locations, departments)
            for tier in self.catalog.list_tiers()
        ]

    def calculate_savings(
        self,
        current_tier_id: str,
        daily_messages: int,
        locations: int = 1,
        departments: int = 1,
    ) -> Decimal:
        """Monthly difference between the next tier up and the current tier"""
        current = self.calculate_monthly(current_tier_id, daily_messages, locations, departments)
        higher = self.catalog.next_tier(current_tier_id)
        if higher is None:
            return Decimal("0.00")
        upgraded = self.calculate_monthly(higher.id, daily_messages, locations, departments)
        return round_money(upgraded.total_monthly - current.total_monthly)

    def calculate_extra_message_cost(self, tier_id: str, extra_messages: int) -> Decimal:
        """Cost of `extra_messages` billed at the tier's marginal rate"""
        tier = self.get_tier(tier_id)
        return round_money(max(0, extra_messages) * tier.message_rate)
