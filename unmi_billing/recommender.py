"""
Unmi Tier Recommendations
=========================

Suggests a tier from expected usage (threshold ladder) or from current
utilization (upgrade above 80%, downgrade below 30%).
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .pricing import PricingCalculator, round_money
from .tiers import PricingTier, TierCatalog

logger = logging.getLogger(__name__)

UPGRADE_THRESHOLD = Decimal("80")    # percent
DOWNGRADE_THRESHOLD = Decimal("30")  # percent


@dataclass(frozen=True)
class UsageSnapshot:
    """Message usage of a tenant against its tier's limit"""
    tier: PricingTier
    messages_used: int
    remaining: int
    usage_percentage: Decimal
    over_limit: bool
    extra_messages: int
    extra_cost: Decimal
    total_cost: Decimal

    @property
    def status(self) -> str:
        if self.usage_percentage >= 100:
            return "limit_exceeded"
        if self.usage_percentage >= UPGRADE_THRESHOLD:
            return "approaching_limit"
        return "healthy"


def _fits_included(tier: PricingTier, daily_messages: int, locations: int,
                   departments: Optional[int]) -> bool:
    # A tier that bills every message includes none; its cap is the bound
    message_bound = tier.included_messages or tier.message_limit
    return (
        daily_messages <= message_bound
        and locations <= tier.included_locations
        and (departments is None or departments <= tier.included_departments)
    )


def _fits_max(tier: PricingTier, daily_messages: int, locations: int,
              departments: Optional[int]) -> bool:
    return (
        daily_messages <= tier.max_messages
        and (tier.max_locations is None or locations <= tier.max_locations)
        and (
            departments is None
            or tier.max_departments is None
            or departments <= tier.max_departments
        )
    )


class TierRecommender:
    """Recommends tiers against a single catalog"""

    def __init__(self, catalog: TierCatalog, calculator: Optional[PricingCalculator] = None):
        self.catalog = catalog
        self.calculator = calculator or PricingCalculator(catalog)

    def recommend_tier(
        self,
        daily_messages: int,
        locations: int,
        departments: Optional[int] = None,
    ) -> PricingTier:
        """
        First match wins, ascending:
        - lowest tier if usage fits its included quotas
        - each middle tier if usage fits its max bounds
        - otherwise the highest tier (never fails)
        """
        tiers = self.catalog.list_tiers()

        if _fits_included(tiers[0], daily_messages, locations, departments):
            return tiers[0]

        for tier in tiers[1:-1]:
            if _fits_max(tier, daily_messages, locations, departments):
                return tier

        return tiers[-1]

    def recommend_tier_from_utilization(
        self,
        current_tier_id: str,
        messages_used: int,
        message_limit: int,
    ) -> Optional[PricingTier]:
        """
        Closest upgrade above 80% utilization, closest fitting downgrade
        below 30%, None in between (current tier is optimal).

        A non-positive `message_limit` means unlimited and never triggers
        a change.

        Raises:
            TierNotFound: current_tier_id is not in the catalog
        """
        current = self.catalog.get_tier(current_tier_id)
        if message_limit <= 0:
            return None

        utilization = Decimal(messages_used) * 100 / Decimal(message_limit)
        tiers = self.catalog.list_tiers()

        if utilization > UPGRADE_THRESHOLD:
            higher = [t for t in tiers if t.message_limit > current.message_limit]
            recommended = min(higher, key=lambda t: t.message_limit, default=None)
        elif utilization < DOWNGRADE_THRESHOLD:
            lower = [
                t for t in tiers
                if t.message_limit < current.message_limit and t.message_limit > messages_used
            ]
            recommended = max(lower, key=lambda t: t.message_limit, default=None)
        else:
            recommended = None

        if recommended is not None:
            logger.info(
                f"Utilization {utilization:.1f}% on {current.id}: recommending {recommended.id}",
                extra={"tier_id": current.id},
            )
        return recommended

    def usage_snapshot(self, tier_id: str, messages_used: int) -> UsageSnapshot:
        """
        Usage of `messages_used` against the tier's message limit, with the
        overage billed at the tier's marginal rate.
        """
        tier = self.calculator.get_tier(tier_id)
        limit = tier.message_limit
        if limit > 0:
            usage_percentage = round_money(Decimal(messages_used) * 100 / Decimal(limit))
        else:
            usage_percentage = Decimal("0.00")
        extra_messages = max(0, messages_used - limit)
        extra_cost = self.calculator.calculate_extra_message_cost(tier_id, extra_messages)

        return UsageSnapshot(
            tier=tier,
            messages_used=messages_used,
            remaining=limit - messages_used,
            usage_percentage=usage_percentage,
            over_limit=messages_used > limit,
            extra_messages=extra_messages,
            extra_cost=extra_cost,
            total_cost=round_money(tier.base_price + extra_cost),
        )
