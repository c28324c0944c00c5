"""
Unmi Pricing Tier Definitions

Tiers determine the included daily message volume, locations and
routing departments, plus the marginal rate for anything beyond them.

Two catalog versions ship with the library:
- CURRENT_CATALOG: additive per-unit pricing for extra locations
- LEGACY_CATALOG: the historical multiplicative location markup

A tier uses exactly one location pricing mode. Catalogs are validated
once when they are built and never mutated afterwards.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .errors import CatalogError, TierNotFound


class LocationPricingMode(Enum):
    """How a tier charges for locations beyond the first"""
    ADDITIVE = "additive"              # flat price per extra location
    MULTIPLICATIVE = "multiplicative"  # legacy markup on base + messages


@dataclass(frozen=True)
class PricingTier:
    """A named pricing plan with included quotas and marginal rates"""
    id: str
    name: str
    base_price: Decimal
    included_messages: int
    max_messages: int
    message_rate: Decimal
    included_locations: int = 1
    max_locations: Optional[int] = 1          # None = unlimited
    extra_location_price: Optional[Decimal] = None
    included_departments: int = 1
    max_departments: Optional[int] = 1        # None = unlimited
    extra_department_price: Decimal = Decimal("0")
    location_multiplier: Optional[Decimal] = None
    min_messages: Optional[int] = None
    features: Tuple[str, ...] = field(default_factory=tuple)
    popular: bool = False

    @property
    def message_floor(self) -> int:
        """Lowest billable daily message count"""
        return self.included_messages if self.min_messages is None else self.min_messages

    @property
    def message_limit(self) -> int:
        """Daily message entitlement ceiling, used for upgrade/downgrade comparisons"""
        return self.max_messages

    @property
    def has_hard_message_cap(self) -> bool:
        return self.max_messages == self.included_messages

    @property
    def location_mode(self) -> LocationPricingMode:
        if self.location_multiplier is not None:
            return LocationPricingMode.MULTIPLICATIVE
        return LocationPricingMode.ADDITIVE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "basePrice": str(self.base_price),
            "includedMessages": self.included_messages,
            "maxMessages": self.max_messages,
            "messageRate": str(self.message_rate),
            "includedLocations": self.included_locations,
            "maxLocations": self.max_locations,
            "extraLocationPrice": (
                str(self.extra_location_price) if self.extra_location_price is not None else None
            ),
            "includedDepartments": self.included_departments,
            "maxDepartments": self.max_departments,
            "extraDepartmentPrice": str(self.extra_department_price),
            "locationMultiplier": (
                str(self.location_multiplier) if self.location_multiplier is not None else None
            ),
            "features": list(self.features),
            "popular": self.popular,
        }


# =============================================================================
# Catalog
# =============================================================================

def _check_bounds(tier: PricingTier, resource: str, included: int, maximum: Optional[int]):
    if included < 0:
        raise CatalogError(f"{tier.id}: included {resource} must be non-negative", tier.id)
    if maximum is not None and included > maximum:
        raise CatalogError(
            f"{tier.id}: included {resource} ({included}) exceeds max {resource} ({maximum})",
            tier.id,
        )


def validate_tier(tier: PricingTier) -> None:
    """Check the authoring rules for a single tier"""
    _check_bounds(tier, "messages", tier.included_messages, tier.max_messages)
    _check_bounds(tier, "locations", tier.included_locations, tier.max_locations)
    _check_bounds(tier, "departments", tier.included_departments, tier.max_departments)

    if tier.min_messages is not None and not 0 <= tier.min_messages <= tier.max_messages:
        raise CatalogError(f"{tier.id}: min messages must lie within [0, max messages]", tier.id)

    for label, amount in (
        ("base price", tier.base_price),
        ("message rate", tier.message_rate),
        ("extra department price", tier.extra_department_price),
    ):
        if amount < 0:
            raise CatalogError(f"{tier.id}: {label} must be non-negative", tier.id)

    has_additive = tier.extra_location_price is not None
    has_multiplier = tier.location_multiplier is not None
    if has_additive and has_multiplier:
        raise CatalogError(
            f"{tier.id}: defines both extra_location_price and location_multiplier", tier.id
        )
    if not has_additive and not has_multiplier:
        raise CatalogError(
            f"{tier.id}: must define extra_location_price or location_multiplier", tier.id
        )
    if has_additive and tier.extra_location_price < 0:
        raise CatalogError(f"{tier.id}: extra location price must be non-negative", tier.id)
    if has_multiplier and not Decimal("0") <= tier.location_multiplier <= Decimal("1"):
        raise CatalogError(f"{tier.id}: location multiplier must lie within [0, 1]", tier.id)


class TierCatalog:
    """
    Ordered, immutable set of pricing tiers.

    Tiers are kept in ascending price order and indexed by id. The
    constructor rejects any definition that breaks the authoring rules:
    each tier must cost strictly more than the one before it and must
    not include less of any resource.
    """

    def __init__(self, tiers: Sequence[PricingTier], version: str):
        self.version = version
        self._tiers: Tuple[PricingTier, ...] = tuple(tiers)
        self._by_id: Dict[str, PricingTier] = {}
        self._index: Dict[str, int] = {}
        self._validate()

    def _validate(self):
        if len(self._tiers) < 2:
            raise CatalogError(f"Catalog {self.version} must define at least two tiers")

        for position, tier in enumerate(self._tiers):
            if tier.id in self._by_id:
                raise CatalogError(f"Duplicate tier id: {tier.id}", tier.id)
            validate_tier(tier)
            self._by_id[tier.id] = tier
            self._index[tier.id] = position

        for lower, higher in zip(self._tiers, self._tiers[1:]):
            if higher.base_price <= lower.base_price:
                raise CatalogError(
                    f"{higher.id}: base price must be strictly greater than {lower.id}", higher.id
                )
            for attr in ("included_messages", "included_locations", "included_departments"):
                if getattr(higher, attr) < getattr(lower, attr):
                    raise CatalogError(
                        f"{higher.id}: {attr} is lower than {lower.id}", higher.id
                    )

    def list_tiers(self) -> List[PricingTier]:
        """All tiers, ascending by price"""
        return list(self._tiers)

    def get_tier(self, tier_id: str) -> PricingTier:
        """Get tier by ID"""
        try:
            return self._by_id[tier_id]
        except KeyError:
            raise TierNotFound(tier_id, self.version) from None

    def ids(self) -> List[str]:
        return [tier.id for tier in self._tiers]

    def position(self, tier_id: str) -> int:
        self.get_tier(tier_id)
        return self._index[tier_id]

    def next_tier(self, tier_id: str) -> Optional[PricingTier]:
        """Tier directly above `tier_id`, or None for the highest tier"""
        position = self.position(tier_id)
        if position + 1 < len(self._tiers):
            return self._tiers[position + 1]
        return None

    def previous_tier(self, tier_id: str) -> Optional[PricingTier]:
        """Tier directly below `tier_id`, or None for the lowest tier"""
        position = self.position(tier_id)
        return self._tiers[position - 1] if position > 0 else None

    @property
    def first(self) -> PricingTier:
        return self._tiers[0]

    @property
    def last(self) -> PricingTier:
        return self._tiers[-1]

    def __contains__(self, tier_id: object) -> bool:
        return tier_id in self._by_id

    def __iter__(self) -> Iterator[PricingTier]:
        return iter(self._tiers)

    def __len__(self) -> int:
        return len(self._tiers)

    def __repr__(self) -> str:
        return f"TierCatalog(version={self.version!r}, tiers={self.ids()!r})"


# =============================================================================
# Tier Definitions
# =============================================================================

CURRENT_CATALOG_VERSION = "2025.1"
LEGACY_CATALOG_VERSION = "2024.legacy"

CURRENT_CATALOG = TierCatalog(
    [
        PricingTier(
            id="templates",
            name="Templates",
            base_price=Decimal("60"),
            included_messages=10,
            max_messages=10,  # hard cap
            message_rate=Decimal("0"),
            included_locations=1,
            max_locations=1,
            extra_location_price=Decimal("0"),
            included_departments=1,
            max_departments=2,
            extra_department_price=Decimal("10"),
            features=(
                "Up to 10 daily WhatsApp messages",
                "1 location included",
                "Basic call routing",
                "Email support",
                "Basic analytics",
            ),
        ),
        PricingTier(
            id="chatbots",
            name="Chatbots",
            base_price=Decimal("120"),
            included_messages=20,
            max_messages=30,
            message_rate=Decimal("0.10"),
            included_locations=1,
            max_locations=5,
            extra_location_price=Decimal("40"),
            included_departments=2,
            max_departments=5,
            extra_department_price=Decimal("15"),
            features=(
                "20 daily WhatsApp messages included, up to 30",
                "Up to 5 locations",
                "Advanced call routing",
                "Priority support",
                "Advanced analytics",
                "Multi-location dashboard",
            ),
            popular=True,
        ),
        PricingTier(
            id="enterprise",
            name="Enterprise",
            base_price=Decimal("250"),
            included_messages=60,
            max_messages=120,
            message_rate=Decimal("0.05"),
            included_locations=3,
            max_locations=None,
            extra_location_price=Decimal("30"),
            included_departments=5,
            max_departments=None,
            extra_department_price=Decimal("10"),
            features=(
                "60 daily WhatsApp messages included, up to 120",
                "Unlimited locations",
                "Custom routing rules",
                "24/7 phone support",
                "Dedicated account manager",
                "API access",
            ),
        ),
    ],
    version=CURRENT_CATALOG_VERSION,
)

# Every message is billed in the legacy family, so nothing is included.
LEGACY_CATALOG = TierCatalog(
    [
        PricingTier(
            id="starter",
            name="Starter",
            base_price=Decimal("60"),
            included_messages=0,
            min_messages=1,
            max_messages=10,
            message_rate=Decimal("0.15"),
            max_locations=None,
            location_multiplier=Decimal("1.0"),  # no discount
            features=(
                "Up to 10 daily WhatsApp messages",
                "1 location included",
                "Basic call routing",
            ),
        ),
        PricingTier(
            id="professional",
            name="Professional",
            base_price=Decimal("120"),
            included_messages=0,
            min_messages=1,
            max_messages=30,
            message_rate=Decimal("0.10"),
            max_locations=5,
            location_multiplier=Decimal("0.85"),  # 15% off each additional location
            features=(
                "Up to 30 daily WhatsApp messages",
                "Up to 5 locations",
                "Multi-location dashboard",
            ),
            popular=True,
        ),
        PricingTier(
            id="enterprise",
            name="Enterprise",
            base_price=Decimal("250"),
            included_messages=0,
            min_messages=1,
            max_messages=60,
            message_rate=Decimal("0.05"),
            max_locations=None,
            location_multiplier=Decimal("0.70"),  # 30% off each additional location
            features=(
                "Up to 60 daily WhatsApp messages",
                "Unlimited locations",
                "API access",
            ),
        ),
    ],
    version=LEGACY_CATALOG_VERSION,
)

CATALOGS: Dict[str, TierCatalog] = {
    CURRENT_CATALOG_VERSION: CURRENT_CATALOG,
    LEGACY_CATALOG_VERSION: LEGACY_CATALOG,
}


def get_catalog(version: Optional[str] = None) -> TierCatalog:
    """Get a catalog by version (defaults to the current catalog)"""
    if version is None:
        return CURRENT_CATALOG
    try:
        return CATALOGS[version]
    except KeyError:
        raise CatalogError(f"Unknown catalog version: {version}") from None
