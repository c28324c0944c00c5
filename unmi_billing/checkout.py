"""
Unmi Checkout Session Builder
=============================

Maps a plan selection and customer identity to a checkout request for
the payment provider, then asks the provider to create the session.

Flow:
1. Validate the caller's parameters (pydantic)
2. Resolve each plan type to a provider price reference
3. Price catalog tiers through PricingCalculator (line quantity = locations)
4. Merge metadata, userId/planType always win
5. Create the session through the injected PaymentProvider
6. Return the session URL for the HTTP layer to redirect to
"""

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from .config import StripeConfig
from .errors import CheckoutSessionCreationFailed, PaymentProviderError, PriceNotConfigured
from .payment_provider import LineItem, PaymentProvider
from .pricing import PricingCalculation, PricingCalculator, round_money

logger = logging.getLogger(__name__)

# Left unsubstituted; the payment provider fills it in after creation
CHECKOUT_SESSION_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"

DEFAULT_FRONTEND_URL = "http://localhost:3000"


# ============================================
# REQUEST MODELS
# ============================================

class CheckoutParams(BaseModel):
    """Single-plan checkout, e.g. from the plan upgrade page"""
    customer_email: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    plan_type: str = Field(min_length=1)
    daily_messages: Optional[int] = None  # None = tier's included volume
    locations: int = 1
    departments: int = 1
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class PlanSelection(BaseModel):
    plan_type: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)


class MultiSelectionParams(BaseModel):
    """Composite checkout, e.g. a templates plan and a chatbots plan together"""
    customer_email: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    selections: List[PlanSelection] = Field(min_length=1)
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


# ============================================
# PRICE MAPPING
# ============================================

@dataclass
class PriceMapping:
    """Plan type -> provider price reference"""
    mode: str  # "test" or "live"
    prices: Dict[str, str] = field(default_factory=dict)

    def get_price_id(self, plan_type: str) -> str:
        """
        Raises:
            PriceNotConfigured: no price reference for plan_type
        """
        price_id = self.prices.get(plan_type)
        if not price_id:
            raise PriceNotConfigured(plan_type)
        return price_id

    @classmethod
    def from_config(cls, config: StripeConfig) -> "PriceMapping":
        return cls(mode=config.default_mode, prices=dict(config.price_ids))


def load_price_mapping(price_file: Union[str, Path]) -> PriceMapping:
    """Load price mappings from a JSON file: {"mode": ..., "prices": {plan: price_id}}"""
    price_file = Path(price_file)
    if not price_file.exists():
        raise FileNotFoundError(f"Price mapping not found: {price_file}")

    with open(price_file) as f:
        data = json.load(f)

    return PriceMapping(mode=data.get("mode", "test"), prices=data.get("prices", {}))


# ============================================
# CHECKOUT REQUEST / SESSION
# ============================================

@dataclass
class CheckoutRequest:
    """Everything the payment provider needs to open a checkout session"""
    customer_email: str
    customer_id: str
    plan_type: Union[str, List[PlanSelection]]
    line_items: List[LineItem]
    metadata: Dict[str, str]
    success_url: str
    cancel_url: str
    quote: Optional[PricingCalculation] = None


@dataclass
class CheckoutSession:
    id: str
    url: str


def merge_metadata(
    caller: Optional[Dict[str, Any]],
    mandatory: Dict[str, str],
    computed: Optional[Dict[str, str]] = None,
) -> Dict[str, str]:
    """Stringify caller metadata; computed keys override it, mandatory keys override both"""
    merged = {str(key): str(value) for key, value in (caller or {}).items()}
    merged.update(computed or {})
    merged.update(mandatory)
    return merged


class CheckoutSessionBuilder:
    """
    Builds and submits checkout requests.

    Usage:
        builder = CheckoutSessionBuilder(
            price_mapping=PriceMapping.from_config(config.stripe),
            provider=StripePaymentProvider.from_config(config.stripe),
            calculator=PricingCalculator(CURRENT_CATALOG),
            frontend_url="https://app.unmi.es",
        )

        session = await builder.checkout(CheckoutParams(
            customer_email="owner@example.com",
            user_id="u_123",
            plan_type="chatbots",
            locations=2,
        ))

        # Redirect user to session.url
    """

    def __init__(
        self,
        price_mapping: PriceMapping,
        provider: Optional[PaymentProvider] = None,
        calculator: Optional[PricingCalculator] = None,
        frontend_url: str = DEFAULT_FRONTEND_URL,
    ):
        self.price_mapping = price_mapping
        self.provider = provider
        self.calculator = calculator or PricingCalculator()
        self.frontend_url = frontend_url.rstrip("/")

    @property
    def default_success_url(self) -> str:
        return f"{self.frontend_url}/dashboard?session_id={CHECKOUT_SESSION_PLACEHOLDER}&success=true"

    @property
    def default_cancel_url(self) -> str:
        return f"{self.frontend_url}/pricing?canceled=true"

    def _quote(self, params: CheckoutParams) -> Optional[PricingCalculation]:
        if params.plan_type not in self.calculator.catalog:
            return None
        tier = self.calculator.get_tier(params.plan_type)
        daily_messages = (
            params.daily_messages if params.daily_messages is not None else tier.included_messages
        )
        return self.calculator.calculate_monthly(
            params.plan_type, daily_messages, params.locations, params.departments
        )

    def build_checkout_request(self, params: CheckoutParams) -> CheckoutRequest:
        """
        Build a single-plan checkout request.

        Catalog tiers are priced first: the line quantity is the billed
        location count and the quote is attached to the metadata. Plan
        types outside the catalog (e.g. initial_registration) are sold as
        a single unit.

        Raises:
            PriceNotConfigured: no price reference for the plan type
        """
        price_id = self.price_mapping.get_price_id(params.plan_type)
        quote = self._quote(params)

        computed = {}
        quantity = 1
        if quote is not None:
            quantity = quote.locations
            computed = {
                "locations": str(quote.locations),
                "departments": str(quote.departments),
                "dailyMessages": str(quote.daily_messages),
                "quotedMonthly": str(quote.total_monthly),
            }

        metadata = merge_metadata(
            params.metadata,
            {"userId": params.user_id, "planType": params.plan_type},
            computed,
        )

        return CheckoutRequest(
            customer_email=params.customer_email,
            customer_id=params.user_id,
            plan_type=params.plan_type,
            line_items=[LineItem(price=price_id, quantity=quantity)],
            metadata=metadata,
            success_url=params.success_url or self.default_success_url,
            cancel_url=params.cancel_url or self.default_cancel_url,
            quote=quote,
        )

    def build_multi_selection_request(self, params: MultiSelectionParams) -> CheckoutRequest:
        """
        Build a composite checkout request, one line item per selection.

        Raises:
            PriceNotConfigured: names the first selection without a price
        """
        line_items = [
            LineItem(
                price=self.price_mapping.get_price_id(selection.plan_type),
                quantity=selection.quantity,
            )
            for selection in params.selections
        ]

        plan_types = ",".join(selection.plan_type for selection in params.selections)
        computed = {
            "selections": ",".join(
                f"{selection.plan_type}:{selection.quantity}" for selection in params.selections
            ),
        }
        metadata = merge_metadata(
            params.metadata,
            {"userId": params.user_id, "planType": plan_types},
            computed,
        )

        return CheckoutRequest(
            customer_email=params.customer_email,
            customer_id=params.user_id,
            plan_type=list(params.selections),
            line_items=line_items,
            metadata=metadata,
            success_url=params.success_url or self.default_success_url,
            cancel_url=params.cancel_url or self.default_cancel_url,
        )

    def _require_provider(self) -> PaymentProvider:
        if self.provider is None:
            raise RuntimeError("No payment provider configured for checkout.")
        return self.provider

    async def create_checkout_session(self, request: CheckoutRequest) -> CheckoutSession:
        """
        Submit a built request to the payment provider.

        The provider's own error text is logged, never returned.

        Raises:
            CheckoutSessionCreationFailed: cause="network" or "rejected"
        """
        provider = self._require_provider()
        log_extra = {
            "customer_id": request.customer_id,
            "plan_type": request.metadata.get("planType"),
        }

        try:
            session = await provider.create_checkout_session(
                line_items=request.line_items,
                customer_email=request.customer_email,
                success_url=request.success_url,
                cancel_url=request.cancel_url,
                metadata=request.metadata,
            )
        except PaymentProviderError as e:
            logger.error(
                f"Checkout session creation failed ({e.cause}): {e.message}",
                extra={**log_extra, "cause": e.cause},
            )
            raise CheckoutSessionCreationFailed(cause=e.cause) from None

        if not session.url:
            logger.error(
                f"Provider returned checkout session {session.id} without a URL",
                extra={**log_extra, "cause": "rejected"},
            )
            raise CheckoutSessionCreationFailed(cause="rejected")

        logger.info(f"Checkout session created: {session.id}", extra=log_extra)
        return CheckoutSession(id=session.id, url=session.url)

    async def checkout(self, params: CheckoutParams) -> CheckoutSession:
        """Build and submit a single-plan checkout"""
        return await self.create_checkout_session(self.build_checkout_request(params))

    async def checkout_selections(self, params: MultiSelectionParams) -> CheckoutSession:
        """Build and submit a composite checkout"""
        return await self.create_checkout_session(self.build_multi_selection_request(params))

    async def retrieve_plan_price(self, plan_type: str) -> Decimal:
        """
        Current provider price of a plan, in currency units.

        Raises:
            PriceNotConfigured: no price reference, or the provider price has no amount
            PaymentProviderError: provider unreachable or request rejected
        """
        price_id = self.price_mapping.get_price_id(plan_type)
        price = await self._require_provider().retrieve_price(price_id)
        if price.unit_amount is None:
            raise PriceNotConfigured(plan_type)
        return round_money(Decimal(price.unit_amount) / 100)
