"""
Unmi Payment Provider Interface
===============================

Narrow abstraction over the payment provider used by checkout. The core
only creates checkout sessions and reads prices; payment capture and
webhooks live elsewhere.

Adapters translate provider failures into PaymentProviderError tagged
with cause="network" (provider unreachable) or cause="rejected"
(provider answered and refused the request).
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

import stripe

from .config import StripeConfig
from .errors import PaymentProviderError

logger = logging.getLogger(__name__)


@dataclass
class LineItem:
    """One provider price reference and quantity"""
    price: str
    quantity: int = 1

    def to_dict(self) -> Dict[str, object]:
        return {"price": self.price, "quantity": self.quantity}


@dataclass
class ProviderSession:
    """Checkout session as returned by the provider"""
    id: str
    url: Optional[str]


@dataclass
class ProviderPrice:
    id: str
    unit_amount: Optional[int]  # minor units (cents)
    currency: str = "eur"


class PaymentProvider(ABC):
    """
    Abstract interface for payment providers.

    Implementations must not retry or apply timeouts; the calling HTTP
    layer owns that policy.
    """

    PROVIDER_ID: str = ""

    @abstractmethod
    async def create_checkout_session(
        self,
        line_items: List[LineItem],
        customer_email: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> ProviderSession:
        """
        Create a hosted checkout session.

        Raises:
            PaymentProviderError: provider unreachable or request rejected
        """
        pass

    @abstractmethod
    async def retrieve_price(self, price_id: str) -> ProviderPrice:
        """
        Read a configured price.

        Raises:
            PaymentProviderError: provider unreachable or request rejected
        """
        pass


class StripePaymentProvider(PaymentProvider):
    """
    Stripe Checkout adapter.

    Usage:
        provider = StripePaymentProvider(api_key="sk_live_...")
        session = await provider.create_checkout_session(
            line_items=[LineItem(price="price_123", quantity=2)],
            customer_email="owner@example.com",
            success_url="https://app.unmi.es/dashboard?session_id={CHECKOUT_SESSION_ID}",
            cancel_url="https://app.unmi.es/pricing?canceled=true",
            metadata={"userId": "u_1", "planType": "chatbots"},
        )
    """

    PROVIDER_ID = "stripe"

    def __init__(self, api_key: str, mode: str = "subscription"):
        if not api_key:
            raise ValueError("Stripe API key required. Set STRIPE_SECRET_KEY env var or pass api_key.")
        stripe.api_key = api_key
        self.mode = mode

    @classmethod
    def from_config(cls, config: StripeConfig) -> "StripePaymentProvider":
        return cls(api_key=config.get_secret_key())

    def _translate(self, error: Exception) -> PaymentProviderError:
        cause = "network" if isinstance(error, stripe.APIConnectionError) else "rejected"
        return PaymentProviderError(self.PROVIDER_ID, str(error), cause=cause)

    async def create_checkout_session(
        self,
        line_items: List[LineItem],
        customer_email: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> ProviderSession:
        session_params = {
            "mode": self.mode,
            "payment_method_types": ["card"],
            "line_items": [item.to_dict() for item in line_items],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
        if customer_email:
            session_params["customer_email"] = customer_email

        try:
            session = await stripe.checkout.Session.create_async(**session_params)
        except stripe.StripeError as e:
            raise self._translate(e) from e

        logger.debug(f"Created Stripe checkout session {session.id}")
        return ProviderSession(id=session.id, url=session.url)

    async def retrieve_price(self, price_id: str) -> ProviderPrice:
        try:
            price = await stripe.Price.retrieve_async(price_id)
        except stripe.StripeError as e:
            raise self._translate(e) from e

        return ProviderPrice(
            id=price.id,
            unit_amount=price.unit_amount,
            currency=price.currency or "eur",
        )
