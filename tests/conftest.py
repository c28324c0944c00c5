"""
Unmi Billing Test Fixtures
==========================

Shared fixtures for all test modules.
"""

import pytest
from unittest.mock import AsyncMock

from unmi_billing.checkout import CheckoutSessionBuilder, PriceMapping
from unmi_billing.discounts import BundleDiscountEngine
from unmi_billing.payment_provider import ProviderPrice, ProviderSession
from unmi_billing.pricing import PricingCalculator
from unmi_billing.recommender import TierRecommender
from unmi_billing.tiers import CURRENT_CATALOG, LEGACY_CATALOG


# ============================================
# PRICING
# ============================================

@pytest.fixture
def calculator():
    """Calculator over the current (additive) catalog."""
    return PricingCalculator(CURRENT_CATALOG)


@pytest.fixture
def legacy_calculator():
    """Calculator over the legacy (multiplicative) catalog."""
    return PricingCalculator(LEGACY_CATALOG)


@pytest.fixture
def discount_engine(calculator):
    return BundleDiscountEngine(calculator)


@pytest.fixture
def legacy_discount_engine(legacy_calculator):
    return BundleDiscountEngine(legacy_calculator)


@pytest.fixture
def recommender(calculator):
    return TierRecommender(CURRENT_CATALOG, calculator)


# ============================================
# CHECKOUT
# ============================================

@pytest.fixture
def price_mapping():
    """Test-mode price ids for the sellable plans."""
    return PriceMapping(
        mode="test",
        prices={
            "templates": "price_templates_test",
            "chatbots": "price_chatbots_test",
            "initial_registration": "price_templates_test",
        },
    )


@pytest.fixture
def mock_payment_provider():
    """Payment provider that creates a session and knows one price."""
    provider = AsyncMock()
    provider.create_checkout_session = AsyncMock(return_value=ProviderSession(
        id="cs_test_123",
        url="https://checkout.stripe.com/c/pay/cs_test_123",
    ))
    provider.retrieve_price = AsyncMock(return_value=ProviderPrice(
        id="price_chatbots_test",
        unit_amount=12000,
    ))
    return provider


@pytest.fixture
def checkout_builder(price_mapping, mock_payment_provider, calculator):
    return CheckoutSessionBuilder(
        price_mapping=price_mapping,
        provider=mock_payment_provider,
        calculator=calculator,
        frontend_url="https://app.unmi.test/",
    )
