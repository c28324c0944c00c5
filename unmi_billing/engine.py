"""
Unmi Billing Engine
===================

Builds the pricing services once at process start and hands them to
callers by reference. Nothing here holds mutable state, so one engine
can be shared across every request and thread.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .checkout import CheckoutSessionBuilder, PriceMapping
from .config import BillingConfig
from .discounts import BundleDiscountEngine
from .logging_config import configure_logging
from .payment_provider import PaymentProvider, StripePaymentProvider
from .pricing import PricingCalculator
from .recommender import TierRecommender
from .templates import TemplateVariableValidator
from .tiers import TierCatalog, get_catalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BillingEngine:
    catalog: TierCatalog
    calculator: PricingCalculator
    discounts: BundleDiscountEngine
    recommender: TierRecommender
    templates: TemplateVariableValidator
    checkout: Optional[CheckoutSessionBuilder] = None

    @classmethod
    def build(
        cls,
        catalog: TierCatalog,
        price_mapping: Optional[PriceMapping] = None,
        provider: Optional[PaymentProvider] = None,
        frontend_url: str = "http://localhost:3000",
    ) -> "BillingEngine":
        calculator = PricingCalculator(catalog)
        checkout = None
        if price_mapping is not None:
            checkout = CheckoutSessionBuilder(
                price_mapping=price_mapping,
                provider=provider,
                calculator=calculator,
                frontend_url=frontend_url,
            )
        return cls(
            catalog=catalog,
            calculator=calculator,
            discounts=BundleDiscountEngine(calculator),
            recommender=TierRecommender(catalog, calculator),
            templates=TemplateVariableValidator(),
            checkout=checkout,
        )

    @classmethod
    def from_config(
        cls,
        config: BillingConfig,
        provider: Optional[PaymentProvider] = None,
    ) -> "BillingEngine":
        """
        Wire the engine from configuration.

        A Stripe provider is created when none is injected and a secret
        key is configured; otherwise checkout requests can still be built
        but not submitted.
        """
        catalog = get_catalog(config.catalog_version)
        if provider is None and config.stripe.is_configured:
            provider = StripePaymentProvider.from_config(config.stripe)
        elif provider is None:
            logger.warning("Stripe secret key missing. Checkout sessions cannot be created.")

        logger.info(
            f"Billing engine ready with catalog {catalog.version}",
            extra={"catalog_version": catalog.version},
        )
        return cls.build(
            catalog=catalog,
            price_mapping=PriceMapping.from_config(config.stripe),
            provider=provider,
            frontend_url=config.frontend_url,
        )


def bootstrap(
    config: Optional[BillingConfig] = None,
    provider: Optional[PaymentProvider] = None,
) -> BillingEngine:
    """Process startup: configure logging from config, then build the engine."""
    config = config or BillingConfig.from_env()
    configure_logging(config.log_level, config.log_format)
    return BillingEngine.from_config(config, provider=provider)
