"""
Unmi Billing Configuration
==========================

Single source of truth for billing configuration.
Reads from environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class StripeConfig:
    """Stripe keys (test/live) and the price id for each plan type."""
    test_secret_key: str = ""
    live_secret_key: str = ""
    default_mode: str = "test"
    price_ids: Dict[str, str] = field(default_factory=dict)

    def get_secret_key(self, mode: Optional[str] = None) -> str:
        """Get secret key for specified mode (or default)."""
        effective_mode = mode or self.default_mode
        return self.live_secret_key if effective_mode == "live" else self.test_secret_key

    @property
    def is_configured(self) -> bool:
        """Check if the default mode has a secret key."""
        return bool(self.get_secret_key().strip())

    @classmethod
    def from_env(cls) -> "StripeConfig":
        templates_price = os.environ.get("STRIPE_PRICE_TEMPLATES", "")
        price_ids = {
            "templates": templates_price,
            "chatbots": os.environ.get("STRIPE_PRICE_CHATBOTS", ""),
            "enterprise": os.environ.get("STRIPE_PRICE_ENTERPRISE", ""),
            # registration is sold at the templates price unless overridden
            "initial_registration": os.environ.get(
                "STRIPE_PRICE_INITIAL_REGISTRATION", templates_price
            ),
        }
        return cls(
            test_secret_key=os.environ.get(
                "STRIPE_TEST_SECRET_KEY", os.environ.get("STRIPE_SECRET_KEY", "")
            ),
            live_secret_key=os.environ.get("STRIPE_LIVE_SECRET_KEY", ""),
            default_mode=os.environ.get("STRIPE_DEFAULT_MODE", "test"),
            price_ids={plan: price for plan, price in price_ids.items() if price},
        )


@dataclass
class BillingConfig:
    """Master configuration for the billing core."""

    stripe: StripeConfig = field(default_factory=StripeConfig)

    frontend_url: str = "http://localhost:3000"
    catalog_version: Optional[str] = None  # None = current catalog
    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> "BillingConfig":
        """Load configuration from environment variables."""
        return cls(
            stripe=StripeConfig.from_env(),
            frontend_url=os.environ.get("FRONTEND_URL", "http://localhost:3000"),
            catalog_version=os.environ.get("PRICING_CATALOG_VERSION") or None,
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            log_format=os.environ.get("LOG_FORMAT", "json"),
        )
