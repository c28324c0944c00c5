"""
Tests for Unmi Billing Configuration
====================================

Tests config loading, JSON logging and engine wiring.
"""

import json
import logging
import os
import pytest
from unittest.mock import patch

from unmi_billing.config import BillingConfig, StripeConfig
from unmi_billing.engine import BillingEngine, bootstrap
from unmi_billing.errors import CatalogError
from unmi_billing.logging_config import JSONFormatter, configure_logging
from unmi_billing.payment_provider import StripePaymentProvider
from unmi_billing.tiers import CURRENT_CATALOG, LEGACY_CATALOG


class TestBillingConfig:
    """Test config loading."""

    def test_defaults(self):
        """Default config has sensible values."""
        config = BillingConfig()
        assert config.frontend_url == "http://localhost:3000"
        assert config.catalog_version is None
        assert config.log_level == "INFO"
        assert config.log_format == "json"

    def test_from_env(self):
        """Config loads from environment variables."""
        env = {
            "STRIPE_SECRET_KEY": "sk_test_123",
            "STRIPE_PRICE_CHATBOTS": "price_chatbots",
            "FRONTEND_URL": "https://app.unmi.es",
            "PRICING_CATALOG_VERSION": "2024.legacy",
            "LOG_LEVEL": "DEBUG",
        }
        with patch.dict(os.environ, env, clear=True):
            config = BillingConfig.from_env()
            assert config.stripe.test_secret_key == "sk_test_123"
            assert config.stripe.price_ids == {"chatbots": "price_chatbots"}
            assert config.frontend_url == "https://app.unmi.es"
            assert config.catalog_version == "2024.legacy"
            assert config.log_level == "DEBUG"


class TestStripeConfig:
    """Test Stripe configuration."""

    def test_not_configured(self):
        assert StripeConfig().is_configured is False

    def test_secret_key_by_mode(self):
        config = StripeConfig(test_secret_key="sk_test_a", live_secret_key="sk_live_b")
        assert config.get_secret_key() == "sk_test_a"
        assert config.get_secret_key("live") == "sk_live_b"

    def test_whitespace_key_not_configured(self):
        assert StripeConfig(test_secret_key="   ").is_configured is False

    def test_registration_defaults_to_templates_price(self):
        """initial_registration falls back to the templates price."""
        env = {"STRIPE_PRICE_TEMPLATES": "price_tpl"}
        with patch.dict(os.environ, env, clear=True):
            config = StripeConfig.from_env()
            assert config.price_ids == {
                "templates": "price_tpl",
                "initial_registration": "price_tpl",
            }

    def test_dedicated_keys_override(self):
        env = {
            "STRIPE_SECRET_KEY": "sk_test_old",
            "STRIPE_TEST_SECRET_KEY": "sk_test_new",
            "STRIPE_LIVE_SECRET_KEY": "sk_live_1",
            "STRIPE_DEFAULT_MODE": "live",
        }
        with patch.dict(os.environ, env, clear=True):
            config = StripeConfig.from_env()
            assert config.test_secret_key == "sk_test_new"
            assert config.get_secret_key() == "sk_live_1"


class TestJSONFormatter:
    """Test structured log output."""

    def make_record(self, **extra):
        record = logging.LogRecord(
            name="unmi_billing.checkout",
            level=logging.ERROR,
            pathname=__file__,
            lineno=1,
            msg="Checkout session creation failed",
            args=(),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_json_line(self):
        entry = json.loads(JSONFormatter().format(self.make_record()))
        assert entry["level"] == "ERROR"
        assert entry["logger"] == "unmi_billing.checkout"
        assert entry["message"] == "Checkout session creation failed"
        assert entry["timestamp"].endswith("Z")

    def test_structured_fields(self):
        record = self.make_record(cause="network", customer_id="u_1", unrelated="x")
        entry = json.loads(JSONFormatter().format(record))
        assert entry["cause"] == "network"
        assert entry["customer_id"] == "u_1"
        assert "unrelated" not in entry

    def test_configure_logging(self):
        """JSON handler installed on root; SDK loggers quieted."""
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            configure_logging(level="debug", fmt="json")
            assert root.level == logging.DEBUG
            assert isinstance(root.handlers[-1].formatter, JSONFormatter)
            assert logging.getLogger("stripe").level == logging.WARNING

            configure_logging(fmt="text")
            assert not isinstance(root.handlers[-1].formatter, JSONFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)


class TestBillingEngine:
    """Test engine wiring."""

    def test_build_without_checkout(self):
        engine = BillingEngine.build(CURRENT_CATALOG)
        assert engine.checkout is None
        assert engine.recommender.calculator is engine.calculator
        assert engine.discounts.calculator is engine.calculator

    def test_from_config_without_key(self, caplog):
        """Checkout requests can be built but not submitted."""
        with caplog.at_level(logging.WARNING, logger="unmi_billing.engine"):
            engine = BillingEngine.from_config(BillingConfig())
        assert engine.catalog is CURRENT_CATALOG
        assert engine.checkout is not None
        assert engine.checkout.provider is None
        assert "Stripe secret key missing" in caplog.text

    def test_from_config_with_key(self):
        config = BillingConfig(
            stripe=StripeConfig(test_secret_key="sk_test_123", price_ids={"chatbots": "p_1"}),
            catalog_version=LEGACY_CATALOG.version,
        )
        engine = BillingEngine.from_config(config)
        assert engine.catalog is LEGACY_CATALOG
        assert isinstance(engine.checkout.provider, StripePaymentProvider)
        assert engine.checkout.price_mapping.get_price_id("chatbots") == "p_1"

    def test_injected_provider(self, mock_payment_provider):
        engine = BillingEngine.from_config(BillingConfig(), provider=mock_payment_provider)
        assert engine.checkout.provider is mock_payment_provider

    def test_unknown_catalog_version(self):
        with pytest.raises(CatalogError):
            BillingEngine.from_config(BillingConfig(catalog_version="1999.1"))

    def test_bootstrap_configures_logging(self, mock_payment_provider):
        """Log level and format come from config before the engine is built."""
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            config = BillingConfig(log_level="WARNING", log_format="text")
            engine = bootstrap(config, provider=mock_payment_provider)
            assert root.level == logging.WARNING
            assert not isinstance(root.handlers[-1].formatter, JSONFormatter)
            assert engine.checkout.provider is mock_payment_provider
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
