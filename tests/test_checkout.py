"""
Tests for the Checkout Session Builder
======================================

Tests request building, metadata rules and provider error handling.
"""

import logging
from decimal import Decimal

import pytest
from pydantic import ValidationError

from unmi_billing.checkout import (
    CheckoutParams,
    CheckoutSessionBuilder,
    MultiSelectionParams,
    PlanSelection,
    load_price_mapping,
    merge_metadata,
)
from unmi_billing.errors import (
    CheckoutSessionCreationFailed,
    PaymentProviderError,
    PriceNotConfigured,
)
from unmi_billing.payment_provider import ProviderPrice, ProviderSession


def make_params(**overrides):
    fields = dict(customer_email="owner@example.com", user_id="u_1", plan_type="chatbots")
    fields.update(overrides)
    return CheckoutParams(**fields)


def make_selection_params(*selections, **overrides):
    fields = dict(
        customer_email="owner@example.com",
        user_id="u_1",
        selections=[PlanSelection(plan_type=plan, quantity=qty) for plan, qty in selections],
    )
    fields.update(overrides)
    return MultiSelectionParams(**fields)


class TestBuildCheckoutRequest:
    """Test single-plan request building."""

    def test_catalog_plan_is_quoted(self, checkout_builder):
        """Line quantity is the billed location count."""
        request = checkout_builder.build_checkout_request(make_params(locations=2))
        assert len(request.line_items) == 1
        assert request.line_items[0].price == "price_chatbots_test"
        assert request.line_items[0].quantity == 2
        assert request.quote.total_monthly == Decimal("160.00")
        assert request.metadata["quotedMonthly"] == "160.00"
        assert request.metadata["locations"] == "2"
        assert request.metadata["dailyMessages"] == "20"

    def test_quantity_uses_clamped_locations(self, checkout_builder):
        request = checkout_builder.build_checkout_request(make_params(locations=9))
        assert request.line_items[0].quantity == 5
        assert request.metadata["locations"] == "5"

    def test_daily_messages_passed_through(self, checkout_builder):
        request = checkout_builder.build_checkout_request(make_params(daily_messages=25))
        assert request.metadata["dailyMessages"] == "25"
        assert request.metadata["quotedMonthly"] == "135.00"

    def test_mandatory_metadata_wins(self, checkout_builder):
        """Caller cannot override userId or planType."""
        params = make_params(metadata={
            "userId": "someone_else",
            "planType": "enterprise",
            "campaign": 7,
            "quotedMonthly": "1.00",
        })
        request = checkout_builder.build_checkout_request(params)
        assert request.metadata["userId"] == "u_1"
        assert request.metadata["planType"] == "chatbots"
        assert request.metadata["campaign"] == "7"
        assert request.metadata["quotedMonthly"] == "120.00"

    def test_default_urls(self, checkout_builder):
        """Trailing slash on the frontend URL is dropped."""
        request = checkout_builder.build_checkout_request(make_params())
        assert request.success_url == (
            "https://app.unmi.test/dashboard?session_id={CHECKOUT_SESSION_ID}&success=true"
        )
        assert request.cancel_url == "https://app.unmi.test/pricing?canceled=true"

    def test_custom_urls(self, checkout_builder):
        request = checkout_builder.build_checkout_request(make_params(
            success_url="https://shop.test/ok",
            cancel_url="https://shop.test/back",
        ))
        assert request.success_url == "https://shop.test/ok"
        assert request.cancel_url == "https://shop.test/back"

    def test_price_not_configured(self, checkout_builder):
        with pytest.raises(PriceNotConfigured) as exc:
            checkout_builder.build_checkout_request(make_params(plan_type="enterprise"))
        assert exc.value.plan_type == "enterprise"

    def test_non_catalog_plan(self, checkout_builder):
        """Registration is sold as one unit without a quote."""
        request = checkout_builder.build_checkout_request(
            make_params(plan_type="initial_registration", locations=4)
        )
        assert request.quote is None
        assert request.line_items[0].price == "price_templates_test"
        assert request.line_items[0].quantity == 1
        assert "quotedMonthly" not in request.metadata
        assert request.metadata["planType"] == "initial_registration"


class TestBuildMultiSelectionRequest:
    """Test composite request building."""

    def test_one_line_item_per_selection(self, checkout_builder):
        request = checkout_builder.build_multi_selection_request(
            make_selection_params(("templates", 1), ("chatbots", 3))
        )
        assert [(item.price, item.quantity) for item in request.line_items] == [
            ("price_templates_test", 1),
            ("price_chatbots_test", 3),
        ]
        assert request.metadata["planType"] == "templates,chatbots"
        assert request.metadata["selections"] == "templates:1,chatbots:3"
        assert request.metadata["userId"] == "u_1"
        assert request.quote is None

    def test_missing_price_names_plan(self, checkout_builder):
        with pytest.raises(PriceNotConfigured) as exc:
            checkout_builder.build_multi_selection_request(
                make_selection_params(("templates", 1), ("enterprise", 1))
            )
        assert exc.value.plan_type == "enterprise"

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            PlanSelection(plan_type="chatbots", quantity=0)

    def test_selections_required(self):
        with pytest.raises(ValidationError):
            make_selection_params()


class TestPriceMapping:
    """Test price mapping helpers."""

    def test_load_price_mapping(self, tmp_path):
        price_file = tmp_path / "prices.json"
        price_file.write_text('{"mode": "live", "prices": {"chatbots": "price_live_1"}}')
        mapping = load_price_mapping(price_file)
        assert mapping.mode == "live"
        assert mapping.get_price_id("chatbots") == "price_live_1"

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_price_mapping(tmp_path / "missing.json")

    def test_merge_metadata(self):
        merged = merge_metadata({"a": 1, "b": "x"}, {"userId": "u"}, {"b": "y"})
        assert merged == {"a": "1", "b": "y", "userId": "u"}


class TestCreateCheckoutSession:
    """Test submission to the payment provider."""

    @pytest.mark.asyncio
    async def test_checkout(self, checkout_builder, mock_payment_provider):
        """Session URL is returned for redirect."""
        session = await checkout_builder.checkout(make_params(locations=2))
        assert session.id == "cs_test_123"
        assert session.url == "https://checkout.stripe.com/c/pay/cs_test_123"

        mock_payment_provider.create_checkout_session.assert_awaited_once()
        kwargs = mock_payment_provider.create_checkout_session.call_args.kwargs
        assert kwargs["customer_email"] == "owner@example.com"
        assert kwargs["line_items"][0].quantity == 2
        assert kwargs["metadata"]["userId"] == "u_1"

    @pytest.mark.asyncio
    async def test_checkout_selections(self, checkout_builder, mock_payment_provider):
        session = await checkout_builder.checkout_selections(
            make_selection_params(("templates", 1), ("chatbots", 2))
        )
        assert session.id == "cs_test_123"
        kwargs = mock_payment_provider.create_checkout_session.call_args.kwargs
        assert len(kwargs["line_items"]) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("cause", ["network", "rejected"])
    async def test_provider_error_is_wrapped(self, checkout_builder, mock_payment_provider,
                                             caplog, cause):
        """Provider detail is logged, never returned."""
        mock_payment_provider.create_checkout_session.side_effect = PaymentProviderError(
            "stripe", "Invalid API Key provided: sk_test_secret", cause=cause
        )

        with caplog.at_level(logging.ERROR, logger="unmi_billing.checkout"):
            with pytest.raises(CheckoutSessionCreationFailed) as exc:
                await checkout_builder.checkout(make_params())

        assert exc.value.cause == cause
        assert exc.value.message == "Failed to create checkout session"
        assert "sk_test_secret" not in str(exc.value)
        assert exc.value.__cause__ is None
        assert "sk_test_secret" in caplog.text
        assert caplog.records[-1].cause == cause

    @pytest.mark.asyncio
    async def test_session_without_url(self, checkout_builder, mock_payment_provider):
        mock_payment_provider.create_checkout_session.return_value = ProviderSession(
            id="cs_test_456", url=None
        )
        with pytest.raises(CheckoutSessionCreationFailed) as exc:
            await checkout_builder.checkout(make_params())
        assert exc.value.cause == "rejected"

    @pytest.mark.asyncio
    async def test_no_provider(self, price_mapping, calculator):
        builder = CheckoutSessionBuilder(price_mapping=price_mapping, calculator=calculator)
        with pytest.raises(RuntimeError):
            await builder.checkout(make_params())

    @pytest.mark.asyncio
    async def test_price_error_before_provider_call(self, checkout_builder, mock_payment_provider):
        with pytest.raises(PriceNotConfigured):
            await checkout_builder.checkout(make_params(plan_type="enterprise"))
        mock_payment_provider.create_checkout_session.assert_not_awaited()


class TestRetrievePlanPrice:
    """Test reading provider prices."""

    @pytest.mark.asyncio
    async def test_price_in_currency_units(self, checkout_builder, mock_payment_provider):
        price = await checkout_builder.retrieve_plan_price("chatbots")
        assert price == Decimal("120.00")
        mock_payment_provider.retrieve_price.assert_awaited_once_with("price_chatbots_test")

    @pytest.mark.asyncio
    async def test_price_without_amount(self, checkout_builder, mock_payment_provider):
        mock_payment_provider.retrieve_price.return_value = ProviderPrice(
            id="price_chatbots_test", unit_amount=None
        )
        with pytest.raises(PriceNotConfigured):
            await checkout_builder.retrieve_plan_price("chatbots")
