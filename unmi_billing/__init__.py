"""
Unmi Billing Core

Pricing and billing calculations for missed-call recovery plans.

Components:
- TierCatalog: versioned, validated pricing tiers (current + legacy)
- PricingCalculator: monthly/yearly price breakdown per configuration
- BundleDiscountEngine: multi-location bundle savings, flat volume ladder
- TierRecommender: tier from expected usage or from utilization
- CheckoutSessionBuilder: checkout requests for the payment provider
- TemplateVariableValidator: message template variable contract
"""

from .checkout import (
    CheckoutParams,
    CheckoutRequest,
    CheckoutSession,
    CheckoutSessionBuilder,
    MultiSelectionParams,
    PlanSelection,
    PriceMapping,
    load_price_mapping,
)
from .config import BillingConfig, StripeConfig
from .discounts import (
    BundleDiscount,
    BundleDiscountEngine,
    BundleSizeRecommendation,
    calculate_volume_discount_percent,
    recommend_bundle_size,
)
from .engine import BillingEngine, bootstrap
from .errors import (
    BillingError,
    CatalogError,
    CheckoutSessionCreationFailed,
    ContentTooLong,
    DivisionByZero,
    DuplicateVariable,
    InvalidTier,
    PaymentProviderError,
    PriceNotConfigured,
    TemplateValidationError,
    TierNotFound,
    UndeclaredVariable,
    UnusedDeclaration,
    VariableOrderMismatch,
)
from .payment_provider import (
    LineItem,
    PaymentProvider,
    ProviderPrice,
    ProviderSession,
    StripePaymentProvider,
)
from .pricing import PricingCalculation, PricingCalculator, round_money
from .recommender import TierRecommender, UsageSnapshot
from .templates import (
    TemplateVariableValidator,
    extract_variables,
    render_template,
    validate_template,
)
from .tiers import (
    CURRENT_CATALOG,
    LEGACY_CATALOG,
    LocationPricingMode,
    PricingTier,
    TierCatalog,
    get_catalog,
)

__version__ = "1.0.0"
