"""
Unmi Billing Errors
===================

Error taxonomy for the pricing core. Every error carries structured
details so the HTTP layer can render an actionable message without
parsing strings.
"""

from typing import Any, Dict, Iterable, Optional, Tuple


class BillingError(Exception):
    """Base exception for billing core errors."""

    code = "billing_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": dict(self.details)}


# ============================================
# CATALOG / PRICING
# ============================================

class CatalogError(BillingError, ValueError):
    """Tier catalog definition violates an authoring rule."""

    code = "catalog_error"

    def __init__(self, message: str, tier_id: Optional[str] = None):
        self.tier_id = tier_id
        super().__init__(message, {"tier_id": tier_id} if tier_id else None)


class TierNotFound(BillingError, LookupError):
    """Tier id is not part of the catalog."""

    code = "tier_not_found"

    def __init__(self, tier_id: str, catalog_version: Optional[str] = None):
        self.tier_id = tier_id
        self.catalog_version = catalog_version
        super().__init__(
            f"Tier not found: {tier_id}",
            {"tier_id": tier_id, "catalog_version": catalog_version},
        )


class InvalidTier(BillingError, ValueError):
    """Pricing was requested for a tier id the catalog does not know."""

    code = "invalid_tier"

    def __init__(self, tier_id: str):
        self.tier_id = tier_id
        super().__init__(f"Invalid tier ID: {tier_id}", {"field": "tier_id", "tier_id": tier_id})


class DivisionByZero(BillingError, ZeroDivisionError):
    """Bundle discount requested against zero current locations."""

    code = "division_by_zero"

    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value
        super().__init__(
            f"{field} must be greater than zero (got {value})",
            {"field": field, "value": value},
        )


# ============================================
# CHECKOUT
# ============================================

class PriceNotConfigured(BillingError):
    """No provider price reference configured for a plan type."""

    code = "price_not_configured"

    def __init__(self, plan_type: str):
        self.plan_type = plan_type
        super().__init__(f"No price configured for plan: {plan_type}", {"plan_type": plan_type})


class PaymentProviderError(BillingError):
    """Raised by payment provider adapters. `cause` is 'network' or 'rejected'."""

    code = "payment_provider_error"

    def __init__(self, provider: str, message: str, cause: str = "rejected"):
        self.provider = provider
        self.cause = cause
        super().__init__(f"[{provider}] {message}", {"provider": provider, "cause": cause})


class CheckoutSessionCreationFailed(BillingError):
    """Checkout session could not be created; message is safe to show to user."""

    code = "checkout_session_creation_failed"

    def __init__(self, cause: str, message: str = "Failed to create checkout session"):
        self.cause = cause
        super().__init__(message, {"cause": cause})


# ============================================
# TEMPLATE VARIABLES
# ============================================

class TemplateValidationError(BillingError, ValueError):
    """Base class for message template contract violations."""

    code = "template_invalid"

    def __init__(self, message: str, variables: Iterable[str] = ()):
        self.variables: Tuple[str, ...] = tuple(variables)
        super().__init__(message, {"variables": list(self.variables)})


class ContentTooLong(TemplateValidationError):
    code = "content_too_long"

    def __init__(self, length: int, limit: int):
        self.length = length
        self.limit = limit
        super().__init__(f"Template content exceeds {limit} characters (got {length})")
        self.details.update({"length": length, "limit": limit})


class DuplicateVariable(TemplateValidationError):
    code = "duplicate_variable"

    def __init__(self, variables: Iterable[str]):
        variables = tuple(variables)
        super().__init__(f"Duplicate variables not allowed: {', '.join(variables)}", variables)


class UndeclaredVariable(TemplateValidationError):
    code = "undeclared_variable"

    def __init__(self, variables: Iterable[str]):
        variables = tuple(variables)
        super().__init__(
            f"Variables used in content but not declared: {', '.join(variables)}", variables
        )


class UnusedDeclaration(TemplateValidationError):
    code = "unused_declaration"

    def __init__(self, variables: Iterable[str]):
        variables = tuple(variables)
        super().__init__(f"Declared variables not used in content: {', '.join(variables)}", variables)


class VariableOrderMismatch(TemplateValidationError):
    code = "variable_order_mismatch"

    def __init__(self, declared: Iterable[str], found: Iterable[str]):
        self.declared = tuple(declared)
        self.found = tuple(found)
        super().__init__(
            f"Variable order mismatch. Expected: [{', '.join(self.found)}]", self.found
        )
        self.details.update({"declared": list(self.declared), "found": list(self.found)})
