# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - billing.py: mirrored billing rows (customers, subscriptions, transactions)
#   with the account views built from them, and the subscription management
#   request/response
#
# These models define the "contract" between API and clients.
# =============================================================================

from .billing import (
    AccountOverview,
    BillingSummary,
    Customer,
    EffectiveFrom,
    ManageSubscriptionRequest,
    ManageSubscriptionResponse,
    PortalSubscriptionLink,
    Subscription,
    SubscriptionAction,
    SubscriptionList,
    Transaction,
)

__all__ = [
    "AccountOverview",
    "BillingSummary",
    "Customer",
    "EffectiveFrom",
    "ManageSubscriptionRequest",
    "ManageSubscriptionResponse",
    "PortalSubscriptionLink",
    "Subscription",
    "SubscriptionAction",
    "SubscriptionList",
    "Transaction",
]
