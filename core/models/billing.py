# =============================================================================
# core/models/billing.py - Billing Mirror Schemas
# =============================================================================
# Read-only shapes of the rows mirrored from Paddle into Supabase:
# - Customer: maps a user's email to a Paddle customer id
# - Subscription: belongs to one customer
# - Transaction: a billing event for a subscription/customer
#
# Plus the account views built from them and the request/response contract for
# the subscription management endpoint.
# Paddle stays the source of truth; nothing here is written back.
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SubscriptionAction(str, Enum):
    """
    Mutations a user may request on their own subscription.

    - pause: pause at the next billing period
    - cancel: cancel at the next billing period (or immediately if asked)
    - resume: resume right away
    """
    PAUSE = "pause"
    CANCEL = "cancel"
    RESUME = "resume"

    @classmethod
    def values(cls) -> list[str]:
        return [a.value for a in cls]


class EffectiveFrom(str, Enum):
    """When a Paddle subscription change takes effect."""
    NEXT_BILLING_PERIOD = "next_billing_period"
    IMMEDIATELY = "immediately"


# =============================================================================
# Mirrored Rows
# =============================================================================

class Customer(BaseModel):
    """
    Row of the `customers` table.

    At most one row exists per email.
    """
    model_config = ConfigDict(extra="ignore")

    customer_id: str
    email: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Subscription(BaseModel):
    """
    Row of the `subscriptions` table.

    `subscription_status` is kept as a plain string because Paddle may add
    statuses (trialing, past_due, ...) that we only display.
    """
    model_config = ConfigDict(extra="ignore")

    subscription_id: str
    customer_id: str
    subscription_status: str
    price_id: str | None = None
    product_id: str | None = None
    scheduled_change: Any | None = None
    started_at: datetime | None = None
    paused_at: datetime | None = None
    canceled_at: datetime | None = None
    first_billed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Transaction(BaseModel):
    """Row of the `transactions` table."""
    model_config = ConfigDict(extra="ignore")

    transaction_id: str
    customer_id: str
    subscription_id: str | None = None
    status: str
    amount: float | None = None
    currency_code: str | None = None
    billed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# =============================================================================
# Account Views
# =============================================================================

class SubscriptionList(BaseModel):
    """A customer's subscriptions, newest first."""
    subscriptions: list[Subscription] = Field(default_factory=list)


class AccountOverview(BaseModel):
    """Summary shown on the account dashboard."""
    customer_id: str | None = None
    subscription_count: int = 0
    active_subscription_count: int = 0


class PortalSubscriptionLink(BaseModel):
    """
    Customer portal deep links for one subscription.

    `status` comes from the mirrored row; the links come from Paddle.
    """
    id: str
    status: str | None = None
    cancel_subscription: str | None = None
    update_subscription_payment_method: str | None = None


class BillingSummary(BaseModel):
    """
    Billing page data.

    The portal fields are empty when Paddle could not create a portal session.
    """
    customer_id: str | None = None
    transactions: list[Transaction] = Field(default_factory=list)
    portal_url: str | None = Field(
        default=None,
        description="Customer portal overview link (urls.general.overview)"
    )
    portal_subscriptions: list[PortalSubscriptionLink] = Field(default_factory=list)


# =============================================================================
# Subscription Management API
# =============================================================================

class ManageSubscriptionRequest(BaseModel):
    """
    Body of POST /api/v1/subscriptions/manage.

    Fields are optional at the schema level so that missing values surface
    as a 400 from the dispatcher rather than a schema error.

    Example:
        {"subscriptionId": "sub_01h...", "action": "pause"}
    """
    model_config = ConfigDict(populate_by_name=True)

    subscription_id: str | None = Field(
        default=None,
        alias="subscriptionId",
        description="Paddle subscription id"
    )
    action: str | None = Field(
        default=None,
        description="One of: pause, cancel, resume"
    )
    immediate: bool = Field(
        default=False,
        description="Cancel immediately instead of at the next billing period"
    )


class ManageSubscriptionResponse(BaseModel):
    """Successful subscription mutation; `data` is Paddle's payload verbatim."""
    success: bool = True
    message: str
    data: Any = None
