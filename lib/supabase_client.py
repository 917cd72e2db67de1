# =============================================================================
# lib/supabase_client.py - Supabase Mirror Store Wrapper
# =============================================================================
# This module provides a typed wrapper for the read-only lookups we run against
# the billing tables mirrored from Paddle into Supabase:
# - customers (by email)
# - subscriptions (by subscription id + owning customer id, or by customer)
# - transactions (by customer)
#
# One instance is built by the app factory with the service_role key and
# passed to the services that need it. Nothing here writes.
#
# Usage:
#   store = SupabaseClient(url, service_key, timeout=10.0)
#   customer = store.fetch_customer_by_email("a@x.com")
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ValidationError
from supabase import Client, ClientOptions, create_client

from core.models.billing import Customer, Subscription, Transaction
from lib.utils import ApplicationError

# Set up logging for this module
logger = logging.getLogger(__name__)


class SupabaseClientError(ApplicationError):
    """
    Error during Supabase operations.

    Provides actionable error messages following the principle:
    "Errors should tell HOW to fix, not just WHAT failed."
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code=code, suggestion=suggestion, details=details)


def parse_rows(model: type[BaseModel], rows: list[dict[str, Any]], table: str) -> list[Any]:
    """
    Validate raw rows into `model` instances.

    Raises:
        SupabaseClientError: If a row does not have the expected shape
    """
    try:
        return [model.model_validate(row) for row in rows]
    except ValidationError as e:
        raise SupabaseClientError(
            message=f"Unexpected row in {table}: {e.error_count()} invalid field(s)",
            code="INVALID_ROW",
            suggestion=f"Check the {table} table against the mirror schema",
        )


class SupabaseClient:
    """
    Typed wrapper for the mirrored billing tables.

    The underlying supabase `Client` is created on first query (creating it
    validates the key, which we don't want to do at import time). Pass
    `client=` to use an already-built client.

    Example:
        store = SupabaseClient(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
        customer = store.fetch_customer_by_email("a@x.com")
        if customer:
            subs = store.list_subscriptions(customer.customer_id)
    """

    def __init__(
        self,
        url: str,
        service_key: str,
        timeout: float = 10.0,
        client: Client | None = None,
    ):
        self.url = url
        self._service_key = service_key
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Any) -> SupabaseClient:
        """Build the store wrapper from application Settings."""
        return cls(
            url=settings.SUPABASE_URL,
            service_key=settings.SUPABASE_SERVICE_KEY,
            timeout=settings.OUTBOUND_TIMEOUT_SECONDS,
        )

    def get_client(self) -> Client:
        """
        Get or create the service-role Supabase client.

        Uses service_role key which bypasses Row Level Security (RLS);
        ownership is enforced by the queries themselves.

        Returns:
            Client: Supabase client instance

        Raises:
            SupabaseClientError: If client creation fails
        """
        if self._client is None:
            try:
                self._client = create_client(
                    self.url,
                    self._service_key,
                    options=ClientOptions(
                        postgrest_client_timeout=self.timeout,
                        auto_refresh_token=False,
                        persist_session=False,
                    ),
                )
                logger.info("Supabase mirror client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                )
        return self._client

    # -------------------------------------------------------------------------
    # Customers
    # -------------------------------------------------------------------------

    def fetch_customer_by_email(self, email: str) -> Customer | None:
        """
        Fetch the customer row for an email (exact equality).

        Args:
            email: Email as given; callers decide on normalization

        Returns:
            Customer, or None

        Raises:
            SupabaseClientError: If the query fails or more than one row
                matches (the table holds at most one customer per email)
        """
        client = self.get_client()

        try:
            response = (
                client.table("customers")
                .select("customer_id, email, created_at, updated_at")
                .eq("email", email)
                .limit(2)
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch customer: {e}",
                code="FETCH_CUSTOMER_FAILED",
                suggestion="Check that the customers table is accessible",
            )

        rows = response.data or []
        if len(rows) > 1:
            raise SupabaseClientError(
                message="More than one customer row for the same email",
                code="DUPLICATE_CUSTOMER",
                suggestion="Deduplicate the customers table; email must be unique",
            )

        customers = parse_rows(Customer, rows, "customers")
        return customers[0] if customers else None

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def fetch_subscription(
        self,
        subscription_id: str,
        customer_id: str,
    ) -> Subscription | None:
        """
        Fetch a subscription only if it belongs to the given customer.

        A subscription owned by someone else looks exactly like a missing one.

        Args:
            subscription_id: Paddle subscription id
            customer_id: Paddle customer id of the acting user

        Returns:
            Subscription, or None

        Raises:
            SupabaseClientError: If query fails
        """
        client = self.get_client()

        try:
            response = (
                client.table("subscriptions")
                .select("*")
                .eq("subscription_id", subscription_id)
                .eq("customer_id", customer_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch subscription: {e}",
                code="FETCH_SUBSCRIPTION_FAILED",
                details={"subscription_id": subscription_id},
            )

        subscriptions = parse_rows(Subscription, response.data or [], "subscriptions")
        return subscriptions[0] if subscriptions else None

    def list_subscriptions(self, customer_id: str) -> list[Subscription]:
        """
        List a customer's subscriptions, newest first.

        Raises:
            SupabaseClientError: If query fails
        """
        client = self.get_client()

        try:
            response = (
                client.table("subscriptions")
                .select("*")
                .eq("customer_id", customer_id)
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to list subscriptions: {e}",
                code="LIST_SUBSCRIPTIONS_FAILED",
            )

        subscriptions = parse_rows(Subscription, response.data or [], "subscriptions")
        logger.debug(f"Fetched {len(subscriptions)} subscriptions for customer {customer_id}")
        return subscriptions

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def list_transactions(
        self,
        customer_id: str,
        limit: int = 50,
    ) -> list[Transaction]:
        """
        List a customer's transactions, newest first.

        Args:
            customer_id: Paddle customer id
            limit: Maximum number of rows (default: 50)

        Raises:
            SupabaseClientError: If query fails
        """
        client = self.get_client()

        try:
            response = (
                client.table("transactions")
                .select("*")
                .eq("customer_id", customer_id)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to list transactions: {e}",
                code="LIST_TRANSACTIONS_FAILED",
                details={"limit": limit},
            )

        return parse_rows(Transaction, response.data or [], "transactions")

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    def ping(self) -> None:
        """
        Run a trivial query to prove the mirror is reachable.

        Raises:
            SupabaseClientError: If the query fails
        """
        client = self.get_client()
        try:
            client.table("customers").select("customer_id").limit(1).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Mirror store unreachable: {e}",
                code="PING_FAILED",
            )
