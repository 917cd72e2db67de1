# =============================================================================
# tests/test_subscription_service.py - Subscription Dispatcher Tests
# =============================================================================
# Unit tests for core/services/subscription_service.py with a mocked store and
# Paddle client. Each test checks which outbound calls did (not) happen.
#
# Run with: pytest tests/test_subscription_service.py -v
# =============================================================================

import pytest

from app.exceptions import (
    BillingProviderError,
    CustomerNotFoundError,
    InvalidActionError,
    MissingFieldsError,
    StoreError,
    SubscriptionNotFoundError,
)
from core.services.subscription_service import SubscriptionService, parse_action
from core.models.billing import SubscriptionAction
from lib.paddle_client import PaddleClientError
from lib.supabase_client import SupabaseClientError
from tests.conftest import make_user


@pytest.fixture
def owned(store, customer, subscription_row):
    """Store where the user owns sub_01h8xyz."""
    store.fetch_customer_by_email.return_value = customer
    store.fetch_subscription.return_value = subscription_row
    return store


@pytest.fixture
def service(store, billing):
    return SubscriptionService(store, billing)


# =============================================================================
# Validation
# =============================================================================

class TestParseAction:
    """Tests for request field validation."""

    @pytest.mark.parametrize("subscription_id, action", [
        (None, "pause"),
        ("sub_1", None),
        ("", "pause"),
        ("sub_1", ""),
    ])
    def test_missing_fields(self, subscription_id, action):
        with pytest.raises(MissingFieldsError) as exc_info:
            parse_action(subscription_id, action)

        assert exc_info.value.status_code == 400
        assert "subscriptionId and action are required" in exc_info.value.message

    def test_invalid_action(self):
        with pytest.raises(InvalidActionError) as exc_info:
            parse_action("sub_1", "delete")

        assert exc_info.value.message == "Invalid action. Must be one of: pause, cancel, resume"

    def test_action_is_case_sensitive(self):
        with pytest.raises(InvalidActionError):
            parse_action("sub_1", "PAUSE")

    def test_valid_action(self):
        assert parse_action("sub_1", "resume") == SubscriptionAction.RESUME


# =============================================================================
# Dispatch
# =============================================================================

class TestPerformAction:
    """Tests for SubscriptionService.perform_action()."""

    def test_invalid_action_makes_no_outbound_calls(self, service, store, billing):
        with pytest.raises(InvalidActionError):
            service.perform_action("sub_01h8xyz", "delete", make_user())

        store.fetch_customer_by_email.assert_not_called()
        assert billing.method_calls == []

    def test_pause_owned_subscription(self, service, owned, billing):
        # Arrange: Paddle accepts the pause
        billing.pause_subscription.return_value = {"id": "sub_01h8xyz", "status": "active"}

        # Act
        data = service.perform_action("sub_01h8xyz", "pause", make_user())

        # Assert: exactly one Paddle call, payload passed through verbatim
        assert data == {"id": "sub_01h8xyz", "status": "active"}
        billing.pause_subscription.assert_called_once_with(
            "sub_01h8xyz", effective_from="next_billing_period"
        )
        owned.fetch_subscription.assert_called_once_with("sub_01h8xyz", "ctm_01h8abc")

    def test_cancel_defaults_to_next_billing_period(self, service, owned, billing):
        service.perform_action("sub_01h8xyz", "cancel", make_user())

        billing.cancel_subscription.assert_called_once_with(
            "sub_01h8xyz", effective_from="next_billing_period"
        )

    def test_cancel_immediately(self, service, owned, billing):
        service.perform_action("sub_01h8xyz", "cancel", make_user(), immediate=True)

        billing.cancel_subscription.assert_called_once_with(
            "sub_01h8xyz", effective_from="immediately"
        )

    def test_resume_active_subscription_is_forwarded(self, service, owned, billing):
        """No local status check: Paddle decides whether resume makes sense."""
        billing.resume_subscription.return_value = {"id": "sub_01h8xyz"}

        data = service.perform_action("sub_01h8xyz", "resume", make_user())

        assert data == {"id": "sub_01h8xyz"}
        billing.resume_subscription.assert_called_once_with("sub_01h8xyz")

    def test_user_without_email_has_no_customer(self, service, store, billing):
        with pytest.raises(CustomerNotFoundError):
            service.perform_action("sub_01h8xyz", "pause", make_user(email=None))

        store.fetch_customer_by_email.assert_not_called()
        assert billing.method_calls == []

    def test_customer_not_found(self, service, store, billing):
        with pytest.raises(CustomerNotFoundError) as exc_info:
            service.perform_action("sub_01h8xyz", "pause", make_user())

        assert exc_info.value.message == "Customer not found"
        assert billing.method_calls == []

    def test_subscription_of_another_customer_is_not_found(
        self, service, store, billing, customer
    ):
        store.fetch_customer_by_email.return_value = customer
        store.fetch_subscription.return_value = None

        with pytest.raises(SubscriptionNotFoundError) as exc_info:
            service.perform_action("sub_someone_else", "cancel", make_user())

        assert exc_info.value.message == "Subscription not found"
        assert billing.method_calls == []

    def test_paddle_rejection_is_provider_error(self, service, owned, billing):
        billing.pause_subscription.side_effect = PaddleClientError(
            "Subscription is not active", code="PADDLE_API_ERROR", status_code=400
        )

        with pytest.raises(BillingProviderError) as exc_info:
            service.perform_action("sub_01h8xyz", "pause", make_user())

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Failed to pause subscription"
        assert exc_info.value.retryable is False

    def test_paddle_timeout_is_retryable(self, service, owned, billing):
        billing.resume_subscription.side_effect = PaddleClientError(
            "Timed out", code="PADDLE_TIMEOUT", retryable=True
        )

        with pytest.raises(BillingProviderError) as exc_info:
            service.perform_action("sub_01h8xyz", "resume", make_user())

        assert exc_info.value.retryable is True

    def test_store_failure_is_store_error(self, service, store, billing):
        store.fetch_customer_by_email.side_effect = SupabaseClientError("boom")

        with pytest.raises(StoreError):
            service.perform_action("sub_01h8xyz", "pause", make_user())

        assert billing.method_calls == []


class TestEmailMatching:
    """Exact match by default; normalization is opt-in."""

    def test_exact_email_by_default(self, store, billing):
        service = SubscriptionService(store, billing)

        service.resolve_customer(make_user(email=" Jane@Example.com"))

        store.fetch_customer_by_email.assert_called_once_with(" Jane@Example.com")

    def test_normalized_email(self, store, billing):
        service = SubscriptionService(store, billing, normalize_email=True)

        service.resolve_customer(make_user(email=" Jane@Example.com"))

        store.fetch_customer_by_email.assert_called_once_with("jane@example.com")
