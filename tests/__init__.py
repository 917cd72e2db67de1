# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Account Portal API:
# - test_cookies.py / test_middleware.py / test_guard.py: cookie session layer
# - test_session.py: the Supabase session client against a mocked auth server
# - test_subscription_service.py / test_subscriptions_api.py: subscription actions
# - test_auth_routes.py / test_account_routes.py: auth flows and account pages
# - test_paddle_client.py / test_supabase_client.py: external service wrappers
# - test_models.py: Pydantic models and Settings
#
# Run tests with: pytest
# =============================================================================
