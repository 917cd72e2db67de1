# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .account_service import AccountService
from .subscription_service import SubscriptionService, parse_action

__all__ = [
    "AccountService",
    "SubscriptionService",
    "parse_action",
]
