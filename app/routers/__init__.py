# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - account.py: Account page data (overview, subscriptions, billing, security)
# - subscriptions.py: Subscription management JSON API
#
# Auth flows live in app/auth/routes.py.
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import account
from . import health
from . import subscriptions

__all__ = [
    "account",
    "health",
    "subscriptions",
]
