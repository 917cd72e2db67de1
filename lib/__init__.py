# =============================================================================
# lib/ - External Service Wrappers
# =============================================================================
# This package contains the wrappers around managed services:
# - supabase_client.py: read-only lookups in the mirrored billing tables
# - paddle_client.py: Paddle Billing REST client
# - utils.py: Shared utilities (error base class, email normalization)
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.paddle_client import PADDLE_BASE_URLS, PaddleClient, PaddleClientError
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import ApplicationError, mask_secret, normalize_email

__all__ = [
    # Supabase
    "SupabaseClient",
    "SupabaseClientError",
    # Paddle
    "PADDLE_BASE_URLS",
    "PaddleClient",
    "PaddleClientError",
    # Utils
    "ApplicationError",
    "mask_secret",
    "normalize_email",
]
