# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains the account/billing business logic:
# - models/: Pydantic schemas for the mirrored billing rows
# - services/: subscription actions and account page data
#
# Code in this package should NOT import from FastAPI.
# This keeps the logic testable and reusable.
# =============================================================================
