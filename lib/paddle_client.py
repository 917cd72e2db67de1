# =============================================================================
# lib/paddle_client.py - Paddle Billing API Client
# =============================================================================
# Thin wrapper around the Paddle Billing REST API for the calls this app makes:
# - pause / cancel / resume a subscription
# - create a customer portal session (billing page links)
#
# One client is built by the app factory and closed on shutdown. Every call
# has a bounded timeout and is sent exactly once (no retries here).
#
# Usage:
#   client = PaddleClient(api_key, environment="sandbox")
#   data = client.pause_subscription("sub_01h...")
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

import httpx

from lib.utils import ApplicationError, mask_secret

logger = logging.getLogger(__name__)

PADDLE_BASE_URLS = {
    "sandbox": "https://sandbox-api.paddle.com",
    "production": "https://api.paddle.com",
}


class PaddleClientError(ApplicationError):
    """
    Error talking to Paddle.

    Attributes:
        status_code: HTTP status Paddle answered with (None if no answer)
        retryable: True when the call may be retried by the caller (timeouts)
        request_id: Paddle's meta.request_id, when present
    """

    def __init__(
        self,
        message: str,
        code: str = "PADDLE_ERROR",
        status_code: int | None = None,
        retryable: bool = False,
        request_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message,
            code=code,
            suggestion="Check the Paddle dashboard and PADDLE_API_KEY/PADDLE_ENVIRONMENT",
            details=details,
        )
        self.status_code = status_code
        self.retryable = retryable
        self.request_id = request_id


class PaddleClient:
    """
    Paddle Billing API client.

    Example:
        paddle = PaddleClient(api_key="pdl_...", environment="sandbox")
        subscription = paddle.cancel_subscription("sub_01h...")
        paddle.close()
    """

    def __init__(
        self,
        api_key: str,
        environment: str = "sandbox",
        api_version: str = "1",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("PADDLE_API_KEY is not configured")
        if environment not in PADDLE_BASE_URLS:
            raise ValueError(f"Unknown Paddle environment: {environment}")

        self.environment = environment
        self.base_url = PADDLE_BASE_URLS[environment]
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Paddle-Version": api_version,
            },
            timeout=timeout,
            transport=transport,
        )
        logger.info(
            f"Paddle client ready ({environment}, key {mask_secret(api_key)})"
        )

    @classmethod
    def from_settings(cls, settings: Any) -> PaddleClient:
        """Build the client from application Settings."""
        return cls(
            api_key=settings.PADDLE_API_KEY,
            environment=settings.PADDLE_ENVIRONMENT,
            api_version=settings.PADDLE_API_VERSION,
            timeout=settings.OUTBOUND_TIMEOUT_SECONDS,
        )

    def close(self) -> None:
        self._client.close()

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def pause_subscription(
        self,
        subscription_id: str,
        effective_from: str = "next_billing_period",
    ) -> Any:
        """
        Pause a subscription.

        Args:
            subscription_id: Paddle subscription id
            effective_from: "next_billing_period" (default) or "immediately"

        Returns:
            Paddle's `data` payload (the updated subscription)

        Raises:
            PaddleClientError: On non-2xx, transport error or timeout
        """
        return self._request(
            "POST",
            f"/subscriptions/{subscription_id}/pause",
            json={"effective_from": effective_from},
        )

    def cancel_subscription(
        self,
        subscription_id: str,
        effective_from: str = "next_billing_period",
    ) -> Any:
        """
        Cancel a subscription.

        Args:
            subscription_id: Paddle subscription id
            effective_from: "next_billing_period" (default) or "immediately"

        Returns:
            Paddle's `data` payload (the updated subscription)

        Raises:
            PaddleClientError: On non-2xx, transport error or timeout
        """
        return self._request(
            "POST",
            f"/subscriptions/{subscription_id}/cancel",
            json={"effective_from": effective_from},
        )

    def resume_subscription(self, subscription_id: str) -> Any:
        """
        Resume a paused subscription right away (no request body).

        Raises:
            PaddleClientError: On non-2xx, transport error or timeout
        """
        return self._request("POST", f"/subscriptions/{subscription_id}/resume")

    # -------------------------------------------------------------------------
    # Customer Portal
    # -------------------------------------------------------------------------

    def create_portal_session(
        self,
        customer_id: str,
        subscription_ids: list[str] | None = None,
    ) -> Any:
        """
        Create a customer portal session.

        Returns:
            Paddle's `data` payload; `data["urls"]["general"]["overview"]`
            is the portal link and `data["urls"]["subscriptions"]` holds the
            deep links for each requested subscription.
        """
        body = {"subscription_ids": subscription_ids} if subscription_ids else {}
        return self._request(
            "POST",
            f"/customers/{customer_id}/portal-sessions",
            json=body,
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """
        Send one request and unwrap Paddle's envelope.

        Paddle answers `{"data": ..., "meta": {"request_id": ...}}` on success
        and `{"error": {"code", "detail", ...}, "meta": ...}` on failure.
        """
        try:
            response = self._client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout calling Paddle {method} {path}: {e}")
            raise PaddleClientError(
                message=f"Timed out calling Paddle: {method} {path}",
                code="PADDLE_TIMEOUT",
                retryable=True,
            )
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling Paddle {method} {path}: {e}")
            raise PaddleClientError(
                message=f"Failed to connect to Paddle: {e}",
                code="PADDLE_CONNECTION_ERROR",
            )

        try:
            payload = response.json() if response.content else {}
        except ValueError:
            logger.error(
                f"Invalid JSON from Paddle {method} {path} "
                f"(HTTP {response.status_code}): {response.text[:200]}"
            )
            raise PaddleClientError(
                message="Invalid response from Paddle: could not parse JSON",
                code="PADDLE_INVALID_RESPONSE",
                status_code=response.status_code,
            )

        request_id = (payload.get("meta") or {}).get("request_id") if isinstance(payload, dict) else None

        if not response.is_success:
            error = (payload.get("error") or {}) if isinstance(payload, dict) else {}
            detail = error.get("detail") or f"HTTP {response.status_code}"
            logger.error(
                f"Paddle API error on {method} {path}: status={response.status_code} "
                f"code={error.get('code')} detail={detail} request_id={request_id}"
            )
            raise PaddleClientError(
                message=detail,
                code="PADDLE_API_ERROR",
                status_code=response.status_code,
                request_id=request_id,
                details={"paddle_code": error.get("code")},
            )

        logger.debug(f"Paddle {method} {path} ok (request_id={request_id})")
        return payload.get("data") if isinstance(payload, dict) else payload
