"""
Chapa API client for hosted checkout.

Provides async methods for:
- Initializing a hosted checkout session for an order
- Verifying a transaction by its reference
- Checking webhook signatures
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from decimal import Decimal

import httpx

from libs.common.config import Settings

CHAPA_SUCCESS = "success"


@dataclass
class CheckoutSession:
    """A hosted checkout page created by Chapa."""

    checkout_url: str
    tx_ref: str


@dataclass
class TransactionVerification:
    """Ground truth for a transaction as reported by Chapa."""

    tx_ref: str
    status: str  # success, pending, failed

    @property
    def is_successful(self) -> bool:
        return self.status == CHAPA_SUCCESS


class ChapaError(Exception):
    """Base exception for Chapa API errors."""

    def __init__(
        self, message: str, status_code: int = None, response_data: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)


def compute_webhook_signature(secret: str, raw_body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_webhook_signature(secret: str, raw_body: bytes, signature: str) -> bool:
    """Constant-time comparison of the HMAC-SHA256 of the raw body."""
    if not secret or not signature:
        return False
    digest = compute_webhook_signature(secret, raw_body)
    return hmac.compare_digest(digest, signature.strip().lower())


class ChapaClient:
    """Async client for the Chapa transaction API."""

    def __init__(
        self,
        secret_key: str,
        *,
        base_url: str = "https://api.chapa.co/v1",
        timeout: float = 30.0,
        logger: logging.Logger = None,
    ):
        if not secret_key:
            raise ValueError("CHAPA_SECRET_KEY is required")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._headers = {
            "Authorization": f"Bearer {secret_key}",
            "Content-Type": "application/json",
        }

    @classmethod
    def from_settings(cls, settings: Settings, logger: logging.Logger = None):
        return cls(
            settings.CHAPA_SECRET_KEY,
            base_url=settings.CHAPA_API_BASE_URL,
            timeout=settings.CHAPA_TIMEOUT_SECONDS,
            logger=logger,
        )

    async def _request(
        self,
        method: str,
        endpoint: str,
        json_data: dict = None,
    ) -> dict:
        """Make an async request to the Chapa API."""
        url = f"{self.base_url}{endpoint}"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._headers,
                    json=json_data,
                )
            except httpx.HTTPError as e:
                raise ChapaError(f"Chapa request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            self.logger.error(
                "Chapa returned a non-JSON body: %s %s -> %s",
                method,
                endpoint,
                response.status_code,
            )
            raise ChapaError(
                "Chapa returned an unreadable response",
                status_code=response.status_code,
            )

        if not response.is_success:
            self.logger.error(
                "Chapa API error: %s %s -> %s",
                method,
                endpoint,
                response.status_code,
            )
            raise ChapaError(
                message=data.get("message", "Unknown Chapa error"),
                status_code=response.status_code,
                response_data=data,
            )

        if data.get("status") != CHAPA_SUCCESS:
            raise ChapaError(
                message=data.get("message", "Chapa request failed"),
                status_code=response.status_code,
                response_data=data,
            )

        return data

    async def initialize(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        amount: Decimal,
        currency: str,
        tx_ref: str,
        callback_url: str,
        title: str = "Product order",
        description: str = None,
    ) -> CheckoutSession:
        """
        Create a hosted checkout session.

        Returns:
            CheckoutSession with the URL the buyer is redirected to

        Raises:
            ChapaError: If Chapa rejects the request or returns no checkout URL
        """
        data = await self._request(
            "POST",
            "/transaction/initialize",
            json_data={
                "first_name": first_name,
                "last_name": last_name,
                "email": email,
                "amount": str(amount),
                "currency": currency,
                "tx_ref": tx_ref,
                "callback_url": callback_url,
                "customization": {
                    "title": title,
                    "description": description or title,
                },
            },
        )

        checkout_url = (data.get("data") or {}).get("checkout_url")
        if not checkout_url:
            raise ChapaError("Chapa returned no checkout URL", response_data=data)

        return CheckoutSession(checkout_url=checkout_url, tx_ref=tx_ref)

    async def verify(self, tx_ref: str) -> TransactionVerification:
        """
        Look up the status of a transaction by reference.

        Any readable answer below 500 that is not a success (a 200 with
        ``"status": "failed"``, an unknown reference, ...) is reported as a
        non-success status rather than raised, so callers can tell "not paid"
        from "Chapa down". Transport errors, 5xx responses and unreadable
        bodies still raise ChapaError.
        """
        try:
            data = await self._request("GET", f"/transaction/verify/{tx_ref}")
        except ChapaError as e:
            if e.status_code is not None and e.status_code < 500 and e.response_data:
                reported = e.response_data.get("status")
                self.logger.warning(
                    "Chapa reported transaction %s as %s: %s",
                    tx_ref,
                    reported,
                    e.message,
                )
                if not reported or reported == CHAPA_SUCCESS:
                    reported = "failed"
                return TransactionVerification(tx_ref=tx_ref, status=reported)
            raise

        transaction = data.get("data") or {}
        return TransactionVerification(
            tx_ref=transaction.get("tx_ref", tx_ref),
            status=transaction.get("status", "pending"),
        )
