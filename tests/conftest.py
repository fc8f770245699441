"""Shared test helpers: auth overrides, a fake Chapa gateway, webhook signing."""

import json
import uuid
from contextlib import contextmanager
from typing import Optional

from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from services.marketplace_service.chapa_client import (
    ChapaError,
    CheckoutSession,
    TransactionVerification,
    compute_webhook_signature,
)


def make_auth_user(user_id: Optional[uuid.UUID] = None, **overrides) -> AuthUser:
    defaults = {
        "user_id": user_id or uuid.uuid4(),
        "email": "buyer@test.com",
        "role": "user",
    }
    defaults.update(overrides)
    return AuthUser(**defaults)


@contextmanager
def override_auth(app, user: AuthUser):
    """Authenticate every request made inside the block as ``user``."""
    previous = app.dependency_overrides.get(get_current_user)
    app.dependency_overrides[get_current_user] = lambda: user
    try:
        yield user
    finally:
        if previous is None:
            app.dependency_overrides.pop(get_current_user, None)
        else:
            app.dependency_overrides[get_current_user] = previous


class FakeGateway:
    """In-memory stand-in for ``ChapaClient``.

    ``verify_status`` is what every lookup reports; set ``fail_initialize`` to
    simulate Chapa rejecting a checkout.
    """

    def __init__(self, verify_status: str = "success", fail_initialize: bool = False):
        self.verify_status = verify_status
        self.fail_initialize = fail_initialize
        self.verify_error: Optional[ChapaError] = None
        self.initialized: list[dict] = []
        self.verified: list[str] = []

    async def initialize(self, **kwargs) -> CheckoutSession:
        self.initialized.append(kwargs)
        if self.fail_initialize:
            raise ChapaError("Chapa is unavailable", status_code=503)
        return CheckoutSession(
            checkout_url=f"https://checkout.chapa.co/checkout/payment/{kwargs['tx_ref']}",
            tx_ref=kwargs["tx_ref"],
        )

    async def verify(self, tx_ref: str) -> TransactionVerification:
        self.verified.append(tx_ref)
        if self.verify_error:
            raise self.verify_error
        return TransactionVerification(tx_ref=tx_ref, status=self.verify_status)


def signed_webhook(tx_ref: str, secret: Optional[str] = None) -> tuple[bytes, dict]:
    """Body and headers for a Chapa webhook signed with the test secret."""
    body = json.dumps({"tx_ref": tx_ref, "status": "success"}).encode("utf-8")
    signature = compute_webhook_signature(
        secret or get_settings().CHAPA_WEBHOOK_SECRET, body
    )
    return body, {
        "x-chapa-signature": signature,
        "Content-Type": "application/json",
    }
