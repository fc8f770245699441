"""Domain error taxonomy.

Services raise these instead of ``HTTPException`` so they stay usable outside
a request; ``libs.common.error_handler`` maps them onto HTTP responses.
"""

from fastapi import status


class MarketplaceError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    default_message: str = "Something went wrong"

    def __init__(self, message: str = None, **context):
        self.message = message or self.default_message
        # Ids only; never put secrets or raw payloads here
        self.context = context
        super().__init__(self.message)


class NotFound(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Resource not found"


class Forbidden(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_message = "You do not have access to this resource"


class InvalidState(MarketplaceError):
    """A business rule rejected the request (bad product state, stock, ...)."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_STATE"
    default_message = "Request cannot be completed in the current state"


class PaymentNotConfirmed(InvalidState):
    code = "PAYMENT_NOT_CONFIRMED"
    default_message = "Payment verification failed"


class InvalidSignature(MarketplaceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_SIGNATURE"
    default_message = "Invalid webhook signature"


class UpstreamFailure(MarketplaceError):
    """The payment gateway failed or answered with an unexpected shape."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "UPSTREAM_FAILURE"
    default_message = "Payment provider error"


class PersistenceFailure(MarketplaceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "PERSISTENCE_FAILURE"
    default_message = "Could not save changes"
