"""Chapa webhook endpoint."""

from fastapi import APIRouter, Depends, Request
from services.marketplace_service.dependencies import get_verification_service
from services.marketplace_service.schemas import OrderResponse
from services.marketplace_service.services import VerificationService

router = APIRouter(prefix="/orders", tags=["payments"])

SIGNATURE_HEADERS = ("x-chapa-signature", "chapa-signature")


@router.post("/verify", response_model=OrderResponse)
async def chapa_webhook(
    request: Request,
    service: VerificationService = Depends(get_verification_service),
):
    """
    Chapa webhook endpoint (no bearer auth; verified by x-chapa-signature).

    The signature is checked against the raw body bytes, so the body must
    not be parsed or re-serialized before verification.
    """
    raw = await request.body()
    signature = next(
        (request.headers[h] for h in SIGNATURE_HEADERS if h in request.headers),
        None,
    )
    return await service.handle_webhook(raw, signature)
