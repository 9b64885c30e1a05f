"""
Farcaster API Routes

Verification is asserted by the client: the optional signature is accepted
and recorded in the log but not checked.
"""

import structlog
from fastapi import APIRouter, HTTPException, status
from pydantic import Field

from builderfolio.api.dependencies import ProfileServiceDep
from builderfolio.api.errors import UPSTREAM_ERRORS, internal_error
from builderfolio.api.validation import require_wallet
from builderfolio.models.base import AddressInput, BuilderfolioModel

logger = structlog.get_logger(__name__)

router = APIRouter()


class FarcasterVerifyRequest(BuilderfolioModel):
    wallet: AddressInput = ""
    farcaster_username: str = Field(default="", max_length=100)
    signature: str | None = Field(default=None, max_length=1024)


class FarcasterVerifyResponse(BuilderfolioModel):
    success: bool = True
    message: str


@router.post("/farcaster/verify", response_model=FarcasterVerifyResponse)
async def verify_farcaster(
    request: FarcasterVerifyRequest,
    service: ProfileServiceDep,
) -> FarcasterVerifyResponse:
    """Link a Farcaster username to a profile and mark it verified."""
    wallet = require_wallet(request.wallet)
    if not request.farcaster_username:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Farcaster username is required",
        )

    if not request.signature:
        logger.debug("farcaster_verify_unsigned", wallet=wallet)

    try:
        await service.verify_farcaster(wallet, request.farcaster_username)
    except UPSTREAM_ERRORS as e:
        raise internal_error(e, "Failed to verify Farcaster account", wallet=wallet) from e

    return FarcasterVerifyResponse(message="Farcaster account verified successfully")
