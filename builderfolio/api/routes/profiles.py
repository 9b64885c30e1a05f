"""
Profile API Routes

Create/update profiles, read them with live contract data, mint the profile
NFT and list trending builders.
"""

import structlog
from fastapi import APIRouter, Response, status

from builderfolio.api.dependencies import ProfileServiceDep
from builderfolio.api.errors import UPSTREAM_ERRORS, internal_error
from builderfolio.api.validation import require_wallet
from builderfolio.models.base import AddressInput, BuilderfolioModel
from builderfolio.models.profile import (
    Profile,
    ProfileSubmission,
    ProfileWithOnChainData,
    TrendingProfile,
)

logger = structlog.get_logger(__name__)

router = APIRouter()


# =============================================================================
# Request/Response Models
# =============================================================================

class MintNftRequest(BuilderfolioModel):
    wallet: AddressInput = ""


class NftInfo(BuilderfolioModel):
    token_id: str | None
    tx_hash: str


class MintNftResponse(BuilderfolioModel):
    success: bool = True
    profile: Profile
    nft: NftInfo


# =============================================================================
# Routes
# =============================================================================

@router.post("/profile", response_model=Profile)
async def save_profile(
    submission: ProfileSubmission,
    response: Response,
    service: ProfileServiceDep,
) -> Profile:
    """
    Create a profile, or overwrite every editable field of an existing one.

    Returns 201 for a new profile and 200 for an update.
    """
    wallet = require_wallet(submission.wallet)

    try:
        profile, created = await service.save_profile(wallet, submission)
    except UPSTREAM_ERRORS as e:
        raise internal_error(e, "Failed to save profile", wallet=wallet) from e

    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return profile


@router.get("/profile/{address}", response_model=ProfileWithOnChainData)
async def get_profile(address: str, service: ProfileServiceDep) -> ProfileWithOnChainData:
    """Profile with the on-chain support count and supporter list."""
    wallet = require_wallet(address)

    try:
        return await service.get_profile(wallet)
    except UPSTREAM_ERRORS as e:
        raise internal_error(e, "Failed to fetch profile", wallet=wallet) from e


@router.post("/profile/mint-nft", response_model=MintNftResponse)
async def mint_profile_nft(request: MintNftRequest, service: ProfileServiceDep) -> MintNftResponse:
    """Mint the profile NFT for a wallet. Each profile can mint once."""
    wallet = require_wallet(request.wallet)

    try:
        profile, result = await service.mint_profile_nft(wallet)
    except UPSTREAM_ERRORS as e:
        raise internal_error(e, "Failed to mint profile NFT", wallet=wallet) from e

    return MintNftResponse(
        profile=profile,
        nft=NftInfo(token_id=result.token_id, tx_hash=result.tx_hash),
    )


@router.post("/profile/{address}/reconcile", response_model=Profile)
async def reconcile_support_count(address: str, service: ProfileServiceDep) -> Profile:
    """Recompute the cached support count from the support log."""
    wallet = require_wallet(address)

    try:
        return await service.reconcile_support_count(wallet)
    except UPSTREAM_ERRORS as e:
        raise internal_error(e, "Failed to reconcile support count", wallet=wallet) from e


@router.get("/profiles/trending", response_model=list[TrendingProfile])
async def get_trending_profiles(service: ProfileServiceDep) -> list[TrendingProfile]:
    """
    Most-supported profiles, enriched with on-chain data.

    A profile whose chain read fails is still listed with its cached count
    and `onchain: false`.
    """
    try:
        return await service.get_trending()
    except UPSTREAM_ERRORS as e:
        raise internal_error(e, "Failed to fetch trending profiles") from e
