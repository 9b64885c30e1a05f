"""
Profile Service

Combines stored profiles with live contract reads. The stored support_count
is a cache maintained by the support log; the contract is authoritative, and
any difference is logged as drift.
"""

import asyncio

import structlog

from builderfolio.chain.contract_service import (
    ContractService,
    ContractServiceError,
    MintResult,
    OnChainProfileData,
)
from builderfolio.config import settings
from builderfolio.models.profile import (
    Profile,
    ProfileSubmission,
    ProfileWithOnChainData,
    TrendingProfile,
)
from builderfolio.monitoring.logging import log_duration
from builderfolio.repositories.profile_repository import ProfileRepository

logger = structlog.get_logger(__name__)


class ProfileNotFoundError(Exception):
    def __init__(self, wallet: str):
        self.wallet = wallet
        super().__init__(f"Profile not found: {wallet}")


class ProfileAlreadyMintedError(Exception):
    def __init__(self, wallet: str, token_id: str | None):
        self.wallet = wallet
        self.token_id = token_id
        super().__init__(f"Profile NFT already minted for {wallet}")


class ProfileService:
    """Profile use cases. All wallet arguments are checksum addresses."""

    def __init__(
        self,
        profiles: ProfileRepository,
        contracts: ContractService,
        trending_limit: int | None = None,
        trending_concurrency: int | None = None,
        chain_read_timeout_seconds: float | None = None,
    ):
        self.profiles = profiles
        self.contracts = contracts
        self._trending_limit = trending_limit or settings.trending_limit
        self._trending_concurrency = trending_concurrency or settings.trending_concurrency
        self._read_timeout = chain_read_timeout_seconds or settings.chain_read_timeout_seconds

    async def save_profile(
        self, wallet: str, submission: ProfileSubmission
    ) -> tuple[Profile, bool]:
        """Create or fully overwrite a profile. Returns (profile, created)."""
        return await self.profiles.upsert(wallet, submission)

    async def get_profile(self, wallet: str) -> ProfileWithOnChainData:
        """
        Stored profile with the on-chain support count and supporters.

        Raises:
            ProfileNotFoundError: If no profile exists for the wallet
            ContractServiceError: If the contract read fails
        """
        profile = await self.profiles.get_by_wallet(wallet)
        if profile is None:
            raise ProfileNotFoundError(wallet)

        on_chain = await self.contracts.get_profile_on_chain_data(wallet)
        self._check_drift(profile, on_chain)
        return ProfileWithOnChainData.model_validate(
            {
                **profile.model_dump(),
                "support_count": on_chain.support_count,
                "supporters": on_chain.supporters,
            }
        )

    async def mint_profile_nft(self, wallet: str) -> tuple[Profile, MintResult]:
        """
        Mint the profile NFT once per profile and store its token id.

        Raises:
            ProfileNotFoundError: If no profile exists for the wallet
            ProfileAlreadyMintedError: If a mint is already recorded
            ContractServiceError: If the mint transaction fails
        """
        profile = await self.profiles.get_by_wallet(wallet)
        if profile is None:
            raise ProfileNotFoundError(wallet)
        if profile.profile_nft_token_id or profile.profile_nft_tx_hash:
            raise ProfileAlreadyMintedError(wallet, profile.profile_nft_token_id)

        with log_duration(logger, "profile_nft_mint", wallet=wallet):
            result = await self.contracts.mint_profile_nft(wallet)

        updated = await self.profiles.record_nft_mint(wallet, result.token_id, result.tx_hash)
        if updated is None:
            raise ProfileNotFoundError(wallet)
        return updated, result

    async def verify_farcaster(self, wallet: str, username: str) -> Profile:
        """
        Mark a Farcaster handle as verified.

        The signature is not checked; verification is asserted by the client.
        """
        profile = await self.profiles.verify_farcaster(wallet, username)
        if profile is None:
            raise ProfileNotFoundError(wallet)
        logger.info("farcaster_verified", wallet=wallet, username=username)
        return profile

    async def reconcile_support_count(self, wallet: str) -> Profile:
        """Recompute the cached support count from the support log."""
        profile = await self.profiles.reconcile_support_count(wallet)
        if profile is None:
            raise ProfileNotFoundError(wallet)
        return profile

    async def get_trending(self) -> list[TrendingProfile]:
        """
        Most-supported profiles with live contract data.

        Reads run with bounded concurrency and a per-profile timeout. A profile
        whose read fails keeps its cached count and is flagged onchain=False.
        Order follows the stored counts.
        """
        profiles = await self.profiles.get_trending(self._trending_limit)
        semaphore = asyncio.Semaphore(self._trending_concurrency)

        async def enrich(profile: Profile) -> TrendingProfile:
            async with semaphore:
                try:
                    on_chain = await asyncio.wait_for(
                        self.contracts.get_profile_on_chain_data(profile.wallet),
                        timeout=self._read_timeout,
                    )
                except (TimeoutError, ContractServiceError) as e:
                    logger.warning(
                        "trending_read_failed",
                        wallet=profile.wallet,
                        error=str(e) or type(e).__name__,
                    )
                    return TrendingProfile.model_validate(
                        {
                            **profile.model_dump(),
                            "support_count": str(profile.support_count),
                            "supporters": [],
                            "onchain": False,
                        }
                    )

            self._check_drift(profile, on_chain)
            return TrendingProfile.model_validate(
                {
                    **profile.model_dump(),
                    "support_count": on_chain.support_count,
                    "supporters": on_chain.supporters,
                    "onchain": True,
                }
            )

        with log_duration(logger, "trending_enrichment", level="debug", profiles=len(profiles)):
            return list(await asyncio.gather(*(enrich(p) for p in profiles)))

    def _check_drift(self, profile: Profile, on_chain: OnChainProfileData) -> None:
        if str(profile.support_count) != on_chain.support_count:
            logger.warning(
                "support_count_drift",
                wallet=profile.wallet,
                cached=profile.support_count,
                on_chain=on_chain.support_count,
            )
