"""
Profile Repository

Stores profiles as (:Profile) nodes keyed by checksum wallet address.
Nested values are flattened for storage: the Farcaster identity becomes two
properties and the project list is kept as a JSON string.
"""

import json
from typing import Any

from builderfolio.models.profile import Profile, ProfileSubmission
from builderfolio.repositories.base import BaseRepository


class ProfileRepository(BaseRepository[Profile]):
    """Repository for Profile nodes."""

    @property
    def node_label(self) -> str:
        return "Profile"

    @property
    def model_class(self) -> type[Profile]:
        return Profile

    def _from_node(self, node: dict[str, Any]) -> dict[str, Any]:
        data = dict(node)
        data["farcaster"] = {
            "username": data.pop("farcaster_username", None),
            "verified": bool(data.pop("farcaster_verified", False)),
        }
        data["projects"] = json.loads(data.pop("projects_json", None) or "[]")
        return data

    async def get_by_wallet(self, wallet: str) -> Profile | None:
        query = """
        MATCH (p:Profile {wallet: $wallet})
        RETURN p {.*} AS profile
        """
        result = await self.client.execute_single(query, {"wallet": wallet})
        return self._to_model(result.get("profile") if result else None)

    async def upsert(self, wallet: str, data: ProfileSubmission) -> tuple[Profile, bool]:
        """
        Create the profile or overwrite every editable field of an existing one.

        Fields omitted from the submission are cleared. The Farcaster verified
        flag survives only when the username is unchanged.

        Returns:
            (profile, created) where created is True for a new record

        Raises:
            RuntimeError: If the write returned nothing
        """
        query = """
        OPTIONAL MATCH (existing:Profile {wallet: $wallet})
        WITH existing IS NULL AS created,
             coalesce(
                 existing.farcaster_username = $farcaster_username
                 AND existing.farcaster_verified,
                 false
             ) AS keep_verified
        MERGE (p:Profile {wallet: $wallet})
        ON CREATE SET p.created_at = $now, p.support_count = 0
        SET p.name = $name,
            p.bio = $bio,
            p.avatar = $avatar,
            p.github = $github,
            p.twitter = $twitter,
            p.blog = $blog,
            p.projects_json = $projects_json,
            p.farcaster_username = $farcaster_username,
            p.farcaster_verified = keep_verified,
            p.last_updated = $now
        RETURN p {.*} AS profile, created
        """
        params = {
            "wallet": wallet,
            "name": data.name,
            "bio": data.bio,
            "avatar": data.avatar,
            "github": data.github,
            "twitter": data.twitter,
            "blog": data.blog,
            "projects_json": json.dumps([p.model_dump() for p in data.projects]),
            "farcaster_username": data.farcaster,
            "now": self._now().isoformat(),
        }

        result = await self.client.execute_single(query, params)
        profile = self._to_model(result.get("profile") if result else None)
        if result is None or profile is None:
            raise RuntimeError(f"Profile upsert returned no record for {wallet}")

        created = bool(result.get("created"))
        self.logger.info(
            "profile_created" if created else "profile_updated",
            wallet=wallet,
        )
        return profile, created

    async def record_nft_mint(
        self, wallet: str, token_id: str | None, tx_hash: str
    ) -> Profile | None:
        """
        Record the minted profile NFT. The mint transaction hash is stored
        even when the token id could not be read from the receipt, so the
        profile counts as minted either way. Returns None if the profile is
        missing.
        """
        query = """
        MATCH (p:Profile {wallet: $wallet})
        SET p.profile_nft_token_id = $token_id,
            p.profile_nft_tx_hash = $tx_hash,
            p.last_updated = $now
        RETURN p {.*} AS profile
        """
        result = await self.client.execute_single(
            query,
            {
                "wallet": wallet,
                "token_id": token_id,
                "tx_hash": tx_hash,
                "now": self._now().isoformat(),
            },
        )
        return self._to_model(result.get("profile") if result else None)

    async def verify_farcaster(self, wallet: str, username: str) -> Profile | None:
        """Set the Farcaster handle and mark it verified."""
        query = """
        MATCH (p:Profile {wallet: $wallet})
        SET p.farcaster_username = $username,
            p.farcaster_verified = true,
            p.last_updated = $now
        RETURN p {.*} AS profile
        """
        result = await self.client.execute_single(
            query,
            {"wallet": wallet, "username": username, "now": self._now().isoformat()},
        )
        return self._to_model(result.get("profile") if result else None)

    async def get_trending(self, limit: int = 10) -> list[Profile]:
        """Profiles ordered by cached support count, most supported first."""
        limit = min(max(1, limit), 100)
        query = """
        MATCH (p:Profile)
        RETURN p {.*} AS profile
        ORDER BY coalesce(p.support_count, 0) DESC, p.last_updated DESC
        LIMIT $limit
        """
        results = await self.client.execute(query, {"limit": limit})
        return self._to_models([r["profile"] for r in results if r.get("profile")])

    async def reconcile_support_count(self, wallet: str) -> Profile | None:
        """Reset the cached support count to the number of logged supports."""
        query = """
        MATCH (p:Profile {wallet: $wallet})
        OPTIONAL MATCH (s:SupportLog {recipient: $wallet})
        WITH p, count(s) AS logged
        SET p.support_count = logged
        RETURN p {.*} AS profile, logged
        """
        result = await self.client.execute_single(query, {"wallet": wallet})
        profile = self._to_model(result.get("profile") if result else None)
        if profile is not None:
            self.logger.info(
                "support_count_reconciled",
                wallet=wallet,
                support_count=profile.support_count,
            )
        return profile
