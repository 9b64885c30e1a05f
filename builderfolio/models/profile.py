"""
Profile Models

A profile is keyed by its checksum wallet address. Editable fields are
overwritten as a whole on every submission; support_count and
the profile NFT fields are only changed by the support and mint flows.
"""

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from builderfolio.models.base import (
    AddressInput,
    BuilderfolioModel,
    convert_neo4j_datetime,
    utc_now,
)

MAX_PROJECTS = 3


class Project(BuilderfolioModel):
    """A showcased work. Order within a profile is preserved as submitted."""

    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    github_url: str | None = Field(default=None, max_length=300)
    demo_url: str | None = Field(default=None, max_length=300)


class FarcasterIdentity(BuilderfolioModel):
    username: str | None = None
    verified: bool = False


class ProfileBase(BuilderfolioModel):
    """Editable profile fields."""

    name: str | None = Field(default=None, max_length=100)
    bio: str | None = Field(default=None, max_length=1000)
    avatar: str | None = Field(default=None, max_length=2048)
    github: str | None = Field(default=None, max_length=100)
    twitter: str | None = Field(default=None, max_length=100)
    blog: str | None = Field(default=None, max_length=2048)
    projects: list[Project] = Field(default_factory=list, max_length=MAX_PROJECTS)


class ProfileSubmission(ProfileBase):
    """
    Body of POST /api/profile.

    `wallet` is validated by the route (400 on malformed input), so it is a
    plain string here. `farcaster` accepts either a username string or the
    {"username": ...} object older clients send; the verified flag is never
    taken from the client.
    """

    wallet: AddressInput = ""
    farcaster: str | None = Field(default=None, max_length=100)

    @field_validator("farcaster", mode="before")
    @classmethod
    def coerce_farcaster(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return v.get("username")
        return v

    @field_validator("farcaster")
    @classmethod
    def blank_farcaster_is_none(cls, v: str | None) -> str | None:
        return v or None


class Profile(ProfileBase):
    """A stored profile."""

    wallet: str
    farcaster: FarcasterIdentity = Field(default_factory=FarcasterIdentity)
    profile_nft_token_id: str | None = None
    profile_nft_tx_hash: str | None = None
    support_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)
    last_updated: datetime = Field(default_factory=utc_now)

    @field_validator("created_at", "last_updated", mode="before")
    @classmethod
    def convert_datetime(cls, v: Any) -> datetime:
        return convert_neo4j_datetime(v)

    @field_validator("profile_nft_token_id", mode="before")
    @classmethod
    def token_id_as_string(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v


class ProfileWithOnChainData(Profile):
    """
    Profile enriched with live contract reads.

    support_count here is the on-chain figure rendered as a decimal string,
    which replaces the cached counter in API responses.
    """

    support_count: str = "0"  # type: ignore[assignment]
    supporters: list[str] = Field(default_factory=list)


class TrendingProfile(ProfileWithOnChainData):
    """
    Trending entry. `onchain` is False when the contract read failed or timed
    out; support_count then falls back to the cached counter.
    """

    onchain: bool = True
