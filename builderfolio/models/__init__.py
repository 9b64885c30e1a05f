"""
Builderfolio Models

Pydantic models for profiles and support-log entries.
"""

from builderfolio.models.base import BuilderfolioModel, convert_neo4j_datetime
from builderfolio.models.profile import (
    MAX_PROJECTS,
    FarcasterIdentity,
    Profile,
    ProfileSubmission,
    ProfileWithOnChainData,
    Project,
    TrendingProfile,
)
from builderfolio.models.support import (
    SupportLog,
    SupportRequest,
    SupportResult,
    SupportTransaction,
    is_valid_amount,
    parse_amount,
)

__all__ = [
    "BuilderfolioModel",
    "convert_neo4j_datetime",
    "MAX_PROJECTS",
    "FarcasterIdentity",
    "Profile",
    "ProfileSubmission",
    "ProfileWithOnChainData",
    "Project",
    "TrendingProfile",
    "SupportLog",
    "SupportRequest",
    "SupportResult",
    "SupportTransaction",
    "is_valid_amount",
    "parse_amount",
]
