"""Neo4j repositories for profiles and support logs."""

from builderfolio.repositories.base import BaseRepository
from builderfolio.repositories.profile_repository import ProfileRepository
from builderfolio.repositories.support_repository import SupportRepository

__all__ = [
    "BaseRepository",
    "ProfileRepository",
    "SupportRepository",
]
