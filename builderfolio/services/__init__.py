"""
Builderfolio - Services

Use cases that combine the repositories with the contract and IPFS
gateways.
"""

from .ipfs_service import IpfsError, IpfsService
from .profile_service import ProfileAlreadyMintedError, ProfileNotFoundError, ProfileService
from .support_service import SupportService

__all__ = [
    "IpfsError",
    "IpfsService",
    "ProfileAlreadyMintedError",
    "ProfileNotFoundError",
    "ProfileService",
    "SupportService",
]
