"""
Builderfolio - Web3 Developer Profiles

Backend for wallet-keyed developer profiles: profile CRUD, profile NFT
minting, and ETH support (tips) logged on-chain and in the database.
"""

__version__ = "1.0.0"

from builderfolio.config import settings

__all__ = ["settings", "__version__"]
