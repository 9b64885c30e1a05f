"""
Builderfolio - Chain Module

web3.py access to the support and profile NFT contracts, plus address
helpers shared by the API layer.
"""

from .addresses import ZERO_ADDRESS, is_valid_address, is_valid_cid, normalize_address
from .contract_service import (
    ContractNotConfiguredError,
    ContractService,
    ContractServiceError,
    MintResult,
    OnChainProfileData,
    TransactionFailedError,
)

__all__ = [
    "ZERO_ADDRESS",
    "is_valid_address",
    "is_valid_cid",
    "normalize_address",
    "ContractService",
    "ContractServiceError",
    "ContractNotConfiguredError",
    "TransactionFailedError",
    "MintResult",
    "OnChainProfileData",
]
