"""
Contract ABIs

Only the functions and events the backend uses are declared.
"""

from typing import Any

SUPPORT_CONTRACT_ABI: list[dict[str, Any]] = [
    {
        "inputs": [{"name": "creator", "type": "address"}],
        "name": "getSupportCount",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "creator", "type": "address"}],
        "name": "getSupporters",
        "outputs": [{"name": "", "type": "address[]"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "recipient", "type": "address"}],
        "name": "supportCreator",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "recipient", "type": "address"},
            {"name": "messageHash", "type": "string"},
        ],
        "name": "supportCreatorWithMessage",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
]

PROFILE_NFT_ABI: list[dict[str, Any]] = [
    {
        "inputs": [{"name": "recipient", "type": "address"}],
        "name": "mintProfileNFT",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "owner", "type": "address"},
            {"indexed": True, "name": "tokenId", "type": "uint256"},
        ],
        "name": "ProfileNFTMinted",
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "from", "type": "address"},
            {"indexed": True, "name": "to", "type": "address"},
            {"indexed": True, "name": "tokenId", "type": "uint256"},
        ],
        "name": "Transfer",
        "type": "event",
    },
]
