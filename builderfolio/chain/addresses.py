"""
Address and CID helpers.

Every wallet that enters the API is normalised to its EIP-55 checksum form
before it touches storage or the chain, so one wallet maps to one record.
"""

import re

from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# CIDv0 is base58btc "Qm..." (46 chars); CIDv1 as returned by the add API is
# lower-case base32 with a "b" multibase prefix.
_CID_V0 = re.compile(r"^Qm[1-9A-HJ-NP-Za-km-z]{44}$")
_CID_V1 = re.compile(r"^b[a-z2-7]{50,}$")


def is_valid_address(value: str | None) -> bool:
    """True for a 20-byte hex address. Mixed-case input must carry a valid checksum."""
    if not value or not isinstance(value, str):
        return False
    return bool(Web3.is_address(value))


def normalize_address(value: str) -> str:
    """
    Return the checksum form of an address.

    Raises:
        ValueError: If the value is not a valid address
    """
    if not is_valid_address(value):
        raise ValueError(f"Invalid address: {value!r}")
    return str(Web3.to_checksum_address(value))


def is_valid_cid(value: str | None) -> bool:
    if not value:
        return False
    return bool(_CID_V0.match(value) or _CID_V1.match(value))
