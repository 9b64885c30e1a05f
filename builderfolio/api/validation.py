"""Input checks run by routes before any database, contract or IPFS call."""

from decimal import Decimal

from fastapi import HTTPException, status

from builderfolio.chain.addresses import is_valid_address, is_valid_cid, normalize_address
from builderfolio.models.support import parse_amount


def require_wallet(value: str | None, detail: str = "Invalid wallet address") -> str:
    """Return the checksum address, or raise 400."""
    if not value or not is_valid_address(value):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
    return normalize_address(value)


def require_amount(raw: str | None) -> Decimal:
    amount = parse_amount(raw)
    if amount is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Amount must be a positive ETH value with at most 18 decimals",
        )
    return amount


def require_cid(cid: str) -> str:
    if not is_valid_cid(cid):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid IPFS CID")
    return cid
