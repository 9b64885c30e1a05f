"""
Support (Tip) Models

A support log entry records one on-chain tip. Entries are created once and
never modified.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import uuid4

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from builderfolio.models.base import (
    AddressInput,
    BuilderfolioModel,
    convert_neo4j_datetime,
    utc_now,
)

# ETH has 18 decimals; anything finer cannot be expressed in wei.
ETH_DECIMALS = 18
# A transaction value is a uint256 in wei.
MAX_WEI = 2**256 - 1
MAX_AMOUNT_ETH = Decimal(f"{MAX_WEI // 10**ETH_DECIMALS}.{MAX_WEI % 10**ETH_DECIMALS:018d}")
MAX_MESSAGE_LENGTH = 280


class SupportLog(BuilderfolioModel):
    """An immutable support-log entry."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    supporter: str
    recipient: str
    amount: Decimal
    tx_hash: str
    message_ipfs: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("timestamp", mode="before")
    @classmethod
    def convert_datetime(cls, v: Any) -> datetime:
        return convert_neo4j_datetime(v)


class SupportRequest(BuilderfolioModel):
    """
    Body of POST /api/support/log.

    Addresses and the amount are checked by the route so that malformed
    input gets a 400 before any IPFS or contract call. JSON numbers are
    accepted for the amount and kept in their decimal text form.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
    )

    supporter: AddressInput = ""
    recipient: AddressInput = ""
    amount: str = Field(default="", max_length=80)
    message: str | None = Field(default=None, max_length=MAX_MESSAGE_LENGTH)


class SupportTransaction(BuilderfolioModel):
    """A confirmed tip transaction."""

    hash: str
    block_number: int


class SupportResult(BuilderfolioModel):
    """Outcome of a logged support action."""

    success: bool = True
    support_log: SupportLog
    transaction: SupportTransaction
    message_ipfs: str | None = None
    recipient_support_count: int | None = None


def is_valid_amount(amount: Decimal) -> bool:
    """A tip amount must be a positive, finite ETH value expressible in wei."""
    if not amount.is_finite() or amount <= 0 or amount > MAX_AMOUNT_ETH:
        return False
    exponent = amount.normalize().as_tuple().exponent
    return isinstance(exponent, int) and exponent >= -ETH_DECIMALS


def parse_amount(raw: str | None) -> Decimal | None:
    """Parse an ETH amount string. Returns None unless it is a valid tip amount."""
    if not raw:
        return None
    try:
        amount = Decimal(raw)
    except InvalidOperation:
        return None
    return amount if is_valid_amount(amount) else None
