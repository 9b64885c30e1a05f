"""
Support API Routes

Send tips through the support contract, list the tips a wallet received or
sent, and read the messages attached to them.
"""

from typing import Any

import structlog
from fastapi import APIRouter, Query, status

from builderfolio.api.dependencies import SupportServiceDep
from builderfolio.api.errors import UPSTREAM_ERRORS, internal_error
from builderfolio.api.validation import require_amount, require_cid, require_wallet
from builderfolio.models.support import SupportLog, SupportRequest, SupportResult

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/support")


@router.post("/log", response_model=SupportResult, status_code=status.HTTP_201_CREATED)
async def log_support(request: SupportRequest, service: SupportServiceDep) -> SupportResult:
    """
    Send a tip and record it.

    The message, when present, is stored on IPFS first and its CID is passed
    to the contract. Each call appends one log entry and increments the
    recipient's cached support count by one.
    """
    supporter = require_wallet(request.supporter, detail="Invalid addresses")
    recipient = require_wallet(request.recipient, detail="Invalid addresses")
    amount = require_amount(request.amount)

    try:
        return await service.log_support(
            supporter=supporter,
            recipient=recipient,
            amount=amount,
            message=request.message or None,
        )
    except UPSTREAM_ERRORS as e:
        raise internal_error(
            e, "Failed to log support", supporter=supporter, recipient=recipient
        ) from e


@router.get("/recipient/{address}", response_model=list[SupportLog])
async def list_recipient_support(
    address: str,
    service: SupportServiceDep,
    limit: int = Query(50, ge=1, le=100),
) -> list[SupportLog]:
    """Support received by a wallet, newest first."""
    recipient = require_wallet(address)

    try:
        return await service.list_for_recipient(recipient, limit=limit)
    except UPSTREAM_ERRORS as e:
        raise internal_error(e, "Failed to fetch support history", recipient=recipient) from e


@router.get("/supporter/{address}", response_model=list[SupportLog])
async def list_supporter_history(
    address: str,
    service: SupportServiceDep,
    limit: int = Query(50, ge=1, le=100),
) -> list[SupportLog]:
    """Support sent by a wallet, newest first."""
    supporter = require_wallet(address)

    try:
        return await service.list_by_supporter(supporter, limit=limit)
    except UPSTREAM_ERRORS as e:
        raise internal_error(e, "Failed to fetch support history", supporter=supporter) from e


@router.get("/message/{cid}")
async def get_support_message(cid: str, service: SupportServiceDep) -> dict[str, Any]:
    """A support message previously stored on IPFS."""
    cid = require_cid(cid)

    try:
        return await service.get_message(cid)
    except UPSTREAM_ERRORS as e:
        raise internal_error(e, "Failed to retrieve support message", cid=cid) from e
