"""
Support Service

A support action runs in three steps: the optional message is pinned to IPFS,
the tip is sent through the support contract, then the log entry is written
together with the recipient's cached count.
"""

import asyncio
from decimal import Decimal
from typing import Any

import structlog

from builderfolio.chain.contract_service import ContractService
from builderfolio.models.support import SupportLog, SupportResult
from builderfolio.repositories.support_repository import SupportRepository
from builderfolio.services.ipfs_service import IpfsService

logger = structlog.get_logger(__name__)

# Strong references to in-flight log writes until they finish.
_pending_writes: set[asyncio.Task[Any]] = set()


def _write_finished(task: asyncio.Task[Any]) -> None:
    _pending_writes.discard(task)
    # Failures are reported where the write is awaited.
    if not task.cancelled():
        task.exception()


class SupportService:
    """Support (tip) use cases. Addresses are checksum addresses."""

    def __init__(
        self,
        support_logs: SupportRepository,
        contracts: ContractService,
        ipfs: IpfsService,
    ):
        self.support_logs = support_logs
        self.contracts = contracts
        self.ipfs = ipfs

    async def log_support(
        self,
        supporter: str,
        recipient: str,
        amount: Decimal,
        message: str | None = None,
    ) -> SupportResult:
        """
        Send a tip and record it.

        Raises:
            IpfsError: If the message could not be stored
            ContractServiceError: If the transaction failed
        """
        message_ipfs = None
        if message:
            message_ipfs = await self.ipfs.store_message(
                {"from": supporter, "to": recipient, "message": message}
            )

        transaction = await self.contracts.support_creator(
            supporter=supporter,
            recipient=recipient,
            amount=amount,
            message_ipfs=message_ipfs,
        )

        log = SupportLog(
            supporter=supporter,
            recipient=recipient,
            amount=amount,
            tx_hash=transaction.hash,
            message_ipfs=message_ipfs,
        )
        # The tip is already on-chain: cancelling the request must not
        # abandon the write.
        write = asyncio.create_task(self.support_logs.create_and_increment(log))
        _pending_writes.add(write)
        write.add_done_callback(_write_finished)
        try:
            stored, support_count = await asyncio.shield(write)
        except (Exception, asyncio.CancelledError) as e:
            logger.critical(
                "support_log_write_failed",
                tx_hash=transaction.hash,
                supporter=supporter,
                recipient=recipient,
                amount=str(amount),
                message_ipfs=message_ipfs,
                cancelled=isinstance(e, asyncio.CancelledError),
                error=str(e) or type(e).__name__,
            )
            raise

        return SupportResult(
            support_log=stored,
            transaction=transaction,
            message_ipfs=message_ipfs,
            recipient_support_count=support_count,
        )

    async def list_for_recipient(self, recipient: str, limit: int = 50) -> list[SupportLog]:
        return await self.support_logs.list_for_recipient(recipient, limit)

    async def list_by_supporter(self, supporter: str, limit: int = 50) -> list[SupportLog]:
        return await self.support_logs.list_by_supporter(supporter, limit)

    async def get_message(self, cid: str) -> dict[str, Any]:
        return await self.ipfs.retrieve_message(cid)
