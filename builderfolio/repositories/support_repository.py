"""
Support Log Repository

Support logs are append-only (:SupportLog) nodes linked to the recipient's
profile by a SUPPORTS relationship. The amount is stored as a decimal string
so no precision is lost.
"""

from typing import Any

from builderfolio.models.support import SupportLog
from builderfolio.repositories.base import BaseRepository

MAX_LIST_LIMIT = 100


class SupportRepository(BaseRepository[SupportLog]):
    """Repository for SupportLog nodes."""

    @property
    def node_label(self) -> str:
        return "SupportLog"

    @property
    def model_class(self) -> type[SupportLog]:
        return SupportLog

    def _to_params(self, log: SupportLog) -> dict[str, Any]:
        return {
            "id": log.id,
            "supporter": log.supporter,
            "recipient": log.recipient,
            "amount": str(log.amount),
            "tx_hash": log.tx_hash,
            "message_ipfs": log.message_ipfs,
            "timestamp": log.timestamp.isoformat(),
        }

    async def create_and_increment(self, log: SupportLog) -> tuple[SupportLog, int | None]:
        """
        Persist a support log and bump the recipient's cached count.

        Both writes happen in one statement so the counter can never drift
        from the log. The unique tx_hash constraint rejects a replayed log.

        Returns:
            (stored log, new support count) where the count is None when the
            recipient has no profile

        Raises:
            RuntimeError: If the write returned nothing
        """
        query = """
        CREATE (s:SupportLog {
            id: $id,
            supporter: $supporter,
            recipient: $recipient,
            amount: $amount,
            tx_hash: $tx_hash,
            message_ipfs: $message_ipfs,
            timestamp: $timestamp
        })
        WITH s
        OPTIONAL MATCH (p:Profile {wallet: $recipient})
        FOREACH (_ IN CASE WHEN p IS NULL THEN [] ELSE [1] END |
            SET p.support_count = coalesce(p.support_count, 0) + 1
            MERGE (s)-[:SUPPORTS]->(p)
        )
        RETURN s {.*} AS log, p.support_count AS support_count
        """
        result = await self.client.execute_single_once(query, self._to_params(log))
        stored = self._to_model(result.get("log") if result else None)
        if result is None or stored is None:
            raise RuntimeError(f"Support log write returned no record for {log.tx_hash}")

        support_count = result.get("support_count")
        self.logger.info(
            "support_logged",
            tx_hash=stored.tx_hash,
            recipient=stored.recipient,
            support_count=support_count,
        )
        return stored, support_count

    async def list_for_recipient(self, recipient: str, limit: int = 50) -> list[SupportLog]:
        """Logs received by a wallet, newest first."""
        limit = min(max(1, limit), MAX_LIST_LIMIT)
        query = """
        MATCH (s:SupportLog {recipient: $recipient})
        RETURN s {.*} AS log
        ORDER BY s.timestamp DESC
        LIMIT $limit
        """
        results = await self.client.execute(query, {"recipient": recipient, "limit": limit})
        return self._to_models([r["log"] for r in results if r.get("log")])

    async def list_by_supporter(self, supporter: str, limit: int = 50) -> list[SupportLog]:
        """Logs sent by a wallet, newest first."""
        limit = min(max(1, limit), MAX_LIST_LIMIT)
        query = """
        MATCH (s:SupportLog {supporter: $supporter})
        RETURN s {.*} AS log
        ORDER BY s.timestamp DESC
        LIMIT $limit
        """
        results = await self.client.execute(query, {"supporter": supporter, "limit": limit})
        return self._to_models([r["log"] for r in results if r.get("log")])
