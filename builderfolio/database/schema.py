"""
Neo4j Schema Manager

Creates the constraints and indexes backing the profile and support-log
collections. All statements use IF NOT EXISTS, so setup_all() is safe to run
on every startup.
"""

from typing import Any

import structlog
from neo4j.exceptions import ClientError, DatabaseError, ServiceUnavailable

from builderfolio.database.client import Neo4jClient

logger = structlog.get_logger(__name__)


CONSTRAINTS: list[tuple[str, str]] = [
    (
        "profile_wallet_unique",
        "CREATE CONSTRAINT profile_wallet_unique IF NOT EXISTS "
        "FOR (p:Profile) REQUIRE p.wallet IS UNIQUE",
    ),
    (
        "supportlog_id_unique",
        "CREATE CONSTRAINT supportlog_id_unique IF NOT EXISTS "
        "FOR (s:SupportLog) REQUIRE s.id IS UNIQUE",
    ),
    (
        "supportlog_tx_hash_unique",
        "CREATE CONSTRAINT supportlog_tx_hash_unique IF NOT EXISTS "
        "FOR (s:SupportLog) REQUIRE s.tx_hash IS UNIQUE",
    ),
]

INDEXES: list[tuple[str, str]] = [
    (
        "profile_support_count_idx",
        "CREATE INDEX profile_support_count_idx IF NOT EXISTS "
        "FOR (p:Profile) ON (p.support_count)",
    ),
    (
        "supportlog_recipient_idx",
        "CREATE INDEX supportlog_recipient_idx IF NOT EXISTS "
        "FOR (s:SupportLog) ON (s.recipient)",
    ),
    (
        "supportlog_supporter_idx",
        "CREATE INDEX supportlog_supporter_idx IF NOT EXISTS "
        "FOR (s:SupportLog) ON (s.supporter)",
    ),
    (
        "supportlog_timestamp_idx",
        "CREATE INDEX supportlog_timestamp_idx IF NOT EXISTS "
        "FOR (s:SupportLog) ON (s.timestamp)",
    ),
]


class SchemaManager:
    """Applies and verifies the Builderfolio schema."""

    def __init__(self, client: Neo4jClient):
        self.client = client

    async def setup_all(self) -> dict[str, bool]:
        """
        Create all constraints and indexes.

        Returns:
            Dict of schema element names to success status
        """
        results: dict[str, bool] = {}
        for name, statement in [*CONSTRAINTS, *INDEXES]:
            results[name] = await self._apply(name, statement)

        logger.info(
            "schema_setup_complete",
            total=len(results),
            successful=sum(1 for v in results.values() if v),
            failed=sum(1 for v in results.values() if not v),
        )
        return results

    async def _apply(self, name: str, statement: str) -> bool:
        try:
            await self.client.execute_write(statement)
            logger.debug("schema_element_applied", name=name)
            return True
        except ServiceUnavailable:
            logger.critical("schema_database_unavailable", name=name)
            raise
        except (ClientError, DatabaseError) as e:
            logger.error("schema_element_failed", name=name, error=str(e))
            return False

    async def verify_schema(self) -> dict[str, Any]:
        """Report which expected constraints and indexes are missing."""
        constraints = await self.client.execute("SHOW CONSTRAINTS YIELD name RETURN name")
        indexes = await self.client.execute("SHOW INDEXES YIELD name RETURN name")

        existing_constraints = {r["name"] for r in constraints}
        existing_indexes = {r["name"] for r in indexes}

        missing_constraints = sorted({n for n, _ in CONSTRAINTS} - existing_constraints)
        missing_indexes = sorted({n for n, _ in INDEXES} - existing_indexes)

        return {
            "valid": not missing_constraints and not missing_indexes,
            "missing_constraints": missing_constraints,
            "missing_indexes": missing_indexes,
        }
