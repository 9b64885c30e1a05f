"""
Neo4j Async Client

One driver per process, opened in the app lifespan. Repositories talk to the
database through three helpers that differ only in how the result is read:
all rows, the first row, or the write counters.

Queries that fail with a transient cluster error are retried, except through
execute_single_once().
"""

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import structlog
from neo4j import AsyncDriver, AsyncGraphDatabase, AsyncResult, AsyncSession
from neo4j.exceptions import ServiceUnavailable, SessionExpired, TransientError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from builderfolio.config import settings

logger = structlog.get_logger(__name__)

R = TypeVar("R")

RETRYABLE_EXCEPTIONS = (ServiceUnavailable, SessionExpired, TransientError)

_retry_transient = retry(
    retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    reraise=True,
)


async def _all_rows(result: AsyncResult) -> list[dict[str, Any]]:
    return [dict(record) async for record in result]


async def _first_row(result: AsyncResult) -> dict[str, Any] | None:
    record = await result.single()
    return dict(record) if record else None


async def _write_counters(result: AsyncResult) -> dict[str, Any]:
    counters = (await result.consume()).counters
    return {
        "nodes_created": counters.nodes_created,
        "relationships_created": counters.relationships_created,
        "properties_set": counters.properties_set,
    }


class Neo4jClient:
    """Async Neo4j access for the profile and support-log repositories."""

    def __init__(
        self,
        uri: str | None = None,
        user: str | None = None,
        password: str | None = None,
        database: str | None = None,
    ):
        self._uri = uri or settings.neo4j_uri
        self._auth = (user or settings.neo4j_user, password or settings.neo4j_password)
        self._database = database or settings.neo4j_database

        self._driver: AsyncDriver | None = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected and self._driver is not None

    async def connect(self) -> None:
        """Open the driver and check that the server answers."""
        if self._driver is not None:
            return

        logger.info("neo4j_connecting", uri=self._uri, database=self._database)
        driver = AsyncGraphDatabase.driver(
            self._uri,
            auth=self._auth,
            max_connection_lifetime=settings.neo4j_max_connection_lifetime,
            max_connection_pool_size=settings.neo4j_max_connection_pool_size,
            connection_timeout=settings.neo4j_connection_timeout,
        )
        try:
            await driver.verify_connectivity()
        except Exception as e:
            logger.error("neo4j_connection_failed", uri=self._uri, error=str(e))
            await driver.close()
            raise

        self._driver = driver
        self._connected = True
        logger.info("neo4j_connected")

    async def close(self) -> None:
        if self._driver is None:
            return
        await self._driver.close()
        self._driver = None
        self._connected = False
        logger.info("neo4j_connection_closed")

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        if self._driver is None:
            raise RuntimeError("Neo4j client not connected. Call connect() first.")
        async with self._driver.session(database=self._database) as session:
            yield session

    async def _run_once(
        self,
        query: str,
        parameters: dict[str, Any] | None,
        read: Callable[[AsyncResult], Awaitable[R]],
    ) -> R:
        async with self._session() as session:
            result = await session.run(query, parameters or {})
            return await read(result)

    @_retry_transient
    async def _run(
        self,
        query: str,
        parameters: dict[str, Any] | None,
        read: Callable[[AsyncResult], Awaitable[R]],
    ) -> R:
        return await self._run_once(query, parameters, read)

    async def execute(
        self, query: str, parameters: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Run a query and return every row."""
        return await self._run(query, parameters, _all_rows)

    async def execute_single(
        self, query: str, parameters: dict[str, Any] | None = None
    ) -> dict[str, Any] | None:
        """Run a query and return its only row, or None when it returns nothing."""
        return await self._run(query, parameters, _first_row)

    async def execute_single_once(
        self, query: str, parameters: dict[str, Any] | None = None
    ) -> dict[str, Any] | None:
        """
        Like execute_single() but never retried.

        For non-idempotent writes: a transient error after the commit would
        otherwise replay the statement.
        """
        return await self._run_once(query, parameters, _first_row)

    async def execute_write(
        self, query: str, parameters: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Run a schema or write statement and return its update counters."""
        return await self._run(query, parameters, _write_counters)

    async def health_check(self) -> dict[str, Any]:
        status = "unhealthy"
        error = None
        try:
            row = await self.execute_single("RETURN 1 AS ok")
            if row and row.get("ok") == 1:
                status = "healthy"
        except (*RETRYABLE_EXCEPTIONS, RuntimeError, OSError) as e:
            error = str(e)
            logger.error("neo4j_health_check_failed", error=error)

        health: dict[str, Any] = {"status": status, "database": self._database}
        if error:
            health["error"] = error
        return health

    async def verify_connection(self) -> bool:
        return (await self.health_check())["status"] == "healthy"
