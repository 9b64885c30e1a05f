"""
Route error mapping.

Failures from the contract, IPFS or database layers surface to clients as a
500 with a fixed, endpoint-specific message; the cause is only logged.
Neo4j availability errors are left to the app-level 503 handlers.
"""

from typing import Any

import structlog
from fastapi import HTTPException, status
from neo4j.exceptions import ClientError, DatabaseError

from builderfolio.chain.contract_service import ContractServiceError
from builderfolio.services.ipfs_service import IpfsError

logger = structlog.get_logger(__name__)

UPSTREAM_ERRORS = (
    ContractServiceError,
    IpfsError,
    ClientError,
    DatabaseError,
    RuntimeError,
)


def internal_error(e: Exception, message: str, **context: Any) -> HTTPException:
    """Log an upstream failure and return a sanitized HTTPException."""
    logger.error(
        "request_upstream_error",
        message=message,
        error_type=type(e).__name__,
        error=str(e),
        **context,
    )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=message,
    )
