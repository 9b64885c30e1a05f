"""
IPFS Service

Stores support messages as JSON documents through the IPFS HTTP API
(`/api/v0/add` and `/api/v0/cat`). Infura-style project credentials are sent
as HTTP basic auth when configured.
"""

import json
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from builderfolio.config import settings

logger = structlog.get_logger(__name__)


class IpfsError(Exception):
    """IPFS storage or retrieval failed."""


class IpfsService:
    """Client for the IPFS HTTP API."""

    def __init__(
        self,
        api_url: str | None = None,
        project_id: str | None = None,
        project_secret: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_url = (api_url or settings.ipfs_api_url).rstrip("/")
        self._project_id = project_id or settings.ipfs_project_id
        self._project_secret = project_secret or settings.ipfs_project_secret
        self._timeout = timeout_seconds or settings.ipfs_timeout_seconds
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    async def initialize(self) -> None:
        auth = None
        if self._project_id and self._project_secret:
            auth = httpx.BasicAuth(self._project_id, self._project_secret)
        else:
            logger.warning("ipfs_credentials_not_configured", api_url=self._api_url)

        self._http_client = httpx.AsyncClient(
            base_url=self._api_url,
            auth=auth,
            timeout=self._timeout,
            transport=self._transport,
        )
        logger.info("ipfs_client_initialized", api_url=self._api_url)

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
        self._http_client = None

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            raise IpfsError("IPFS client not initialized. Call initialize() first.")
        return self._http_client

    async def store_message(self, data: dict[str, Any]) -> str:
        """
        Store a JSON document and return its CID.

        A `timestamp` is added when the document has none.

        Raises:
            IpfsError: If the add call fails or returns no hash
        """
        document = {**data}
        if not document.get("timestamp"):
            document["timestamp"] = datetime.now(UTC).isoformat()
        payload = json.dumps(document).encode("utf-8")

        try:
            response = await self._client().post(
                "/api/v0/add",
                files={"file": ("message.json", payload, "application/json")},
            )
            response.raise_for_status()
            cid = response.json().get("Hash")
        except httpx.HTTPError as e:
            logger.error("ipfs_store_failed", error=str(e))
            raise IpfsError(f"Failed to store message on IPFS: {e}") from e
        except ValueError as e:
            logger.error("ipfs_store_failed", error=f"invalid response: {e}")
            raise IpfsError("IPFS add returned an invalid response") from e

        if not cid:
            logger.error("ipfs_store_failed", error="missing hash")
            raise IpfsError("IPFS add response contained no hash")

        logger.info("ipfs_message_stored", cid=cid, size=len(payload))
        return str(cid)

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        reraise=True,
    )
    async def _cat(self, cid: str) -> bytes:
        response = await self._client().post("/api/v0/cat", params={"arg": cid})
        response.raise_for_status()
        return response.content

    async def retrieve_message(self, cid: str) -> dict[str, Any]:
        """
        Fetch and parse a JSON document by CID.

        Raises:
            IpfsError: If the fetch fails or the content is not a JSON object
        """
        try:
            content = await self._cat(cid)
        except httpx.HTTPError as e:
            logger.error("ipfs_retrieve_failed", cid=cid, error=str(e))
            raise IpfsError(f"Failed to retrieve message from IPFS: {e}") from e

        try:
            document = json.loads(content)
        except ValueError as e:
            logger.error("ipfs_retrieve_failed", cid=cid, error="content is not JSON")
            raise IpfsError(f"IPFS content for {cid} is not JSON") from e

        if not isinstance(document, dict):
            raise IpfsError(f"IPFS content for {cid} is not a JSON object")
        return document
