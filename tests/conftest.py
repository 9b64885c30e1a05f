"""
Builderfolio - Test Fixtures

Shared pytest fixtures for all test modules. No live Neo4j, RPC node or
IPFS node is needed: every external client is replaced with a mock.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================
# TEST-ONLY values. Settings are cached on first import, so these must be set
# before anything from builderfolio is imported.

if os.environ.get("APP_ENV", "") == "production":
    raise RuntimeError("Test fixtures cannot be loaded in the production environment.")

os.environ["APP_ENV"] = "testing"
os.environ.setdefault("NEO4J_URI", "bolt://localhost:7687")
os.environ.setdefault("NEO4J_USER", "neo4j")
os.environ.setdefault("NEO4J_PASSWORD", "testpassword")
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["SENTRY_DSN"] = ""


# EIP-55 reference addresses, given here in lower case.
WALLET_A = "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed"
WALLET_B = "0xfb6916095ca1df60bb79ce92ce3ea74c37c5d359"
WALLET_C = "0xdbf03b407c01e7cd3cbea99509d93f8dddc8c6fb"
WALLET_D = "0xd1220a0cf47c7b9be7a2e6ba89f429762e7b9adb"

TX_HASH = "0x" + "ab" * 32
CID_V0 = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"


def checksum(address: str) -> str:
    from web3 import Web3

    return str(Web3.to_checksum_address(address))


# =============================================================================
# Mock Clients
# =============================================================================


@pytest.fixture
def mock_db_client():
    """Create a mock Neo4j client."""
    client = AsyncMock()
    client.execute = AsyncMock(return_value=[])
    client.execute_single = AsyncMock(return_value=None)
    client.execute_single_once = AsyncMock(return_value=None)
    client.execute_write = AsyncMock(return_value={})
    client.connect = AsyncMock()
    client.close = AsyncMock()
    client.verify_connection = AsyncMock(return_value=True)
    client.is_connected = True
    return client


@pytest.fixture
def mock_contract_service():
    """Create a mock contract service with empty on-chain state."""
    from builderfolio.chain.contract_service import (
        ContractService,
        MintResult,
        OnChainProfileData,
    )
    from builderfolio.models.support import SupportTransaction

    service = AsyncMock(spec=ContractService)
    service.get_profile_on_chain_data.return_value = OnChainProfileData(
        support_count="0", supporters=[]
    )
    service.support_creator.return_value = SupportTransaction(hash=TX_HASH, block_number=123)
    service.mint_profile_nft.return_value = MintResult(tx_hash=TX_HASH, token_id="7")
    return service


@pytest.fixture
def mock_ipfs_service():
    from builderfolio.services.ipfs_service import IpfsService

    service = AsyncMock(spec=IpfsService)
    service.store_message.return_value = CID_V0
    service.retrieve_message.return_value = {"message": "gm"}
    return service


@pytest.fixture
def mock_profile_service():
    from builderfolio.services.profile_service import ProfileService

    return AsyncMock(spec=ProfileService)


@pytest.fixture
def mock_support_service():
    from builderfolio.services.support_service import SupportService

    return AsyncMock(spec=SupportService)


# =============================================================================
# Test Data Generators
# =============================================================================


@pytest.fixture
def profile_factory():
    """Factory for Profile models."""
    from builderfolio.models.profile import Profile

    def _create_profile(
        wallet: str = WALLET_A,
        name: str | None = "Ada",
        support_count: int = 0,
        last_updated: datetime | None = None,
        **overrides,
    ) -> Profile:
        now = datetime.now(UTC)
        return Profile(
            wallet=checksum(wallet),
            name=name,
            support_count=support_count,
            created_at=now,
            last_updated=last_updated or now,
            **overrides,
        )

    return _create_profile


@pytest.fixture
def profile_node_factory():
    """Factory for stored Profile node property maps."""

    def _create_node(wallet: str = WALLET_A, **overrides) -> dict:
        now = datetime.now(UTC).isoformat()
        node = {
            "wallet": checksum(wallet),
            "name": "Ada",
            "bio": "Builds things",
            "avatar": None,
            "github": "ada",
            "twitter": None,
            "blog": None,
            "projects_json": "[]",
            "farcaster_username": None,
            "farcaster_verified": False,
            "profile_nft_token_id": None,
            "support_count": 0,
            "created_at": now,
            "last_updated": now,
        }
        node.update(overrides)
        return node

    return _create_node


@pytest.fixture
def support_log_factory():
    """Factory for SupportLog models."""
    from builderfolio.models.support import SupportLog

    def _create_log(
        supporter: str = WALLET_B,
        recipient: str = WALLET_A,
        amount: str = "0.01",
        tx_hash: str = TX_HASH,
        message_ipfs: str | None = None,
    ) -> SupportLog:
        return SupportLog(
            supporter=checksum(supporter),
            recipient=checksum(recipient),
            amount=Decimal(amount),
            tx_hash=tx_hash,
            message_ipfs=message_ipfs,
        )

    return _create_log


# =============================================================================
# FastAPI Test Client
# =============================================================================


@pytest.fixture
def container(mock_db_client, mock_contract_service, mock_ipfs_service):
    """An app container wired to mocks and marked ready."""
    from builderfolio.api.app import BuilderfolioApp

    app_container = BuilderfolioApp()
    app_container.db_client = mock_db_client
    app_container.contract_service = mock_contract_service
    app_container.ipfs_service = mock_ipfs_service
    app_container.is_ready = True
    app_container.started_at = datetime.now(UTC)
    return app_container


@pytest.fixture
def app(container, mock_profile_service, mock_support_service) -> FastAPI:
    """
    Create a test FastAPI application.

    Built WITHOUT the production lifespan (which requires Neo4j). The service
    dependencies are overridden with mocks so route tests control every
    downstream result.
    """
    from builderfolio.api.app import create_app
    from builderfolio.api.dependencies import get_profile_service, get_support_service

    application = create_app(
        title="Builderfolio Test",
        version="test",
        docs_url=None,
        redoc_url=None,
        container=container,
        use_lifespan=False,
    )

    application.dependency_overrides[get_profile_service] = lambda: mock_profile_service
    application.dependency_overrides[get_support_service] = lambda: mock_support_service
    return application


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Create a synchronous test client."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def unwired_client(container) -> Generator[TestClient, None, None]:
    """Test client whose routes run the real services against the mock clients."""
    from builderfolio.api.app import create_app

    application = create_app(container=container, use_lifespan=False)
    with TestClient(application, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def fake_receipt():
    """Factory for transaction receipts."""

    def _create(status: int = 1, block_number: int = 123, tx_hash: str = TX_HASH) -> dict:
        return {
            "status": status,
            "blockNumber": block_number,
            "transactionHash": bytes.fromhex(tx_hash[2:]),
            "logs": [],
        }

    return _create
