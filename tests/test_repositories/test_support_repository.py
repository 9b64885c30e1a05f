"""
Support Repository Tests
"""

from decimal import Decimal

import pytest

from builderfolio.repositories.support_repository import SupportRepository
from conftest import TX_HASH, WALLET_A, WALLET_B, checksum


@pytest.fixture
def repo(mock_db_client):
    return SupportRepository(mock_db_client)


def stored_log(**overrides) -> dict:
    node = {
        "id": "log-1",
        "supporter": checksum(WALLET_B),
        "recipient": checksum(WALLET_A),
        "amount": "0.010000000000000001",
        "tx_hash": TX_HASH,
        "message_ipfs": None,
        "timestamp": "2024-05-01T12:00:00+00:00",
    }
    node.update(overrides)
    return node


class TestCreateAndIncrement:
    @pytest.mark.asyncio
    async def test_writes_log_and_count_together(self, repo, mock_db_client, support_log_factory):
        log = support_log_factory(amount="0.010000000000000001")
        mock_db_client.execute_single_once.return_value = {
            "log": stored_log(id=log.id),
            "support_count": 4,
        }

        stored, support_count = await repo.create_and_increment(log)

        assert stored.id == log.id
        assert stored.amount == Decimal("0.010000000000000001")
        assert support_count == 4
        mock_db_client.execute_single_once.assert_awaited_once()
        query, params = mock_db_client.execute_single_once.await_args.args
        assert "CREATE (s:SupportLog" in query
        assert "SET p.support_count = coalesce(p.support_count, 0) + 1" in query
        assert "MERGE (s)-[:SUPPORTS]->(p)" in query
        assert params["amount"] == "0.010000000000000001"
        assert params["timestamp"] == log.timestamp.isoformat()

    @pytest.mark.asyncio
    async def test_recipient_without_profile(self, repo, mock_db_client, support_log_factory):
        mock_db_client.execute_single_once.return_value = {"log": stored_log(), "support_count": None}

        _, support_count = await repo.create_and_increment(support_log_factory())

        assert support_count is None

    @pytest.mark.asyncio
    async def test_no_record_raises(self, repo, mock_db_client, support_log_factory):
        mock_db_client.execute_single_once.return_value = None

        with pytest.raises(RuntimeError):
            await repo.create_and_increment(support_log_factory())


class TestQueries:
    @pytest.mark.asyncio
    async def test_list_for_recipient(self, repo, mock_db_client):
        mock_db_client.execute.return_value = [
            {"log": stored_log(id="b", timestamp="2024-05-02T00:00:00+00:00")},
            {"log": stored_log(id="a")},
        ]

        logs = await repo.list_for_recipient(checksum(WALLET_A), limit=20)

        assert [log.id for log in logs] == ["b", "a"]
        query, params = mock_db_client.execute.await_args.args
        assert "ORDER BY s.timestamp DESC" in query
        assert params == {"recipient": checksum(WALLET_A), "limit": 20}

    @pytest.mark.asyncio
    async def test_list_limit_is_capped(self, repo, mock_db_client):
        await repo.list_for_recipient(checksum(WALLET_A), limit=1000)

        assert mock_db_client.execute.await_args.args[1]["limit"] == 100

    @pytest.mark.asyncio
    async def test_list_by_supporter(self, repo, mock_db_client):
        mock_db_client.execute.return_value = [{"log": stored_log()}]

        logs = await repo.list_by_supporter(checksum(WALLET_B))

        assert logs[0].supporter == checksum(WALLET_B)
        assert mock_db_client.execute.await_args.args[1]["supporter"] == checksum(WALLET_B)
