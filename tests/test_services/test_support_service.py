"""
Support Service Tests
"""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from neo4j.exceptions import ConstraintError

from builderfolio.chain.contract_service import TransactionFailedError
from builderfolio.repositories.support_repository import SupportRepository
from builderfolio.services.ipfs_service import IpfsError
from builderfolio.services.support_service import SupportService
from conftest import CID_V0, TX_HASH, WALLET_A, WALLET_B, checksum


@pytest.fixture
def support_repo():
    repo = AsyncMock(spec=SupportRepository)

    async def store(log):
        return log, 1

    repo.create_and_increment.side_effect = store
    return repo


@pytest.fixture
def service(support_repo, mock_contract_service, mock_ipfs_service):
    return SupportService(support_repo, mock_contract_service, mock_ipfs_service)


SUPPORTER = checksum(WALLET_B)
RECIPIENT = checksum(WALLET_A)


class TestLogSupport:
    @pytest.mark.asyncio
    async def test_without_message(self, service, support_repo, mock_contract_service, mock_ipfs_service):
        result = await service.log_support(SUPPORTER, RECIPIENT, Decimal("0.01"))

        mock_ipfs_service.store_message.assert_not_awaited()
        mock_contract_service.support_creator.assert_awaited_once_with(
            supporter=SUPPORTER,
            recipient=RECIPIENT,
            amount=Decimal("0.01"),
            message_ipfs=None,
        )
        assert result.success is True
        assert result.message_ipfs is None
        assert result.transaction.hash == TX_HASH
        assert result.support_log.tx_hash == TX_HASH
        assert result.support_log.amount == Decimal("0.01")
        assert result.recipient_support_count == 1

    @pytest.mark.asyncio
    async def test_with_message(self, service, mock_contract_service, mock_ipfs_service):
        result = await service.log_support(SUPPORTER, RECIPIENT, Decimal("0.5"), message="gm")

        mock_ipfs_service.store_message.assert_awaited_once_with(
            {"from": SUPPORTER, "to": RECIPIENT, "message": "gm"}
        )
        assert mock_contract_service.support_creator.await_args.kwargs["message_ipfs"] == CID_V0
        assert result.message_ipfs == CID_V0
        assert result.support_log.message_ipfs == CID_V0

    @pytest.mark.asyncio
    async def test_ipfs_failure_sends_nothing(self, service, support_repo, mock_contract_service, mock_ipfs_service):
        mock_ipfs_service.store_message.side_effect = IpfsError("unreachable")

        with pytest.raises(IpfsError):
            await service.log_support(SUPPORTER, RECIPIENT, Decimal("1"), message="gm")

        mock_contract_service.support_creator.assert_not_awaited()
        support_repo.create_and_increment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_transaction_is_not_logged(self, service, support_repo, mock_contract_service):
        mock_contract_service.support_creator.side_effect = TransactionFailedError("reverted")

        with pytest.raises(TransactionFailedError):
            await service.log_support(SUPPORTER, RECIPIENT, Decimal("1"))

        support_repo.create_and_increment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_log_write_failure_is_reported(self, service, support_repo):
        support_repo.create_and_increment.side_effect = ConstraintError("duplicate tx_hash")

        with patch("builderfolio.services.support_service.logger") as logger:
            with pytest.raises(ConstraintError):
                await service.log_support(SUPPORTER, RECIPIENT, Decimal("1"))

        logger.critical.assert_called_once()
        args, kwargs = logger.critical.call_args
        assert args == ("support_log_write_failed",)
        assert kwargs["tx_hash"] == TX_HASH
        assert kwargs["amount"] == "1"
        assert kwargs["cancelled"] is False

    @pytest.mark.asyncio
    async def test_cancelled_log_write_is_reported(self, service, support_repo, mock_contract_service):
        support_repo.create_and_increment.side_effect = asyncio.CancelledError()

        with patch("builderfolio.services.support_service.logger") as logger:
            with pytest.raises(asyncio.CancelledError):
                await service.log_support(SUPPORTER, RECIPIENT, Decimal("1"))

        mock_contract_service.support_creator.assert_awaited_once()
        args, kwargs = logger.critical.call_args
        assert args == ("support_log_write_failed",)
        assert kwargs["tx_hash"] == TX_HASH
        assert kwargs["cancelled"] is True

    @pytest.mark.asyncio
    async def test_request_cancelled_during_write_still_logs(self, service, support_repo):
        release = asyncio.Event()
        written = asyncio.Event()

        async def slow_store(log):
            await release.wait()
            written.set()
            return log, 1

        support_repo.create_and_increment.side_effect = slow_store

        with patch("builderfolio.services.support_service.logger") as logger:
            request = asyncio.create_task(service.log_support(SUPPORTER, RECIPIENT, Decimal("1")))
            for _ in range(50):
                if support_repo.create_and_increment.await_count:
                    break
                await asyncio.sleep(0)

            request.cancel()
            with pytest.raises(asyncio.CancelledError):
                await request
            release.set()
            await asyncio.wait_for(written.wait(), timeout=1)

        assert logger.critical.call_args.kwargs["cancelled"] is True
        stored = support_repo.create_and_increment.await_args.args[0]
        assert stored.tx_hash == TX_HASH


class TestQueries:
    @pytest.mark.asyncio
    async def test_list_for_recipient(self, service, support_repo, support_log_factory):
        support_repo.list_for_recipient.return_value = [support_log_factory()]

        logs = await service.list_for_recipient(RECIPIENT, limit=20)

        assert len(logs) == 1
        support_repo.list_for_recipient.assert_awaited_once_with(RECIPIENT, 20)

    @pytest.mark.asyncio
    async def test_list_by_supporter(self, service, support_repo, support_log_factory):
        support_repo.list_by_supporter.return_value = [support_log_factory()]

        logs = await service.list_by_supporter(SUPPORTER)

        assert logs[0].supporter == SUPPORTER
        support_repo.list_by_supporter.assert_awaited_once_with(SUPPORTER, 50)

    @pytest.mark.asyncio
    async def test_get_message(self, service, mock_ipfs_service):
        assert await service.get_message(CID_V0) == {"message": "gm"}
        mock_ipfs_service.retrieve_message.assert_awaited_once_with(CID_V0)
