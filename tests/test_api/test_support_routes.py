"""
Support Route Tests
"""

from decimal import Decimal

import pytest
from neo4j.exceptions import DatabaseError

from builderfolio.chain.contract_service import TransactionFailedError
from builderfolio.models.support import SupportLog, SupportResult, SupportTransaction
from builderfolio.services.ipfs_service import IpfsError
from conftest import CID_V0, TX_HASH, WALLET_A, WALLET_B, checksum


def support_result(message_ipfs: str | None = None) -> SupportResult:
    log = SupportLog(
        supporter=checksum(WALLET_B),
        recipient=checksum(WALLET_A),
        amount=Decimal("0.01"),
        tx_hash=TX_HASH,
        message_ipfs=message_ipfs,
    )
    return SupportResult(
        support_log=log,
        transaction=SupportTransaction(hash=TX_HASH, block_number=123),
        message_ipfs=message_ipfs,
        recipient_support_count=1,
    )


class TestLogSupport:
    def test_logs_support(self, client, mock_support_service):
        mock_support_service.log_support.return_value = support_result(CID_V0)

        response = client.post(
            "/api/support/log",
            json={"supporter": WALLET_B, "recipient": WALLET_A, "amount": "0.01", "message": "gm"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["supportLog"]["txHash"] == TX_HASH
        assert data["supportLog"]["amount"] == "0.01"
        assert data["transaction"] == {"hash": TX_HASH, "blockNumber": 123}
        assert data["messageIpfs"] == CID_V0
        mock_support_service.log_support.assert_awaited_once_with(
            supporter=checksum(WALLET_B),
            recipient=checksum(WALLET_A),
            amount=Decimal("0.01"),
            message="gm",
        )

    def test_numeric_amount(self, client, mock_support_service):
        mock_support_service.log_support.return_value = support_result()

        response = client.post(
            "/api/support/log",
            json={"supporter": WALLET_B, "recipient": WALLET_A, "amount": 0.5},
        )

        assert response.status_code == 201
        assert mock_support_service.log_support.await_args.kwargs["amount"] == Decimal("0.5")

    def test_empty_message_is_dropped(self, client, mock_support_service):
        mock_support_service.log_support.return_value = support_result()

        client.post(
            "/api/support/log",
            json={"supporter": WALLET_B, "recipient": WALLET_A, "amount": "1", "message": ""},
        )

        assert mock_support_service.log_support.await_args.kwargs["message"] is None

    @pytest.mark.parametrize(
        "body",
        [
            {"supporter": "0x123", "recipient": WALLET_A, "amount": "1"},
            {"supporter": WALLET_B, "recipient": "bad", "amount": "1"},
            {"recipient": WALLET_A, "amount": "1"},
            {"supporter": "0x" + "a" * 80, "recipient": WALLET_A, "amount": "1"},
            {"supporter": WALLET_B, "recipient": 42, "amount": "1"},
        ],
    )
    def test_invalid_addresses(self, client, mock_support_service, body):
        response = client.post("/api/support/log", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid addresses"
        mock_support_service.log_support.assert_not_awaited()

    @pytest.mark.parametrize("amount", ["0", "-1", "abc", "", "0.0000000000000000001", "1e60"])
    def test_invalid_amount(self, client, mock_support_service, amount):
        response = client.post(
            "/api/support/log",
            json={"supporter": WALLET_B, "recipient": WALLET_A, "amount": amount},
        )

        assert response.status_code == 400
        assert "Amount" in response.json()["error"]
        mock_support_service.log_support.assert_not_awaited()

    def test_message_too_long(self, client, mock_support_service):
        response = client.post(
            "/api/support/log",
            json={
                "supporter": WALLET_B,
                "recipient": WALLET_A,
                "amount": "1",
                "message": "x" * 281,
            },
        )

        assert response.status_code == 422
        mock_support_service.log_support.assert_not_awaited()

    def test_transaction_failure(self, client, mock_support_service):
        mock_support_service.log_support.side_effect = TransactionFailedError("reverted")

        response = client.post(
            "/api/support/log",
            json={"supporter": WALLET_B, "recipient": WALLET_A, "amount": "1"},
        )

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to log support"

    def test_ipfs_failure(self, client, mock_support_service):
        mock_support_service.log_support.side_effect = IpfsError("unreachable")

        response = client.post(
            "/api/support/log",
            json={"supporter": WALLET_B, "recipient": WALLET_A, "amount": "1", "message": "gm"},
        )

        assert response.status_code == 500


class TestSupportHistory:
    def test_list_for_recipient(self, client, mock_support_service):
        mock_support_service.list_for_recipient.return_value = [support_result().support_log]

        response = client.get(f"/api/support/recipient/{WALLET_A}?limit=10")

        assert response.status_code == 200
        assert response.json()[0]["recipient"] == checksum(WALLET_A)
        mock_support_service.list_for_recipient.assert_awaited_once_with(
            checksum(WALLET_A), limit=10
        )

    def test_limit_is_bounded(self, client, mock_support_service):
        response = client.get(f"/api/support/recipient/{WALLET_A}?limit=101")

        assert response.status_code == 422
        mock_support_service.list_for_recipient.assert_not_awaited()

    def test_invalid_address(self, client, mock_support_service):
        response = client.get("/api/support/recipient/0xnope")

        assert response.status_code == 400

    def test_list_by_supporter(self, client, mock_support_service):
        mock_support_service.list_by_supporter.return_value = [support_result().support_log]

        response = client.get(f"/api/support/supporter/{WALLET_B}")

        assert response.status_code == 200
        assert response.json()[0]["supporter"] == checksum(WALLET_B)
        mock_support_service.list_by_supporter.assert_awaited_once_with(
            checksum(WALLET_B), limit=50
        )

    def test_supporter_history_invalid_address(self, client, mock_support_service):
        response = client.get("/api/support/supporter/0x" + "b" * 80)

        assert response.status_code == 400
        mock_support_service.list_by_supporter.assert_not_awaited()

    def test_supporter_history_database_failure(self, client, mock_support_service):
        mock_support_service.list_by_supporter.side_effect = DatabaseError("disk full")

        response = client.get(f"/api/support/supporter/{WALLET_B}")

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to fetch support history"


class TestSupportMessage:
    def test_get_message(self, client, mock_support_service):
        mock_support_service.get_message.return_value = {"message": "gm", "from": WALLET_B}

        response = client.get(f"/api/support/message/{CID_V0}")

        assert response.status_code == 200
        assert response.json()["message"] == "gm"

    def test_invalid_cid(self, client, mock_support_service):
        response = client.get("/api/support/message/not-a-cid")

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid IPFS CID"
        mock_support_service.get_message.assert_not_awaited()

    def test_retrieval_failure(self, client, mock_support_service):
        mock_support_service.get_message.side_effect = IpfsError("timeout")

        response = client.get(f"/api/support/message/{CID_V0}")

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to retrieve support message"
