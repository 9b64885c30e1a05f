"""
Farcaster Route Tests
"""

import pytest

from builderfolio.services.profile_service import ProfileNotFoundError
from conftest import WALLET_A, checksum


class TestVerifyFarcaster:
    def test_verify(self, client, mock_profile_service, profile_factory):
        mock_profile_service.verify_farcaster.return_value = profile_factory()

        response = client.post(
            "/api/farcaster/verify",
            json={"wallet": WALLET_A, "farcasterUsername": "ada", "signature": "0xsig"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Farcaster account verified successfully",
        }
        mock_profile_service.verify_farcaster.assert_awaited_once_with(checksum(WALLET_A), "ada")

    def test_signature_is_optional(self, client, mock_profile_service, profile_factory):
        mock_profile_service.verify_farcaster.return_value = profile_factory()

        response = client.post(
            "/api/farcaster/verify",
            json={"wallet": WALLET_A, "farcasterUsername": "ada"},
        )

        assert response.status_code == 200

    def test_username_required(self, client, mock_profile_service):
        response = client.post(
            "/api/farcaster/verify",
            json={"wallet": WALLET_A, "farcasterUsername": "  "},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Farcaster username is required"
        mock_profile_service.verify_farcaster.assert_not_awaited()

    @pytest.mark.parametrize("wallet", ["0x1", "0x" + "b" * 80, 7, None])
    def test_invalid_wallet(self, client, mock_profile_service, wallet):
        response = client.post(
            "/api/farcaster/verify",
            json={"wallet": wallet, "farcasterUsername": "ada"},
        )

        assert response.status_code == 400
        mock_profile_service.verify_farcaster.assert_not_awaited()

    def test_profile_missing(self, client, mock_profile_service):
        mock_profile_service.verify_farcaster.side_effect = ProfileNotFoundError(WALLET_A)

        response = client.post(
            "/api/farcaster/verify",
            json={"wallet": WALLET_A, "farcasterUsername": "ada"},
        )

        assert response.status_code == 404

    def test_database_failure(self, client, mock_profile_service):
        mock_profile_service.verify_farcaster.side_effect = RuntimeError("write failed")

        response = client.post(
            "/api/farcaster/verify",
            json={"wallet": WALLET_A, "farcasterUsername": "ada"},
        )

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to verify Farcaster account"
